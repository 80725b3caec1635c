from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.push.schemas import PushSubscriptionCreate, PushSubscriptionDelete
from bib.modules.push.service import PushSubscriptionService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/push-subscriptions", tags=["push"])


def get_push_service(supabase: Client = Depends(get_user_supabase)) -> PushSubscriptionService:
    return PushSubscriptionService(supabase)


@router.post("", status_code=204)
async def save_subscription(
    body: PushSubscriptionCreate,
    current_user: Dict = Depends(get_current_user),
    service: PushSubscriptionService = Depends(get_push_service)
):
    """Register this browser for web push"""
    service.save(current_user["id"], body)
    return None


@router.delete("", status_code=204)
async def delete_subscription(
    body: PushSubscriptionDelete,
    current_user: Dict = Depends(get_current_user),
    service: PushSubscriptionService = Depends(get_push_service)
):
    service.delete(current_user["id"], body.endpoint)
    return None
