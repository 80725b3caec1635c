from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.nudges.schemas import NudgeCreate, NudgeResponse, ReceivedNudges, SentNudgeTargets
from bib.modules.nudges.service import NudgeService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/nudges", tags=["nudges"])


def get_nudge_service(supabase: Client = Depends(get_user_supabase)) -> NudgeService:
    return NudgeService(supabase)


@router.get("", response_model=ReceivedNudges)
async def received_nudges(
    current_user: Dict = Depends(get_current_user),
    service: NudgeService = Depends(get_nudge_service)
):
    """Nudges the caller received"""
    return service.received(current_user["id"])


@router.post("", response_model=NudgeResponse, status_code=201)
async def send_nudge(
    body: NudgeCreate,
    current_user: Dict = Depends(get_current_user),
    service: NudgeService = Depends(get_nudge_service)
):
    return service.send_nudge(current_user["id"], body)


@router.get("/sent", response_model=SentNudgeTargets)
async def sent_nudge_targets(
    current_user: Dict = Depends(get_current_user),
    service: NudgeService = Depends(get_nudge_service)
):
    return SentNudgeTargets(target_ids=service.sent_target_ids(current_user["id"]))


@router.post("/read-all", status_code=204)
async def mark_all_read(
    current_user: Dict = Depends(get_current_user),
    service: NudgeService = Depends(get_nudge_service)
):
    service.mark_all_read(current_user["id"])
    return None


@router.post("/{nudge_id}/read", status_code=204)
async def mark_read(
    nudge_id: str,
    current_user: Dict = Depends(get_current_user),
    service: NudgeService = Depends(get_nudge_service)
):
    service.mark_read(current_user["id"], nudge_id)
    return None
