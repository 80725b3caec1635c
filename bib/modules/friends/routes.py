from fastapi import APIRouter, Depends, HTTPException
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.friends.schemas import FriendAdd, FriendResponse, FriendshipResponse
from bib.modules.friends.service import FriendService
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/friends", tags=["friends"])


def get_friend_service(supabase: Client = Depends(get_user_supabase)) -> FriendService:
    return FriendService(supabase)


@router.get("", response_model=List[FriendResponse])
async def list_friends(
    current_user: Dict = Depends(get_current_user),
    service: FriendService = Depends(get_friend_service)
):
    """List the caller's friends"""
    return service.list_friends(current_user["id"])


@router.post("", response_model=FriendshipResponse, status_code=201)
async def add_friend(
    body: FriendAdd,
    current_user: Dict = Depends(get_current_user),
    service: FriendService = Depends(get_friend_service)
):
    """Add a friend"""
    return service.add_friend(current_user["id"], body.friend_id)


@router.delete("/{friendship_id}", status_code=204)
async def remove_friend(
    friendship_id: str,
    current_user: Dict = Depends(get_current_user),
    service: FriendService = Depends(get_friend_service)
):
    """Remove a friend"""
    if not service.remove_friend(current_user["id"], friendship_id):
        raise HTTPException(status_code=404, detail="Friendship not found")
    return None
