from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.users.schemas import UserResponse, UserUpdate
from bib.modules.users.service import UserService
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_user_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/search", response_model=List[UserResponse])
async def search_users(
    q: str = "",
    limit: int = 10,
    current_user: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Find people to add as friends"""
    return service.search_users(q, exclude_user_id=current_user["id"], limit=min(max(limit, 1), 25))


@router.put("/me", response_model=UserResponse)
async def update_me(
    user_data_body: UserUpdate,
    current_user: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Update own profile (name, username, avatar, theme)"""
    return service.update_user(current_user["id"], user_data_body)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Get a user's public profile"""
    return service.get_user_by_id(user_id)
