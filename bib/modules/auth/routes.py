from fastapi import APIRouter, Depends, HTTPException, Request
from bib.config import settings
from bib.core.dependencies import get_auth_service, get_current_token, get_current_user, get_user_supabase
from bib.core.rate_limit import limiter
from bib.modules.auth.schemas import (
    LoginRequest, SignupRequest, SignupResponse, TokenResponse, UsernameAvailability
)
from bib.modules.auth.service import AuthService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse)
@limiter.limit(settings.signup_rate_limit)
async def signup(
    request: Request,
    signup_data: SignupRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Create an account and its profile"""
    return service.signup(signup_data)


@router.get("/username-available", response_model=UsernameAvailability)
async def username_available(
    username: str = "",
    service: AuthService = Depends(get_auth_service)
):
    """Check whether a username can still be claimed"""
    return UsernameAvailability(available=service.username_available(username))


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def get_me(
    current_user: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_user_supabase),
):
    """Get current authenticated user merged with their profile row"""
    try:
        result = supabase.table("users")\
            .select("id,email,name,username,avatar,theme,created_at")\
            .eq("id", current_user["id"])\
            .limit(1)\
            .execute()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    profile = result.data[0] if result.data else {}
    return {**current_user, "profile": profile}
