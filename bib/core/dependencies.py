"""
Core dependencies for route protection and per-request Supabase clients
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bib.config import settings
from bib.database.supabase_client import SupabaseClient, get_supabase
from bib.modules.auth.service import AuthService
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

NOT_CONFIGURED_DETAIL = "Supabase is not configured."


def get_configured_supabase() -> Client:
    """Shared anon client; answers 503 instead of failing when the backend is not configured."""
    if not settings.is_supabase_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=NOT_CONFIGURED_DETAIL
        )
    return get_supabase()


def get_optional_service_supabase() -> Optional[Client]:
    """Service-role client when a service key is configured, else None"""
    if not settings.is_supabase_configured or not settings.has_service_role:
        return None
    return SupabaseClient.get_service_client()


def get_auth_service(
    supabase: Client = Depends(get_configured_supabase),
    service_client: Optional[Client] = Depends(get_optional_service_supabase),
) -> AuthService:
    return AuthService(supabase, service_client)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials.strip()


def get_current_user(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Resolve the signed-in user from the bearer token"""
    return auth_service.get_current_user(token)


def get_user_supabase(
    token: str = Depends(get_current_token),
    _configured: Client = Depends(get_configured_supabase),
) -> Client:
    """Client scoped to the caller's token so row-level security applies"""
    return SupabaseClient.get_user_client(token)
