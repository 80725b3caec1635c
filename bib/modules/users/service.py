from supabase import Client
from bib.core.errors import raise_for_api_error
from bib.modules.auth.validation import USERNAME_RE, normalize_username
from bib.modules.users.schemas import UserResponse, UserUpdate
from typing import Any, Dict, Iterable, List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id,email,name,username,avatar,theme,created_at"
MIN_SEARCH_LENGTH = 2


def fetch_users_by_ids(
    supabase: Client,
    user_ids: Iterable[str],
    columns: str = "id,name,avatar",
) -> Dict[str, Dict[str, Any]]:
    """Map user_id -> user row for a set of ids (second step of the two-step joins)"""
    ids = list(dict.fromkeys(i for i in user_ids if i))
    if not ids:
        return {}
    result = supabase.table("users")\
        .select(columns)\
        .in_("id", ids)\
        .execute()
    return {row["id"]: row for row in (result.data or [])}


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        try:
            result = self.supabase.table("users")\
                .select(PROFILE_COLUMNS)\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        row = result.data[0]
        return UserResponse(**{k: v for k, v in row.items() if v is not None})

    def update_user(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update the caller's own profile"""
        update_data = {}
        if user_data.name is not None:
            name = user_data.name.strip()
            if not name:
                raise HTTPException(status_code=400, detail="Name cannot be empty.")
            update_data["name"] = name
        if user_data.username is not None:
            username = normalize_username(user_data.username)
            if not USERNAME_RE.match(username):
                raise HTTPException(status_code=400, detail="Username must be 3-24 characters (a-z, 0-9, _).")
            update_data["username"] = username
        if user_data.avatar is not None:
            update_data["avatar"] = user_data.avatar.strip() or "🎬"
        if user_data.theme is not None:
            update_data["theme"] = user_data.theme.strip() or None
        if not update_data:
            return self.get_user_by_id(user_id)

        try:
            result = self.supabase.table("users")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail="Username is already taken.")

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        row = result.data[0]
        return UserResponse(**{k: v for k, v in row.items() if v is not None})

    def search_users(self, query: str, exclude_user_id: str, limit: int = 10) -> List[UserResponse]:
        """Search users by name or username (case-insensitive substring)"""
        term = (query or "").strip().replace(",", " ").replace("(", " ").replace(")", " ")
        if len(term) < MIN_SEARCH_LENGTH:
            return []
        try:
            result = self.supabase.table("users")\
                .select(PROFILE_COLUMNS)\
                .or_(f"name.ilike.%{term}%,username.ilike.%{term}%")\
                .neq("id", exclude_user_id)\
                .limit(limit)\
                .execute()
        except Exception as e:
            logger.error(f"User search failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return [
            UserResponse(**{k: v for k, v in row.items() if v is not None})
            for row in (result.data or [])
        ]
