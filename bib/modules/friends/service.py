from supabase import Client
from bib.core.errors import raise_for_api_error
from bib.modules.friends.schemas import FriendResponse, FriendshipResponse
from bib.modules.users.service import fetch_users_by_ids
from typing import Iterable, List, Set
from fastapi import HTTPException


class FriendService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_friends(self, user_id: str) -> List[FriendResponse]:
        """Friends of a user: friendship rows first, then the matching user rows"""
        try:
            friendships = self.supabase.table("friends")\
                .select("id,friend_id")\
                .eq("user_id", user_id)\
                .execute()
            if not friendships.data:
                return []
            friendship_by_friend = {f["friend_id"]: f["id"] for f in friendships.data}
            users = fetch_users_by_ids(
                self.supabase,
                friendship_by_friend.keys(),
                columns="id,name,username,avatar,email,created_at",
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            FriendResponse(
                id=u["id"],
                email=u.get("email") or "",
                name=u.get("name") or "",
                username=u.get("username") or "",
                avatar=u.get("avatar") or "🎬",
                created_at=u.get("created_at"),
                friendship_id=friendship_by_friend.get(u["id"]),
            )
            for u in users.values()
        ]

    def friend_ids_among(self, user_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        """Subset of candidate_ids that user_id has as friends"""
        ids = list(dict.fromkeys(candidate_ids))
        if not ids:
            return set()
        result = self.supabase.table("friends")\
            .select("friend_id")\
            .eq("user_id", user_id)\
            .in_("friend_id", ids)\
            .execute()
        return {row["friend_id"] for row in (result.data or []) if row.get("friend_id")}

    def add_friend(self, user_id: str, friend_id: str) -> FriendshipResponse:
        """Add friend_id to the user's friends"""
        friend_id = (friend_id or "").strip()
        if not friend_id:
            raise HTTPException(status_code=400, detail="friend_id is required.")
        if friend_id == user_id:
            raise HTTPException(status_code=400, detail="You cannot add yourself as a friend.")
        try:
            result = self.supabase.table("friends").insert({
                "user_id": user_id,
                "friend_id": friend_id,
            }).execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail="Already friends.")

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to add friend")
        return FriendshipResponse(**result.data[0])

    def remove_friend(self, user_id: str, friendship_id: str) -> bool:
        """Remove a friendship row owned by the user"""
        try:
            result = self.supabase.table("friends")\
                .delete()\
                .eq("id", friendship_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return len(result.data or []) > 0
