from supabase import Client
from bib.core.errors import error_message, raise_for_api_error
from bib.modules.nudges.schemas import NudgeCreate, NudgeResponse, NudgeSender, ReceivedNudges
from bib.modules.users.service import fetch_users_by_ids
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 200
MAX_TITLE_LENGTH = 200
MAX_POSTER_LENGTH = 500


class NudgeService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def send_nudge(self, from_user_id: str, nudge: NudgeCreate) -> NudgeResponse:
        """Nudge a friend about a title; one nudge per sender, recipient and title"""
        if nudge.to_user_id == from_user_id:
            raise HTTPException(status_code=400, detail="You cannot nudge yourself.")
        if not (nudge.recommendation_id or nudge.friend_recommendation_id or nudge.tmdb_id):
            raise HTTPException(status_code=400, detail="A nudge needs a title to point at.")
        message = (nudge.message or "").strip()[:MAX_MESSAGE_LENGTH]
        try:
            result = self.supabase.table("nudges").insert({
                "from_user_id": from_user_id,
                "to_user_id": nudge.to_user_id,
                "recommendation_id": nudge.recommendation_id,
                "friend_recommendation_id": nudge.friend_recommendation_id,
                "tmdb_id": nudge.tmdb_id,
                "movie_title": (nudge.movie_title or "").strip()[:MAX_TITLE_LENGTH] or None,
                "movie_poster": (nudge.movie_poster or "").strip()[:MAX_POSTER_LENGTH] or None,
                "movie_year": nudge.movie_year,
                "message": message or None,
            }).execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail="You already nudged this friend about this title.")

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to send nudge")
        return NudgeResponse(**{k: v for k, v in result.data[0].items() if v is not None})

    def received(self, user_id: str) -> ReceivedNudges:
        """Nudges sent to the user, newest first, with sender info and the unread count"""
        try:
            result = self.supabase.table("nudges")\
                .select("*")\
                .eq("to_user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            rows = result.data or []
            senders = fetch_users_by_ids(self.supabase, (r["from_user_id"] for r in rows), "id,name,avatar")
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        nudges = []
        for row in rows:
            sender = senders.get(row["from_user_id"])
            nudges.append(NudgeResponse(
                **{k: v for k, v in row.items() if v is not None},
                from_user=NudgeSender(
                    id=sender["id"],
                    name=sender.get("name") or "Friend",
                    avatar=sender.get("avatar"),
                ) if sender else None,
            ))
        return ReceivedNudges(nudges=nudges, unread_count=sum(1 for n in nudges if not n.is_read))

    def sent_target_ids(self, user_id: str) -> List[str]:
        """Ids of every title the user has nudged someone about"""
        try:
            result = self.supabase.table("nudges")\
                .select("recommendation_id,friend_recommendation_id,tmdb_id")\
                .eq("from_user_id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))
        targets = []
        for row in result.data or []:
            for key in ("recommendation_id", "friend_recommendation_id", "tmdb_id"):
                if row.get(key):
                    targets.append(str(row[key]))
        return list(dict.fromkeys(targets))

    def mark_read(self, user_id: str, nudge_id: str) -> None:
        try:
            self.supabase.table("nudges")\
                .update({"is_read": True})\
                .eq("id", nudge_id)\
                .eq("to_user_id", user_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e)

    def mark_all_read(self, user_id: str) -> None:
        try:
            self.supabase.table("nudges")\
                .update({"is_read": True})\
                .eq("to_user_id", user_id)\
                .eq("is_read", False)\
                .execute()
        except Exception as e:
            raise_for_api_error(e)
