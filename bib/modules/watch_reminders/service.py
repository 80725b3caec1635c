from supabase import Client
from bib.core.errors import error_message, raise_for_api_error
from bib.core.timestamps import clamp_limit, is_stale, parse_timestamp, utc_now
from bib.modules.watch_reminders.schemas import WatchReminderResponse, WatchReminderUpsert
from datetime import datetime
from typing import Any, Callable, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

REMINDER_COLUMNS = "id,movie_id,movie_title,movie_poster,movie_year,remind_at,created_at,updated_at,notified_at,canceled_at"
UPCOMING_LIMIT = 50
MAX_TITLE_LENGTH = 200
MAX_POSTER_LENGTH = 500


def _to_response(row) -> WatchReminderResponse:
    return WatchReminderResponse(**{k: v for k, v in row.items() if v is not None})


class WatchReminderService:
    def __init__(self, supabase: Client, now: Callable[[], datetime] = utc_now):
        self.supabase = supabase
        self.now = now

    def list_reminders(self, user_id: str, movie_id: Optional[str] = None) -> List[WatchReminderResponse]:
        """Active (not canceled) reminders, soonest first; a single one when movie_id is given"""
        movie_id = (movie_id or "").strip()
        query = self.supabase.table("watch_reminders")\
            .select(REMINDER_COLUMNS)\
            .eq("user_id", user_id)\
            .is_("canceled_at", "null")
        if movie_id:
            query = query.eq("movie_id", movie_id)
        try:
            result = query\
                .order("remind_at")\
                .limit(1 if movie_id else UPCOMING_LIMIT)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e) or "Failed to load reminders.")
        return [_to_response(row) for row in (result.data or [])]

    def get_for_movie(self, user_id: str, movie_id: str) -> Optional[WatchReminderResponse]:
        reminders = self.list_reminders(user_id, movie_id)
        return reminders[0] if reminders else None

    def get_upcoming(self, user_id: str) -> List[WatchReminderResponse]:
        return self.list_reminders(user_id)

    def upsert(self, user_id: str, data: WatchReminderUpsert) -> WatchReminderResponse:
        """Create or reschedule the reminder for (user, movie); rescheduling re-arms it"""
        movie_id = (data.movie_id or "").strip()
        movie_title = (data.movie_title or "").strip()
        remind_at = parse_timestamp(data.remind_at)
        if not movie_id or not movie_title or remind_at is None:
            raise HTTPException(status_code=400, detail="movieId, movieTitle, and remindAt are required.")

        now = self.now()
        if is_stale(remind_at, now):
            raise HTTPException(status_code=400, detail="Reminder time must be in the future.")

        poster = (data.movie_poster or "").strip()[:MAX_POSTER_LENGTH] or None
        movie_year = data.movie_year
        payload = {
            "user_id": user_id,
            "movie_id": movie_id,
            "movie_title": movie_title[:MAX_TITLE_LENGTH],
            "movie_poster": poster,
            "movie_year": movie_year if isinstance(movie_year, int) and not isinstance(movie_year, bool) else None,
            "remind_at": remind_at.isoformat(),
            "notified_at": None,
            "canceled_at": None,
            "updated_at": now.isoformat(),
        }
        try:
            result = self.supabase.table("watch_reminders")\
                .upsert(payload, on_conflict="user_id,movie_id")\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to save reminder.")

        if not result.data:
            raise HTTPException(status_code=500, detail="Reminder saved but response was empty.")
        logger.info(f"Watch reminder for {movie_id} scheduled at {payload['remind_at']}")
        return _to_response(result.data[0])

    def delete(self, user_id: str, movie_id: Optional[str]) -> None:
        movie_id = (movie_id or "").strip()
        if not movie_id:
            raise HTTPException(status_code=400, detail="movieId is required.")
        try:
            self.supabase.table("watch_reminders")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("movie_id", movie_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to delete reminder.")

    def poll_due(self, user_id: str, limit: Any = 5) -> List[WatchReminderResponse]:
        """
        Claim due reminders.

        A row is returned only when this poll's conditional update (notified_at is null)
        actually changed it, so concurrent polls never both return the same reminder.
        Any failure yields an empty list; the next poll retries.
        """
        limit = clamp_limit(limit)
        now_iso = self.now().isoformat()
        try:
            due = self.supabase.table("watch_reminders")\
                .select("id,movie_id,movie_title,movie_poster,movie_year,remind_at")\
                .eq("user_id", user_id)\
                .is_("canceled_at", "null")\
                .is_("notified_at", "null")\
                .lte("remind_at", now_iso)\
                .order("remind_at")\
                .limit(limit)\
                .execute()

            claimed = []
            for row in due.data or []:
                patched = self.supabase.table("watch_reminders")\
                    .update({"notified_at": now_iso, "updated_at": now_iso})\
                    .eq("id", row["id"])\
                    .eq("user_id", user_id)\
                    .is_("notified_at", "null")\
                    .execute()
                if patched.data:
                    claimed.append(_to_response(row))
            return claimed
        except Exception as e:
            logger.warning(f"Watch reminder poll failed: {e}")
            return []
