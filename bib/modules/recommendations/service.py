from supabase import Client
from bib.core.errors import (
    CodedHTTPException,
    SERVER_BUSY_MESSAGE,
    error_code,
    error_message,
    is_missing_column,
    is_server_busy,
    is_unique_violation,
)
from bib.core.timestamps import clamp_limit, is_stale, parse_timestamp, utc_now
from bib.modules.friends.service import FriendService
from bib.modules.recommendations.schemas import (
    FriendRecommendationResponse,
    FriendReminder,
    PersonSummary,
    SendRecommendationsResponse,
    SkippedRecipients,
    to_response_dict,
)
from bib.modules.users.service import fetch_users_by_ids
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union
from fastapi import HTTPException
import logging
import time

logger = logging.getLogger(__name__)

MAX_ROWS_PER_SEND = 50
MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 200
MAX_POSTER_LENGTH = 500
TMDB_IMAGE_PREFIX = "https://image.tmdb.org/"
INSERT_RETRY_DELAY_SECONDS = 0.8
UNREAD_BADGE_CAP = 99

BASE_COLUMNS = "id,{party},movie_title,movie_poster,movie_year,personal_message,is_read,created_at,tmdb_id,recommendation_id"
EXTENDED_COLUMNS = "id,{party},movie_title,movie_poster,movie_year,personal_message,is_read,is_watched,watched_at,remind_at,created_at,tmdb_id,recommendation_id"
REMINDER_COLUMNS = ("is_watched", "watched_at", "remind_at")
MISSING_REMINDER_COLUMNS_MESSAGE = (
    "Reminder columns are missing in Supabase. "
    "Run supabase-friend-recommendation-reminders.sql and try again."
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_text(value: Any, limit: int) -> str:
    if value is None:
        return ""
    return str(value).strip()[:limit]


class RecommendationService:
    def __init__(
        self,
        supabase: Client,
        service_client: Optional[Client] = None,
        now: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.supabase = supabase
        self.service_client = service_client
        self.now = now
        self.sleep = sleep

    # ---- sending ----

    def normalize_rows(self, user_id: str, raw_rows: List[Any]) -> List[Dict[str, Any]]:
        """Drop rows the caller may not send and trim the rest to column limits"""
        now = self.now()
        rows = []
        for raw in raw_rows[:MAX_ROWS_PER_SEND]:
            if not isinstance(raw, dict):
                continue
            sender_id = _clean_text(raw.get("sender_id"), 100)
            recipient_id = _clean_text(raw.get("recipient_id"), 100)
            movie_title = _clean_text(raw.get("movie_title"), MAX_TITLE_LENGTH)
            if sender_id != user_id or not recipient_id or not movie_title:
                continue

            poster = _clean_text(raw.get("movie_poster"), MAX_POSTER_LENGTH)
            tmdb_id = raw.get("tmdb_id")
            movie_year = raw.get("movie_year")
            recommendation_id = raw.get("recommendation_id")
            row = {
                "sender_id": sender_id,
                "recipient_id": recipient_id,
                "recommendation_id": str(recommendation_id) if recommendation_id is not None else None,
                # tmdb_id is a TEXT column
                "tmdb_id": str(int(tmdb_id)) if _is_number(tmdb_id) else None,
                "movie_title": movie_title,
                "movie_poster": poster if poster.startswith(TMDB_IMAGE_PREFIX) else "",
                "movie_year": int(movie_year) if _is_number(movie_year) else None,
                "personal_message": _clean_text(raw.get("personal_message"), MAX_MESSAGE_LENGTH),
            }
            remind_at = parse_timestamp(raw.get("remind_at"))
            if remind_at is not None and not is_stale(remind_at, now):
                row["remind_at"] = remind_at.isoformat()
            rows.append(row)
        return rows

    def _allowed_recipients(self, user_id: str, recipient_ids: Iterable[str]) -> Optional[Set[str]]:
        """Friend ids among the recipients, or None when the check cannot be made"""
        if self.service_client is None:
            return None
        try:
            return FriendService(self.service_client).friend_ids_among(user_id, recipient_ids)
        except Exception as e:
            logger.warning(f"Friend check skipped: {e}")
            return None

    def _insert_row(self, row: Dict[str, Any]) -> None:
        client = self.service_client or self.supabase
        try:
            client.table("friend_recommendations").insert(row).execute()
        except Exception as e:
            if not is_server_busy(e):
                raise
            logger.error(f"Friend recommendation insert failed (will retry once): {error_message(e)}")
            self.sleep(INSERT_RETRY_DELAY_SECONDS)
            client.table("friend_recommendations").insert(row).execute()

    def send(self, user_id: str, raw_rows: List[Any]) -> SendRecommendationsResponse:
        """Insert friend recommendations one row at a time, reporting duplicates and non-friends"""
        rows = self.normalize_rows(user_id, raw_rows)
        if not rows:
            return SendRecommendationsResponse(sent=0)

        allowed_ids = self._allowed_recipients(user_id, (r["recipient_id"] for r in rows))
        allowed = rows if allowed_ids is None else [r for r in rows if r["recipient_id"] in allowed_ids]
        allowed_recipients = {r["recipient_id"] for r in allowed}
        not_allowed = [r["recipient_id"] for r in rows if r["recipient_id"] not in allowed_recipients]
        if not allowed:
            return SendRecommendationsResponse(sent=0, skipped=SkippedRecipients(not_allowed=not_allowed))

        sent_ids: List[str] = []
        duplicates: List[str] = []
        for row in allowed:
            try:
                self._insert_row(row)
            except Exception as e:
                code = error_code(e)
                message = error_message(e)
                logger.error(f"Friend recommendation insert failed: code={code} message={message}")
                if is_unique_violation(e):
                    duplicates.append(row["recipient_id"])
                    continue
                if is_server_busy(e):
                    detail = SERVER_BUSY_MESSAGE
                elif row.get("remind_at") and is_missing_column(e, "remind_at", "column"):
                    detail = MISSING_REMINDER_COLUMNS_MESSAGE
                else:
                    detail = message or "Request failed."
                raise CodedHTTPException(status_code=500, detail=detail, code=code)
            sent_ids.append(row["recipient_id"])

        return SendRecommendationsResponse(
            sent=len(sent_ids),
            sent_recipient_ids=sent_ids,
            skipped=SkippedRecipients(duplicates=duplicates, not_allowed=not_allowed),
        )

    # ---- reading ----

    def _select_with_fallback(self, party_column: str, owner_column: str, user_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("friend_recommendations")\
                .select(EXTENDED_COLUMNS.format(party=party_column))\
                .eq(owner_column, user_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            if not is_missing_column(e, *REMINDER_COLUMNS):
                raise
            logger.warning(f"friend_recommendations lacks reminder columns, using base columns: {e}")
            result = self.supabase.table("friend_recommendations")\
                .select(BASE_COLUMNS.format(party=party_column))\
                .eq(owner_column, user_id)\
                .order("created_at", desc=True)\
                .execute()
        return result.data or []

    @staticmethod
    def _person(row: Optional[Dict[str, Any]]) -> Optional[PersonSummary]:
        if not row:
            return None
        return PersonSummary(
            id=row["id"],
            name=row.get("name") or "Unknown",
            avatar=row.get("avatar"),
            email=row.get("email"),
        )

    def get_received(self, user_id: str) -> List[FriendRecommendationResponse]:
        """Recommendations sent to the user, newest first, with sender info"""
        try:
            rows = self._select_with_fallback("sender_id", "recipient_id", user_id)
            senders = fetch_users_by_ids(self.supabase, (r["sender_id"] for r in rows), "id,name,avatar,email")
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))
        return [
            FriendRecommendationResponse(
                **to_response_dict(r),
                sender=self._person(senders.get(r["sender_id"])),
            )
            for r in rows
        ]

    def get_sent(self, user_id: str) -> List[FriendRecommendationResponse]:
        """Recommendations the user sent, newest first, with recipient info"""
        try:
            rows = self._select_with_fallback("recipient_id", "sender_id", user_id)
            recipients = fetch_users_by_ids(self.supabase, (r["recipient_id"] for r in rows), "id,name,avatar,email")
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))
        return [
            FriendRecommendationResponse(
                **to_response_dict(r),
                recipient=self._person(recipients.get(r["recipient_id"])),
            )
            for r in rows
        ]

    def get_recent(self, user_id: str, limit: int = 5) -> List[FriendRecommendationResponse]:
        """Small payload for the notification bell; sender lookup failures are tolerated"""
        try:
            result = self.supabase.table("friend_recommendations")\
                .select("id,sender_id,movie_title,created_at,tmdb_id,recommendation_id")\
                .eq("recipient_id", user_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))
        rows = result.data or []
        if not rows:
            return []
        try:
            senders = fetch_users_by_ids(self.supabase, (r["sender_id"] for r in rows), "id,name,avatar,email")
        except Exception as e:
            logger.warning(f"Sender lookup failed for recent recommendations: {e}")
            senders = {}
        return [
            FriendRecommendationResponse(
                **to_response_dict(r),
                sender=self._person(senders.get(r["sender_id"])),
            )
            for r in rows
        ]

    def unread_count(self, user_id: str) -> int:
        """Unread badge count, capped at 99; errors count as zero"""
        try:
            result = self.supabase.table("friend_recommendations")\
                .select("id", count="exact")\
                .eq("recipient_id", user_id)\
                .eq("is_read", False)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.warning(f"Unread count failed: {e}")
            return 0
        return min(result.count or 0, UNREAD_BADGE_CAP)

    # ---- updates ----

    def _patch(self, user_id: str, rec_ids: List[str], payload: Dict[str, Any]) -> None:
        try:
            self.supabase.table("friend_recommendations")\
                .update(payload)\
                .in_("id", rec_ids)\
                .eq("recipient_id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

    def mark_read(self, user_id: str, rec_id: str) -> None:
        self._patch(user_id, [rec_id], {"is_read": True})

    def mark_many_read(self, user_id: str, rec_ids: List[str]) -> None:
        ids = [i for i in dict.fromkeys(rec_ids) if i]
        if ids:
            self._patch(user_id, ids, {"is_read": True})

    def mark_watched(self, user_id: str, rec_id: str) -> None:
        self._patch(user_id, [rec_id], {
            "is_watched": True,
            "watched_at": self.now().isoformat(),
            "is_read": True,
        })

    def already_recommended(
        self,
        sender_id: str,
        recipient_ids: List[str],
        tmdb_id: Optional[Union[int, str]],
        recommendation_id: Optional[str],
    ) -> Set[str]:
        """Recipients who already got this title from the sender. Lookup errors give an empty set."""
        ids = [i for i in dict.fromkeys(recipient_ids) if i]
        if not ids:
            return set()
        try:
            result = self.supabase.table("friend_recommendations")\
                .select("recipient_id,tmdb_id,recommendation_id")\
                .eq("sender_id", sender_id)\
                .in_("recipient_id", ids)\
                .execute()
        except Exception as e:
            logger.warning(f"Already-recommended lookup failed: {e}")
            return set()

        movie_tmdb = str(tmdb_id) if tmdb_id is not None else None
        matches = set()
        for row in result.data or []:
            row_tmdb = str(row["tmdb_id"]) if row.get("tmdb_id") is not None else None
            row_local = row.get("recommendation_id")
            same_movie = (
                (movie_tmdb is not None and row_tmdb == movie_tmdb)
                or (recommendation_id is not None and row_local == recommendation_id)
                or (movie_tmdb is None and recommendation_id is None and row_tmdb is None and row_local is None)
            )
            if same_movie:
                matches.add(row["recipient_id"])
        return matches

    # ---- reminders ----

    def poll_due_reminders(self, user_id: str, limit: Any = 5) -> List[FriendReminder]:
        """Claim due friend reminders for the user. Each row is returned by at most one poll."""
        limit = clamp_limit(limit)
        now_iso = self.now().isoformat()
        try:
            due = self.supabase.table("friend_recommendations")\
                .select("id,sender_id,movie_title,movie_poster,movie_year,tmdb_id,recommendation_id,remind_at")\
                .eq("recipient_id", user_id)\
                .lte("remind_at", now_iso)\
                .is_("reminder_notified_at", "null")\
                .or_("is_watched.is.null,is_watched.eq.false")\
                .order("remind_at")\
                .limit(limit)\
                .execute()

            claimed = []
            for row in due.data or []:
                patched = self.supabase.table("friend_recommendations")\
                    .update({"reminder_notified_at": now_iso})\
                    .eq("id", row["id"])\
                    .eq("recipient_id", user_id)\
                    .is_("reminder_notified_at", "null")\
                    .execute()
                if patched.data:
                    claimed.append(row)
            if not claimed:
                return []

            try:
                senders = fetch_users_by_ids(self.supabase, (r["sender_id"] for r in claimed), "id,name,avatar")
            except Exception as e:
                logger.warning(f"Sender lookup failed for friend reminders: {e}")
                senders = {}
        except Exception as e:
            logger.warning(f"Friend reminder poll failed: {e}")
            return []

        reminders = []
        for row in claimed:
            sender = senders.get(row["sender_id"]) or {}
            tmdb_id = str(row["tmdb_id"]) if row.get("tmdb_id") is not None else ""
            local_id = str(row["recommendation_id"]) if row.get("recommendation_id") else ""
            reminders.append(FriendReminder(
                id=row["id"],
                sender_id=row["sender_id"],
                sender_name=(sender.get("name") or "").strip() or "Your friend",
                sender_avatar=(sender.get("avatar") or "").strip() or None,
                movie_id=tmdb_id or local_id or row["id"],
                movie_title=row["movie_title"],
                movie_poster=row.get("movie_poster"),
                movie_year=row.get("movie_year"),
                remind_at=str(row["remind_at"]),
                is_tmdb=bool(tmdb_id),
            ))
        return reminders
