"""
Typed wrappers around the BiB API routes.
"""

from bib.client.config import ClientSettings
from bib.client.gateway import GatewayError, RestGateway, SessionStore
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import asyncio
import logging
import re

logger = logging.getLogger(__name__)

SEND_MAX_RETRIES = 2
SEND_RETRY_DELAYS = (1.5, 3.0)
UNIQUE_VIOLATION = "23505"
INTERNAL_ERROR = "XX000"

_RETRYABLE_MESSAGE = re.compile(r"server is busy|try again", re.IGNORECASE)


class DuplicateRecommendationError(GatewayError):
    """The recipient already has this title from the sender"""

    def __init__(self, message: str = "DUPLICATE", status: Optional[int] = 409):
        super().__init__(message, status=status, code=UNIQUE_VIOLATION)


def _is_retryable(error: GatewayError) -> bool:
    return error.code == INTERNAL_ERROR or bool(_RETRYABLE_MESSAGE.search(error.message or ""))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _items(payload: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


class BibApi:
    def __init__(self, gateway: RestGateway, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.gateway = gateway
        self.sleep = sleep

    # ---- auth ----

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self.gateway.request("POST", "/auth/login", json={"email": email, "password": password})

    async def signup(
        self, email: str, password: str, name: str, username: str, birthdate: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self.gateway.request("POST", "/auth/signup", json={
            "email": email,
            "password": password,
            "name": name,
            "username": username,
            "birthdate": birthdate,
        })

    async def logout(self, token: Optional[str] = None) -> None:
        await self.gateway.request("POST", "/auth/logout", token=token)

    async def me(self, token: Optional[str] = None) -> Dict[str, Any]:
        return await self.gateway.request("GET", "/auth/me", token=token)

    async def username_available(self, username: str) -> bool:
        payload = await self.gateway.request("GET", "/auth/username-available", params={"username": username})
        return bool(isinstance(payload, dict) and payload.get("available"))

    # ---- users and friends ----

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Profile by id, None when missing or on error"""
        try:
            return await self.gateway.request("GET", f"/users/{user_id}")
        except GatewayError as e:
            logger.debug(f"Profile lookup for {user_id} failed: {e}")
            return None

    async def update_profile(self, **fields: Any) -> Dict[str, Any]:
        return await self.gateway.request("PUT", "/users/me", json=fields)

    async def search_users(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/users/search", params={"q": query, "limit": limit}) or []

    async def list_friends(self) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/friends") or []

    async def add_friend(self, friend_id: str) -> Dict[str, Any]:
        return await self.gateway.request("POST", "/friends", json={"friend_id": friend_id})

    async def remove_friend(self, friendship_id: str) -> None:
        await self.gateway.request("DELETE", f"/friends/{friendship_id}")

    # ---- friend recommendations ----

    async def send_friend_recommendations(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Send recommendations, retrying only when the backend says it is busy.

        Returns {"sent", "sent_recipient_ids", "skipped": {"duplicates", "not_allowed"}}.
        A response without a numeric "sent" is an error: nothing is assumed to have been sent.
        """
        last_error: Optional[GatewayError] = None
        for attempt in range(SEND_MAX_RETRIES + 1):
            try:
                payload = await self.gateway.request(
                    "POST", "/friend-recommendations/send", json={"recommendations": rows}
                )
            except GatewayError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise DuplicateRecommendationError(status=e.status)
                last_error = e
                if not _is_retryable(e) or attempt >= SEND_MAX_RETRIES:
                    raise
                logger.debug(f"Send busy (attempt {attempt + 1}), retrying: {e}")
                await self.sleep(SEND_RETRY_DELAYS[attempt])
                continue

            data = payload if isinstance(payload, dict) else {}
            sent = data.get("sent")
            if not isinstance(sent, int) or isinstance(sent, bool):
                raise GatewayError("Unexpected response from server. Please try again.")
            skipped = data.get("skipped") if isinstance(data.get("skipped"), dict) else {}
            return {
                "sent": sent,
                "sent_recipient_ids": _string_list(data.get("sent_recipient_ids")),
                "skipped": {
                    "duplicates": _string_list(skipped.get("duplicates")),
                    "not_allowed": _string_list(skipped.get("not_allowed")),
                },
            }
        raise last_error or GatewayError("Request failed")

    async def received_friend_recommendations(self) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/friend-recommendations/received") or []

    async def sent_friend_recommendations(self) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/friend-recommendations/sent") or []

    async def recent_friend_recommendations(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/friend-recommendations/recent", params={"limit": limit}) or []

    async def friend_recommendations_unread_count(self) -> int:
        try:
            payload = await self.gateway.request("GET", "/friend-recommendations/unread-count")
        except GatewayError as e:
            logger.debug(f"Unread count failed: {e}")
            return 0
        count = payload.get("count") if isinstance(payload, dict) else 0
        return min(count, 99) if isinstance(count, int) else 0

    async def mark_friend_recommendation_read(self, rec_id: str) -> None:
        await self.gateway.request("POST", f"/friend-recommendations/{rec_id}/read", timeout=10)

    async def mark_friend_recommendations_read(self, rec_ids: Iterable[str]) -> None:
        ids = list(rec_ids)
        if ids:
            await self.gateway.request("POST", "/friend-recommendations/read", json={"ids": ids}, timeout=15)

    async def mark_friend_recommendation_watched(self, rec_id: str) -> None:
        await self.gateway.request("POST", f"/friend-recommendations/{rec_id}/watched", timeout=10)

    async def already_recommended_recipient_ids(
        self,
        recipient_ids: List[str],
        tmdb_id: Optional[int] = None,
        recommendation_id: Optional[str] = None,
    ) -> set:
        """Recipients that already have this title; lookup failures give an empty set"""
        if not recipient_ids:
            return set()
        try:
            payload = await self.gateway.request("POST", "/friend-recommendations/already-recommended", json={
                "recipient_ids": recipient_ids,
                "tmdb_id": tmdb_id,
                "recommendation_id": recommendation_id,
            }, timeout=10)
        except GatewayError as e:
            logger.debug(f"Already-recommended lookup failed: {e}")
            return set()
        return set(_string_list(payload.get("recipient_ids") if isinstance(payload, dict) else None))

    async def poll_due_friend_reminders(self, limit: int = 5) -> List[Dict[str, Any]]:
        payload = await self.gateway.request("POST", "/friend-recommendations/reminders/poll", json={"limit": limit})
        return _items(payload, "reminders")

    # ---- watch reminders ----

    async def get_watch_reminder_for_movie(self, movie_id: str) -> Optional[Dict[str, Any]]:
        payload = await self.gateway.request("GET", "/watch-reminders", params={"movie_id": movie_id})
        reminders = _items(payload, "reminders")
        return reminders[0] if reminders else None

    async def get_upcoming_watch_reminders(self) -> List[Dict[str, Any]]:
        return _items(await self.gateway.request("GET", "/watch-reminders"), "reminders")

    async def upsert_watch_reminder(
        self,
        movie_id: str,
        movie_title: str,
        remind_at: str,
        movie_poster: Optional[str] = None,
        movie_year: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload = await self.gateway.request("POST", "/watch-reminders", json={
            "movie_id": movie_id,
            "movie_title": movie_title,
            "movie_poster": movie_poster,
            "movie_year": movie_year,
            "remind_at": remind_at,
        })
        reminder = payload.get("reminder") if isinstance(payload, dict) else None
        if not reminder:
            raise GatewayError("Reminder saved but response was empty.")
        return reminder

    async def delete_watch_reminder(self, movie_id: str) -> None:
        await self.gateway.request("DELETE", "/watch-reminders", params={"movie_id": movie_id})

    async def poll_due_watch_reminders(self, limit: int = 5) -> List[Dict[str, Any]]:
        payload = await self.gateway.request("POST", "/watch-reminders/poll", json={"limit": limit})
        return _items(payload, "reminders")

    # ---- group watch ----

    async def create_watch_group(self, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        return await self.gateway.request("POST", "/watch-groups", json={"name": name, "description": description})

    async def update_watch_group(self, group_id: str, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        if len((name or "").strip()) < 2:
            raise GatewayError("Group name must be at least 2 characters.")
        return await self.gateway.request(
            "PUT", f"/watch-groups/{group_id}", json={"name": name, "description": description}
        )

    async def my_watch_groups(self) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/watch-groups") or []

    async def watch_group_members(self, group_id: str) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", f"/watch-groups/{group_id}/members") or []

    async def add_watch_group_member(self, group_id: str, user_id: str) -> None:
        await self.gateway.request("POST", f"/watch-groups/{group_id}/members", json={"user_id": user_id})

    async def leave_watch_group(self, group_id: str) -> None:
        await self.gateway.request("DELETE", f"/watch-groups/{group_id}/members/me")

    async def send_watch_group_invite(self, group_id: str, invitee_id: str) -> None:
        if not group_id or not invitee_id:
            raise GatewayError("Missing invite details.")
        await self.gateway.request("POST", f"/watch-groups/{group_id}/invites", json={"invitee_id": invitee_id})

    async def incoming_watch_group_invites(self) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", "/watch-groups/invites/incoming") or []

    async def pending_watch_group_invites(self, group_id: str) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", f"/watch-groups/{group_id}/invites") or []

    async def respond_to_watch_group_invite(self, invite_id: str, decision: str) -> Dict[str, Any]:
        return await self.gateway.request(
            "POST", f"/watch-groups/invites/{invite_id}/respond", json={"decision": decision}
        )

    async def add_watch_group_pick(self, group_id: str, **pick: Any) -> None:
        await self.gateway.request("POST", f"/watch-groups/{group_id}/picks", json=pick)

    async def watch_group_picks(self, group_id: str) -> List[Dict[str, Any]]:
        return await self.gateway.request("GET", f"/watch-groups/{group_id}/picks") or []

    async def vote_on_watch_group_pick(self, pick_id: str, vote_value: int) -> None:
        await self.gateway.request("PUT", f"/watch-groups/picks/{pick_id}/vote", json={"vote_value": vote_value})

    async def clear_watch_group_pick_vote(self, pick_id: str) -> None:
        await self.gateway.request("DELETE", f"/watch-groups/picks/{pick_id}/vote")

    # ---- nudges ----

    async def received_nudges(self) -> Dict[str, Any]:
        return await self.gateway.request("GET", "/nudges") or {}

    async def sent_nudge_targets(self) -> List[str]:
        payload = await self.gateway.request("GET", "/nudges/sent")
        return _string_list(payload.get("target_ids") if isinstance(payload, dict) else None)

    async def send_nudge(self, to_user_id: str, **target: Any) -> Dict[str, Any]:
        return await self.gateway.request("POST", "/nudges", json={"to_user_id": to_user_id, **target})

    async def mark_nudge_read(self, nudge_id: str) -> None:
        await self.gateway.request("POST", f"/nudges/{nudge_id}/read")

    async def mark_all_nudges_read(self) -> None:
        await self.gateway.request("POST", "/nudges/read-all")

    # ---- push ----

    async def save_push_subscription(self, endpoint: str, p256dh: str, auth: str) -> None:
        await self.gateway.request("POST", "/push-subscriptions", json={
            "endpoint": endpoint,
            "p256dh": p256dh,
            "auth": auth,
        })

    async def delete_push_subscription(self, endpoint: str) -> None:
        await self.gateway.request("DELETE", "/push-subscriptions", json={"endpoint": endpoint})


def create_api(settings: Optional[ClientSettings] = None, transport=None) -> BibApi:
    """Wire session storage, the gateway and the API wrappers from client settings"""
    settings = settings or ClientSettings()
    store = SessionStore(settings.session_path, settings.project_ref)
    gateway = RestGateway(
        settings.api_url,
        settings.supabase_anon_key,
        store,
        settings.request_timeout_seconds,
        transport=transport,
    )
    return BibApi(gateway)
