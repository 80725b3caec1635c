"""
Client-side state containers: the auth session, the local watchlist and nudges.
"""

from bib.client.api import BibApi
from bib.client.gateway import GatewayError, SessionStore
from bib.modules.auth.validation import validate_signup
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set
import logging

logger = logging.getLogger(__name__)

Listener = Callable[["AuthSession"], None]

WATCHLIST_KEY = "cinema-chudu-watchlist"


class AuthSession:
    """
    Signed-in user and session, kept in sync with session storage.

    start() restores the stored session and validates it against the API. Auth events
    (sign in, sign out, token refresh) may land while that check is still running; the
    first writer wins, so a slow initial fetch never overwrites what an event already set.
    """

    def __init__(self, api: BibApi, store: SessionStore):
        self.api = api
        self.store = store
        self.session: Optional[Dict[str, Any]] = None
        self.loading = True
        self._initialized = False
        self._listeners: List[Listener] = []

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.session.get("user") if self.session else None

    @property
    def user_id(self) -> Optional[str]:
        user = self.user
        return user.get("id") if user else None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.warning(f"Auth listener failed: {e}")

    def _apply(self, session: Optional[Dict[str, Any]]) -> None:
        self._initialized = True
        self.session = session
        self.loading = False
        self._notify()

    async def start(self) -> None:
        session = await self._fetch_initial_session()
        if self._initialized:
            logger.debug("Initial session fetch ignored: an auth event already set the state")
            return
        self._apply(session)

    async def _fetch_initial_session(self) -> Optional[Dict[str, Any]]:
        stored = self.store.load_session()
        if not stored or not stored.get("access_token"):
            return None
        try:
            me = await self.api.me(token=stored["access_token"])
        except GatewayError as e:
            if e.status in (401, 403):
                if not self._initialized:
                    self.store.clear_session()
                return None
            # Offline or server trouble: trust the stored session until an event says otherwise
            logger.debug(f"Session check failed, keeping stored session: {e}")
            return stored
        if isinstance(me, dict) and me.get("id"):
            return {**stored, "user": {**(stored.get("user") or {}), **me}}
        return stored

    def handle_auth_event(self, event: str, session: Optional[Dict[str, Any]]) -> None:
        """Apply an auth-state change (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, ...)"""
        logger.debug(f"Auth event {event}")
        if session is None:
            self.store.clear_session()
        else:
            self.store.save_session(session)
        self._apply(session)

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        token = await self.api.login(email.strip().lower(), password)
        session = {
            "access_token": token["access_token"],
            "refresh_token": token.get("refresh_token"),
            "expires_at": token.get("expires_at"),
            "token_type": token.get("token_type", "bearer"),
            "user": {"id": token["user_id"], "email": token.get("email")},
        }
        self.handle_auth_event("SIGNED_IN", session)
        return session

    async def sign_up(
        self, email: str, password: str, name: str, username: str, birthdate: Optional[str] = None
    ) -> Dict[str, Any]:
        """Validate locally, create the account, then sign in unless email confirmation is pending"""
        cleaned = validate_signup(email, password, name, username, birthdate)
        result = await self.api.signup(
            cleaned["email"], password, cleaned["name"], cleaned["username"], cleaned.get("birthdate")
        )
        if not result.get("needs_email_confirmation"):
            await self.sign_in(cleaned["email"], password)
        return result

    async def sign_out(self) -> None:
        token = self.store.access_token()
        if token:
            try:
                await self.api.logout(token=token)
            except GatewayError as e:
                logger.debug(f"Server sign-out failed, clearing local session anyway: {e}")
        self.handle_auth_event("SIGNED_OUT", None)


class WatchlistStore:
    """Local watchlist: movie id -> {added_at, title, poster}, persisted in the session store"""

    def __init__(self, store: SessionStore, key: str = WATCHLIST_KEY, now: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.key = key
        self.now = now or (lambda: datetime.now(timezone.utc))

    def _state(self) -> Dict[str, Dict[str, Any]]:
        state = self.store.get(self.key)
        return state if isinstance(state, dict) else {}

    def _save(self, state: Dict[str, Dict[str, Any]]) -> None:
        self.store.set(self.key, state)

    def contains(self, movie_id: str) -> bool:
        return movie_id in self._state()

    def add(self, movie_id: str, title: Optional[str] = None, poster: Optional[str] = None) -> None:
        state = self._state()
        state[movie_id] = {"added_at": self.now().isoformat(), "title": title, "poster": poster}
        self._save(state)

    def remove(self, movie_id: str) -> None:
        state = self._state()
        if state.pop(movie_id, None) is not None:
            self._save(state)

    def toggle(self, movie_id: str, title: Optional[str] = None, poster: Optional[str] = None) -> bool:
        """Add or remove; returns True when the movie is now on the list"""
        if self.contains(movie_id):
            self.remove(movie_id)
            return False
        self.add(movie_id, title, poster)
        return True

    def count(self) -> int:
        return len(self._state())

    def ids(self) -> List[str]:
        return list(self._state())

    def items(self) -> List[Dict[str, Any]]:
        return [{"id": movie_id, **item} for movie_id, item in self._state().items()]


class NudgeState:
    def __init__(self, api: BibApi):
        self.api = api
        self.received: List[Dict[str, Any]] = []
        self.unread_count = 0
        self.sent_target_ids: Set[str] = set()
        self.loading = True

    def clear(self) -> None:
        self.received = []
        self.unread_count = 0
        self.sent_target_ids = set()

    async def refresh(self) -> None:
        """Reload received and sent nudges; on failure the state is left empty"""
        try:
            payload = await self.api.received_nudges()
            sent = await self.api.sent_nudge_targets()
        except GatewayError as e:
            logger.debug(f"Nudge refresh failed: {e}")
            self.clear()
        else:
            self.received = payload.get("nudges") or []
            self.unread_count = sum(1 for n in self.received if not n.get("is_read"))
            self.sent_target_ids = set(sent)
        self.loading = False

    async def send(self, to_user_id: str, target_id: str, message: Optional[str] = None, **target: Any) -> Dict[str, Any]:
        """Nudge a friend; target_id is the recommendation id unless target names another key"""
        if not target:
            target = {"recommendation_id": target_id}
        nudge = await self.api.send_nudge(to_user_id, message=message, **target)
        self.sent_target_ids.add(target_id)
        return nudge

    def has_nudged(self, target_id: str) -> bool:
        return target_id in self.sent_target_ids

    async def mark_read(self, nudge_id: str) -> None:
        await self.api.mark_nudge_read(nudge_id)
        for nudge in self.received:
            if nudge.get("id") == nudge_id and not nudge.get("is_read"):
                nudge["is_read"] = True
                self.unread_count = max(0, self.unread_count - 1)

    async def mark_all_read(self) -> None:
        await self.api.mark_all_nudges_read()
        for nudge in self.received:
            nudge["is_read"] = True
        self.unread_count = 0
