"""
Reminder / notification centers.

A ReminderCenter polls for due items on a fixed interval, turns unseen ones into
short-lived toasts (newest first, at most max_toasts) and, when the notifier has
permission, emits a native notification for each. Watch reminders and friend reminders
are two configurations of the same center.

Lifecycle: idle (no user) -> polling -> toasts visible -> polling. Switching or clearing
the user cancels every timer and forgets the toasts, the seen ids and whether permission
was already requested. Failures never stop the loop; the next tick simply tries again.
"""

from abc import ABC, abstractmethod
from bib.modules.watch_reminders.paths import get_friend_reminder_open_path, get_watch_reminder_open_path
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
import asyncio
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT = "default"
GRANTED = "granted"
DENIED = "denied"

PollFn = Callable[[int], Awaitable[List[Dict[str, Any]]]]


@dataclass
class Presentation:
    toast_title: str
    native_title: str
    body: str
    open_path: str


@dataclass
class Toast:
    toast_id: str
    item_id: str
    item: Dict[str, Any]
    title: str
    body: str
    open_path: str
    created_at: float
    expires_at: float


class Notifier(ABC):
    """Native notification surface. Permission is 'default' until requested, then granted or denied."""

    def permission(self) -> str:
        return DENIED

    async def request_permission(self) -> str:
        return self.permission()

    @abstractmethod
    def notify(self, title: str, body: str, tag: str, open_path: str) -> None:
        ...


class LogNotifier(Notifier):
    """Headless notifier: 'shows' notifications by logging them"""

    def __init__(self, permission: str = DEFAULT, grant_on_request: bool = True):
        self._permission = permission
        self.grant_on_request = grant_on_request

    def permission(self) -> str:
        return self._permission

    async def request_permission(self) -> str:
        if self._permission == DEFAULT:
            self._permission = GRANTED if self.grant_on_request else DENIED
        return self._permission

    def notify(self, title: str, body: str, tag: str, open_path: str) -> None:
        logger.info(f"[{tag}] {title}: {body} -> {open_path}")


class ReminderCenter:
    def __init__(
        self,
        poll: PollFn,
        present: Callable[[Dict[str, Any]], Presentation],
        notifier: Optional[Notifier] = None,
        tag_prefix: str = "reminder",
        interval_seconds: float = 45.0,
        toast_ttl_seconds: float = 45.0,
        max_toasts: int = 5,
        poll_limit: int = 5,
        clock: Callable[[], float] = time.time,
    ):
        self._poll = poll
        self._present = present
        self.notifier = notifier or LogNotifier()
        self.tag_prefix = tag_prefix
        self.interval_seconds = interval_seconds
        self.toast_ttl_seconds = toast_ttl_seconds
        self.max_toasts = max_toasts
        self.poll_limit = poll_limit
        self.clock = clock

        self.user_id: Optional[str] = None
        self._toasts: List[Toast] = []
        self._seen: Set[str] = set()
        self._permission_requested = False
        self._task: Optional[asyncio.Task] = None
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._listeners: List[Callable[[List[Toast]], None]] = []

    # ---- lifecycle ----

    @property
    def state(self) -> str:
        if not self.user_id:
            return "idle"
        return "toast-visible" if self.toasts else "polling"

    def start(self, user_id: Optional[str]) -> None:
        """Begin polling for user_id (first tick right away); None goes back to idle"""
        if user_id == self.user_id and (self._task is not None or not user_id):
            return
        self.stop()
        self.user_id = user_id
        if user_id:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self.user_id = None
        self._toasts = []
        self._seen = set()
        self._permission_requested = False
        self._changed()

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.warning(f"{self.tag_prefix} tick failed: {e}")
            await asyncio.sleep(self.interval_seconds)

    # ---- toasts ----

    @property
    def toasts(self) -> List[Toast]:
        now = self.clock()
        expired = [t for t in self._toasts if t.expires_at <= now]
        for toast in expired:
            self._drop(toast.toast_id)
        return list(self._toasts)

    def add_listener(self, listener: Callable[[List[Toast]], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(list(self._toasts))
            except Exception as e:
                logger.warning(f"Toast listener failed: {e}")

    def _drop(self, toast_id: str) -> bool:
        handle = self._timers.pop(toast_id, None)
        if handle is not None:
            handle.cancel()
        before = len(self._toasts)
        self._toasts = [t for t in self._toasts if t.toast_id != toast_id]
        return len(self._toasts) != before

    def dismiss(self, toast_id: str) -> None:
        if self._drop(toast_id):
            self._changed()

    def _schedule_expiry(self, toast: Toast) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[toast.toast_id] = loop.call_later(self.toast_ttl_seconds, self.dismiss, toast.toast_id)

    def _push_toasts(self, items: List[Dict[str, Any]]) -> List[Toast]:
        created = []
        for item in items:
            item_id = str(item["id"])
            presentation = self._present(item)
            now = self.clock()
            toast = Toast(
                toast_id=f"{item_id}-{int(now * 1000)}",
                item_id=item_id,
                item=item,
                title=presentation.toast_title,
                body=presentation.body,
                open_path=presentation.open_path,
                created_at=now,
                expires_at=now + self.toast_ttl_seconds,
            )
            self._toasts.insert(0, toast)
            self._schedule_expiry(toast)
            created.append(toast)

        for dropped in self._toasts[self.max_toasts:]:
            handle = self._timers.pop(dropped.toast_id, None)
            if handle is not None:
                handle.cancel()
        self._toasts = self._toasts[:self.max_toasts]
        self._changed()
        return created

    # ---- polling ----

    async def tick(self) -> List[Dict[str, Any]]:
        """One poll: returns the items that were new to this session"""
        user_id = self.user_id
        if not user_id:
            return []
        try:
            due = await self._poll(self.poll_limit)
        except Exception as e:
            logger.warning(f"{self.tag_prefix} poll failed: {e}")
            return []
        if self.user_id != user_id:
            # user switched while the poll was in flight
            return []

        fresh = []
        for item in due or []:
            if not isinstance(item, dict):
                continue
            item_id = str(item.get("id") or "")
            if not item_id or item_id in self._seen:
                continue
            self._seen.add(item_id)
            fresh.append(item)
        if not fresh:
            return []

        self._push_toasts(fresh)
        await self._notify_native(fresh)
        return fresh

    async def _notify_native(self, items: List[Dict[str, Any]]) -> None:
        try:
            permission = self.notifier.permission()
        except Exception as e:
            logger.debug(f"Notification permission unavailable: {e}")
            return
        if permission == DEFAULT and not self._permission_requested:
            self._permission_requested = True
            try:
                permission = await self.notifier.request_permission()
            except Exception as e:
                logger.debug(f"Notification permission request failed: {e}")
                permission = self.notifier.permission()
        if permission != GRANTED:
            return

        for item in items:
            presentation = self._present(item)
            try:
                self.notifier.notify(
                    presentation.native_title,
                    presentation.body,
                    f"{self.tag_prefix}-{item['id']}",
                    presentation.open_path,
                )
            except Exception as e:
                logger.debug(f"Native notification failed: {e}")


def present_watch_reminder(item: Dict[str, Any]) -> Presentation:
    title = item.get("movie_title") or "your movie"
    return Presentation(
        toast_title=f"Watch reminder: {title}",
        native_title="Movie reminder",
        body=f"Time to watch {title}",
        open_path=get_watch_reminder_open_path(item.get("movie_id")),
    )


def present_friend_reminder(item: Dict[str, Any]) -> Presentation:
    title = item.get("movie_title") or "a movie"
    sender = item.get("sender_name") or "Your friend"
    return Presentation(
        toast_title=f"Friend reminder: {title}",
        native_title="Friend reminder",
        body=f"{sender} reminded you to watch {title}",
        open_path=get_friend_reminder_open_path(item.get("movie_id"), bool(item.get("is_tmdb"))),
    )


def watch_reminder_center(api, notifier: Optional[Notifier] = None, settings=None, **overrides) -> ReminderCenter:
    """Center for the user's own watch reminders"""
    return ReminderCenter(
        api.poll_due_watch_reminders,
        present_watch_reminder,
        notifier=notifier,
        tag_prefix="watch-reminder",
        **{**_settings_kwargs(settings), **overrides},
    )


def friend_reminder_center(api, notifier: Optional[Notifier] = None, settings=None, **overrides) -> ReminderCenter:
    """Center for reminders attached to recommendations from friends"""
    return ReminderCenter(
        api.poll_due_friend_reminders,
        present_friend_reminder,
        notifier=notifier,
        tag_prefix="friend-reminder",
        **{**_settings_kwargs(settings), **overrides},
    )


def _settings_kwargs(settings) -> Dict[str, Any]:
    if settings is None:
        return {}
    return {
        "interval_seconds": settings.reminder_poll_interval_seconds,
        "toast_ttl_seconds": settings.reminder_toast_ttl_seconds,
        "max_toasts": settings.reminder_max_toasts,
        "poll_limit": settings.reminder_poll_limit,
    }
