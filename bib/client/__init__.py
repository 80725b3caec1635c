"""
Async companion client for the BiB API: session storage, a token-based REST gateway,
typed API wrappers, state containers and the reminder centers.
"""

from bib.client.config import ClientSettings
from bib.client.gateway import GatewayError, RestGateway, SessionStore
from bib.client.api import BibApi, DuplicateRecommendationError, create_api
from bib.client.state import AuthSession, NudgeState, WatchlistStore
from bib.client.reminder_center import (
    LogNotifier,
    Notifier,
    ReminderCenter,
    friend_reminder_center,
    watch_reminder_center,
)

__all__ = [
    "AuthSession",
    "BibApi",
    "ClientSettings",
    "DuplicateRecommendationError",
    "GatewayError",
    "LogNotifier",
    "NudgeState",
    "Notifier",
    "ReminderCenter",
    "RestGateway",
    "SessionStore",
    "WatchlistStore",
    "create_api",
    "friend_reminder_center",
    "watch_reminder_center",
]
