from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.watch_reminders.schemas import (
    PollRequest,
    WatchReminderDelete,
    WatchReminderList,
    WatchReminderSaved,
    WatchReminderUpsert,
)
from bib.modules.watch_reminders.service import WatchReminderService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/watch-reminders", tags=["watch-reminders"])


def get_watch_reminder_service(supabase: Client = Depends(get_user_supabase)) -> WatchReminderService:
    return WatchReminderService(supabase)


@router.get("", response_model=WatchReminderList)
async def list_watch_reminders(
    movie_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    service: WatchReminderService = Depends(get_watch_reminder_service)
):
    """Upcoming reminders, or the one for movie_id"""
    return WatchReminderList(reminders=service.list_reminders(current_user["id"], movie_id))


@router.post("", response_model=WatchReminderSaved)
async def upsert_watch_reminder(
    body: WatchReminderUpsert,
    current_user: Dict = Depends(get_current_user),
    service: WatchReminderService = Depends(get_watch_reminder_service)
):
    """Create or reschedule a reminder"""
    return WatchReminderSaved(reminder=service.upsert(current_user["id"], body))


@router.delete("")
async def delete_watch_reminder(
    movie_id: Optional[str] = None,
    body: Optional[WatchReminderDelete] = None,
    current_user: Dict = Depends(get_current_user),
    service: WatchReminderService = Depends(get_watch_reminder_service)
):
    """Delete the reminder for a movie (movie_id in the body or the query string)"""
    target = (body.movie_id if body is not None else None) or movie_id
    service.delete(current_user["id"], target)
    return {"ok": True}


@router.post("/poll", response_model=WatchReminderList)
async def poll_watch_reminders(
    body: Optional[PollRequest] = None,
    current_user: Dict = Depends(get_current_user),
    service: WatchReminderService = Depends(get_watch_reminder_service)
):
    """Claim due reminders"""
    limit = body.limit if body is not None else 5
    return WatchReminderList(reminders=service.poll_due(current_user["id"], limit))
