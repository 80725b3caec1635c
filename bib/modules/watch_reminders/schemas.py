from pydantic import BaseModel, Field
from typing import Any, List, Optional


class WatchReminderUpsert(BaseModel):
    movie_id: Optional[str] = None
    movie_title: Optional[str] = None
    movie_poster: Optional[str] = None
    movie_year: Optional[Any] = None
    remind_at: Optional[str] = None


class WatchReminderDelete(BaseModel):
    movie_id: Optional[str] = None


class WatchReminderResponse(BaseModel):
    id: str
    movie_id: str
    movie_title: str
    movie_poster: Optional[str] = None
    movie_year: Optional[int] = None
    remind_at: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    notified_at: Optional[str] = None
    canceled_at: Optional[str] = None

    class Config:
        from_attributes = True


class WatchReminderList(BaseModel):
    reminders: List[WatchReminderResponse] = Field(default_factory=list)


class WatchReminderSaved(BaseModel):
    reminder: WatchReminderResponse


class PollRequest(BaseModel):
    limit: Any = 5
