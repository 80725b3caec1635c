from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


class SendRecommendationsRequest(BaseModel):
    # Rows are validated one by one in the service; malformed rows are dropped, not rejected
    recommendations: List[Any] = Field(default_factory=list)


class SkippedRecipients(BaseModel):
    duplicates: List[str] = Field(default_factory=list)
    not_allowed: List[str] = Field(default_factory=list)


class SendRecommendationsResponse(BaseModel):
    sent: int
    sent_recipient_ids: List[str] = Field(default_factory=list)
    skipped: SkippedRecipients = Field(default_factory=SkippedRecipients)


class PersonSummary(BaseModel):
    id: str
    name: str = "Unknown"
    avatar: Optional[str] = None
    email: Optional[str] = None


class FriendRecommendationResponse(BaseModel):
    id: str
    sender_id: Optional[str] = None
    recipient_id: Optional[str] = None
    movie_title: str
    movie_poster: Optional[str] = ""
    movie_year: Optional[int] = None
    personal_message: Optional[str] = ""
    is_read: bool = False
    is_watched: bool = False
    watched_at: Optional[str] = None
    remind_at: Optional[str] = None
    created_at: Optional[str] = None
    tmdb_id: Optional[Union[str, int]] = None
    recommendation_id: Optional[str] = None
    sender: Optional[PersonSummary] = None
    recipient: Optional[PersonSummary] = None

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class AlreadyRecommendedRequest(BaseModel):
    recipient_ids: List[str] = Field(default_factory=list)
    tmdb_id: Optional[Union[int, str]] = None
    recommendation_id: Optional[str] = None


class AlreadyRecommendedResponse(BaseModel):
    recipient_ids: List[str] = Field(default_factory=list)


class PollRequest(BaseModel):
    limit: Any = 5


class FriendReminder(BaseModel):
    id: str
    sender_id: str
    sender_name: str
    sender_avatar: Optional[str] = None
    movie_id: str
    movie_title: str
    movie_poster: Optional[str] = None
    movie_year: Optional[int] = None
    remind_at: str
    is_tmdb: bool


class FriendReminderPollResponse(BaseModel):
    reminders: List[FriendReminder] = Field(default_factory=list)


def to_response_dict(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if v is not None}
