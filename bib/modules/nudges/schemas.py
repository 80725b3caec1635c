from pydantic import BaseModel, Field
from typing import List, Optional


class NudgeCreate(BaseModel):
    to_user_id: str
    recommendation_id: Optional[str] = None
    friend_recommendation_id: Optional[str] = None
    tmdb_id: Optional[str] = None
    movie_title: Optional[str] = None
    movie_poster: Optional[str] = None
    movie_year: Optional[int] = None
    message: Optional[str] = None


class NudgeSender(BaseModel):
    id: str
    name: str = "Friend"
    avatar: Optional[str] = None


class NudgeResponse(BaseModel):
    id: str
    from_user_id: str
    to_user_id: str
    recommendation_id: Optional[str] = None
    friend_recommendation_id: Optional[str] = None
    tmdb_id: Optional[str] = None
    movie_title: Optional[str] = None
    movie_poster: Optional[str] = None
    movie_year: Optional[int] = None
    message: Optional[str] = None
    is_read: bool = False
    created_at: Optional[str] = None
    from_user: Optional[NudgeSender] = None

    class Config:
        from_attributes = True


class ReceivedNudges(BaseModel):
    nudges: List[NudgeResponse] = Field(default_factory=list)
    unread_count: int = 0


class SentNudgeTargets(BaseModel):
    target_ids: List[str] = Field(default_factory=list)
