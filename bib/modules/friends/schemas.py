from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class FriendAdd(BaseModel):
    friend_id: str


class FriendshipResponse(BaseModel):
    id: str
    user_id: str
    friend_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FriendResponse(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    username: str = ""
    avatar: str = "🎬"
    created_at: Optional[datetime] = None
    friendship_id: Optional[str] = None
