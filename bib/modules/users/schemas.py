from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=80)
    username: Optional[str] = None
    avatar: Optional[str] = None
    theme: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    username: str = ""
    avatar: str = "🎬"
    theme: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Compact user info attached to friends, senders and group members"""
    id: str
    name: str = ""
    username: Optional[str] = None
    avatar: Optional[str] = None
    email: Optional[str] = None
