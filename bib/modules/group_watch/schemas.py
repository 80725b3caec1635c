from pydantic import BaseModel
from typing import Literal, Optional

GroupRole = Literal["owner", "member"]
InviteStatus = Literal["pending", "accepted", "rejected", "canceled"]


class WatchGroupCreate(BaseModel):
    name: str
    description: Optional[str] = None


class WatchGroupUpdate(BaseModel):
    name: str
    description: Optional[str] = None


class WatchGroupResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    role: GroupRole
    member_count: int


class WatchGroupMemberResponse(BaseModel):
    group_id: str
    user_id: str
    role: GroupRole
    name: str
    username: Optional[str] = None
    avatar: Optional[str] = None


class MemberAdd(BaseModel):
    user_id: str


class InviteCreate(BaseModel):
    invitee_id: str


class IncomingInvite(BaseModel):
    id: str
    group_id: str
    group_name: str
    inviter_id: str
    inviter_name: str
    inviter_avatar: Optional[str] = None
    status: InviteStatus
    created_at: Optional[str] = None


class PendingInvite(BaseModel):
    id: str
    group_id: str
    invitee_id: str
    invitee_name: str
    invitee_avatar: Optional[str] = None
    status: InviteStatus
    created_at: Optional[str] = None


class InviteDecision(BaseModel):
    decision: Literal["accepted", "rejected"]


class InviteDecisionResult(BaseModel):
    invite_id: str
    group_id: str
    status: Literal["accepted", "rejected"]


class PickCreate(BaseModel):
    media_type: Literal["movie", "show"] = "movie"
    tmdb_id: str
    title: str
    poster: Optional[str] = None
    release_year: Optional[int] = None
    note: Optional[str] = None


class PickResponse(BaseModel):
    id: str
    group_id: str
    sender_id: str
    sender_name: str
    sender_avatar: Optional[str] = None
    media_type: Literal["movie", "show"]
    tmdb_id: str
    title: str
    poster: Optional[str] = None
    release_year: Optional[int] = None
    note: Optional[str] = None
    created_at: Optional[str] = None
    upvotes: int = 0
    downvotes: int = 0
    score: int = 0
    my_vote: Literal[-1, 0, 1] = 0


class VoteRequest(BaseModel):
    vote_value: Literal[-1, 1]
