from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_user_supabase
from bib.modules.group_watch.schemas import (
    IncomingInvite,
    InviteCreate,
    InviteDecision,
    InviteDecisionResult,
    MemberAdd,
    PendingInvite,
    PickCreate,
    PickResponse,
    VoteRequest,
    WatchGroupCreate,
    WatchGroupMemberResponse,
    WatchGroupResponse,
    WatchGroupUpdate,
)
from bib.modules.group_watch.service import GroupWatchService
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/watch-groups", tags=["watch-groups"])


def get_group_watch_service(supabase: Client = Depends(get_user_supabase)) -> GroupWatchService:
    return GroupWatchService(supabase)


@router.get("", response_model=List[WatchGroupResponse])
async def list_my_groups(
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    """Groups the caller belongs to"""
    return service.list_my_groups(current_user["id"])


@router.post("", response_model=WatchGroupResponse, status_code=201)
async def create_group(
    body: WatchGroupCreate,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    return service.create_group(current_user["id"], body.name, body.description)


@router.get("/invites/incoming", response_model=List[IncomingInvite])
async def incoming_invites(
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    return service.incoming_invites(current_user["id"])


@router.post("/invites/{invite_id}/respond", response_model=InviteDecisionResult)
async def respond_to_invite(
    invite_id: str,
    body: InviteDecision,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    """Accept or reject an invite"""
    return service.respond_to_invite(invite_id, body.decision)


@router.put("/{group_id}", response_model=WatchGroupResponse)
async def update_group(
    group_id: str,
    body: WatchGroupUpdate,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    """Rename a group or change its description (owner only, enforced by RLS)"""
    return service.update_group(group_id, body.name, body.description)


@router.get("/{group_id}/members", response_model=List[WatchGroupMemberResponse])
async def list_members(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    return service.list_members(group_id)


@router.post("/{group_id}/members", status_code=204)
async def add_member(
    group_id: str,
    body: MemberAdd,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    service.add_member(group_id, body.user_id)
    return None


@router.delete("/{group_id}/members/me", status_code=204)
async def leave_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    service.leave_group(group_id, current_user["id"])
    return None


@router.post("/{group_id}/invites", status_code=204)
async def send_invite(
    group_id: str,
    body: InviteCreate,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    """Invite a friend to the group"""
    service.send_invite(group_id, current_user["id"], body.invitee_id)
    return None


@router.get("/{group_id}/invites", response_model=List[PendingInvite])
async def pending_invites(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    return service.pending_invites(group_id)


@router.get("/{group_id}/picks", response_model=List[PickResponse])
async def list_picks(
    group_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    """Group picks ranked by votes"""
    return service.list_picks(group_id, current_user["id"])


@router.post("/{group_id}/picks", status_code=204)
async def add_pick(
    group_id: str,
    body: PickCreate,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    service.add_pick(group_id, current_user["id"], body)
    return None


@router.put("/picks/{pick_id}/vote", status_code=204)
async def vote_on_pick(
    pick_id: str,
    body: VoteRequest,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    service.vote(pick_id, current_user["id"], body.vote_value)
    return None


@router.delete("/picks/{pick_id}/vote", status_code=204)
async def clear_vote(
    pick_id: str,
    current_user: Dict = Depends(get_current_user),
    service: GroupWatchService = Depends(get_group_watch_service)
):
    service.clear_vote(pick_id, current_user["id"])
    return None
