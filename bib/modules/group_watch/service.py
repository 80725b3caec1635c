from supabase import Client
from bib.core.errors import error_message, raise_for_api_error
from bib.core.timestamps import parse_timestamp, utc_now
from bib.modules.group_watch.schemas import (
    IncomingInvite,
    InviteDecisionResult,
    PendingInvite,
    PickCreate,
    PickResponse,
    WatchGroupMemberResponse,
    WatchGroupResponse,
)
from bib.modules.users.service import fetch_users_by_ids
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

GROUP_COLUMNS = "id,owner_id,name,description,created_at,updated_at"
MEMBER_COLUMNS = "group_id,user_id,role"
INVITE_COLUMNS = "id,group_id,inviter_id,invitee_id,status,created_at,updated_at,responded_at"
PICK_COLUMNS = "id,group_id,sender_id,media_type,tmdb_id,title,poster,release_year,note,created_at"

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 60
MAX_DESCRIPTION_LENGTH = 300
MAX_PICK_TITLE_LENGTH = 200
MAX_POSTER_LENGTH = 500
MAX_NOTE_LENGTH = 400

DUPLICATE_PICK_MESSAGE = "This title is already in the group picks."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _optional_text(value: Optional[str], limit: int) -> Optional[str]:
    cleaned = (value or "").strip()
    return cleaned[:limit] if cleaned else None


def _sort_time(value: Any) -> datetime:
    return parse_timestamp(value) or _EPOCH


def _group(row: Dict[str, Any], role: str, member_count: int) -> WatchGroupResponse:
    return WatchGroupResponse(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        description=row.get("description"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        role=role,
        member_count=member_count,
    )


class GroupWatchService:
    def __init__(self, supabase: Client, now: Callable[[], datetime] = utc_now):
        self.supabase = supabase
        self.now = now

    # ---- groups ----

    def create_group(self, owner_id: str, name: str, description: Optional[str] = None) -> WatchGroupResponse:
        """Create a group and record the owner as its first member"""
        clean_name = (name or "").strip()
        if len(clean_name) < MIN_NAME_LENGTH:
            raise HTTPException(status_code=400, detail="Group name must be at least 2 characters.")
        try:
            result = self.supabase.table("watch_groups").insert({
                "owner_id": owner_id,
                "name": clean_name[:MAX_NAME_LENGTH],
                "description": _optional_text(description, MAX_DESCRIPTION_LENGTH),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group.")
            row = result.data[0]
            self.supabase.table("watch_group_members")\
                .upsert({"group_id": row["id"], "user_id": owner_id, "role": "owner"}, on_conflict="group_id,user_id")\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to create group.")

        logger.info(f"Watch group {row['id']} created by {owner_id}")
        return _group(row, "owner", 1)

    def update_group(self, group_id: str, name: str, description: Optional[str] = None) -> WatchGroupResponse:
        clean_name = (name or "").strip()
        if len(clean_name) < MIN_NAME_LENGTH:
            raise HTTPException(status_code=400, detail="Group name must be at least 2 characters.")
        try:
            result = self.supabase.table("watch_groups")\
                .update({
                    "name": clean_name[:MAX_NAME_LENGTH],
                    "description": _optional_text(description, MAX_DESCRIPTION_LENGTH),
                    "updated_at": self.now().isoformat(),
                })\
                .eq("id", group_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Failed to update group.")
            members = self.supabase.table("watch_group_members")\
                .select(MEMBER_COLUMNS)\
                .eq("group_id", group_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to update group.")

        return _group(result.data[0], "owner", len(members.data or []) or 1)

    def list_my_groups(self, user_id: str) -> List[WatchGroupResponse]:
        """Groups the user belongs to: owned groups first, then most recently updated"""
        try:
            memberships = self.supabase.table("watch_group_members")\
                .select(MEMBER_COLUMNS)\
                .eq("user_id", user_id)\
                .execute()
            if not memberships.data:
                return []
            role_by_group = {m["group_id"]: m["role"] for m in memberships.data}
            group_ids = list(role_by_group)

            groups = self.supabase.table("watch_groups")\
                .select(GROUP_COLUMNS)\
                .in_("id", group_ids)\
                .execute()
            all_members = self.supabase.table("watch_group_members")\
                .select(MEMBER_COLUMNS)\
                .in_("group_id", group_ids)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        counts: Dict[str, int] = {}
        for member in all_members.data or []:
            counts[member["group_id"]] = counts.get(member["group_id"], 0) + 1

        result = [
            _group(row, role_by_group[row["id"]], counts.get(row["id"], 1))
            for row in (groups.data or [])
            if row["id"] in role_by_group
        ]
        result.sort(key=lambda g: _sort_time(g.updated_at), reverse=True)
        result.sort(key=lambda g: g.role != "owner")
        return result

    def list_members(self, group_id: str) -> List[WatchGroupMemberResponse]:
        """Members with profile info: the owner first, then by name"""
        try:
            rows = self.supabase.table("watch_group_members")\
                .select(MEMBER_COLUMNS)\
                .eq("group_id", group_id)\
                .execute()
            if not rows.data:
                return []
            users = fetch_users_by_ids(self.supabase, (r["user_id"] for r in rows.data), "id,name,username,avatar")
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        members = []
        for row in rows.data:
            user = users.get(row["user_id"])
            if not user:
                continue
            members.append(WatchGroupMemberResponse(
                group_id=row["group_id"],
                user_id=row["user_id"],
                role=row["role"],
                name=user.get("name") or "User",
                username=user.get("username"),
                avatar=user.get("avatar"),
            ))
        members.sort(key=lambda m: (m.role != "owner", m.name.lower()))
        return members

    def add_member(self, group_id: str, member_user_id: str) -> None:
        try:
            self.supabase.table("watch_group_members").insert({
                "group_id": group_id,
                "user_id": member_user_id,
                "role": "member",
            }).execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail="This friend is already in the group.")

    def leave_group(self, group_id: str, user_id: str) -> None:
        try:
            self.supabase.table("watch_group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to leave group.")

    # ---- invites ----

    def send_invite(self, group_id: str, inviter_id: str, invitee_id: str) -> None:
        if not group_id or not inviter_id or not invitee_id:
            raise HTTPException(status_code=400, detail="Missing invite details.")
        if inviter_id == invitee_id:
            raise HTTPException(status_code=400, detail="You cannot invite yourself.")
        try:
            existing_member = self.supabase.table("watch_group_members")\
                .select(MEMBER_COLUMNS)\
                .eq("group_id", group_id)\
                .eq("user_id", invitee_id)\
                .limit(1)\
                .execute()
            if existing_member.data:
                raise HTTPException(status_code=409, detail="This friend is already in the group.")

            existing_invite = self.supabase.table("watch_group_invites")\
                .select("id")\
                .eq("group_id", group_id)\
                .eq("invitee_id", invitee_id)\
                .eq("status", "pending")\
                .limit(1)\
                .execute()
            if existing_invite.data:
                raise HTTPException(status_code=409, detail="Invite already pending for this friend.")

            self.supabase.table("watch_group_invites").insert({
                "group_id": group_id,
                "inviter_id": inviter_id,
                "invitee_id": invitee_id,
                "status": "pending",
            }).execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail="Invite already pending for this friend.")

    def incoming_invites(self, user_id: str) -> List[IncomingInvite]:
        """Pending invites addressed to the user, newest first"""
        try:
            invites = self.supabase.table("watch_group_invites")\
                .select(INVITE_COLUMNS)\
                .eq("invitee_id", user_id)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .execute()
            if not invites.data:
                return []
            inviters = fetch_users_by_ids(self.supabase, (i["inviter_id"] for i in invites.data), "id,name,avatar")
            group_ids = list(dict.fromkeys(i["group_id"] for i in invites.data))
            groups = self.supabase.table("watch_groups")\
                .select("id,name")\
                .in_("id", group_ids)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        group_names = {g["id"]: g.get("name") for g in (groups.data or [])}
        return [
            IncomingInvite(
                id=invite["id"],
                group_id=invite["group_id"],
                group_name=group_names.get(invite["group_id"]) or "Group",
                inviter_id=invite["inviter_id"],
                inviter_name=(inviters.get(invite["inviter_id"]) or {}).get("name") or "Friend",
                inviter_avatar=(inviters.get(invite["inviter_id"]) or {}).get("avatar"),
                status=invite["status"],
                created_at=invite.get("created_at"),
            )
            for invite in invites.data
        ]

    def pending_invites(self, group_id: str) -> List[PendingInvite]:
        """Invites of a group still waiting for an answer"""
        try:
            invites = self.supabase.table("watch_group_invites")\
                .select(INVITE_COLUMNS)\
                .eq("group_id", group_id)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .execute()
            if not invites.data:
                return []
            invitees = fetch_users_by_ids(self.supabase, (i["invitee_id"] for i in invites.data), "id,name,avatar")
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        return [
            PendingInvite(
                id=invite["id"],
                group_id=invite["group_id"],
                invitee_id=invite["invitee_id"],
                invitee_name=(invitees.get(invite["invitee_id"]) or {}).get("name") or "Friend",
                invitee_avatar=(invitees.get(invite["invitee_id"]) or {}).get("avatar"),
                status=invite["status"],
                created_at=invite.get("created_at"),
            )
            for invite in invites.data
        ]

    def respond_to_invite(self, invite_id: str, decision: str) -> InviteDecisionResult:
        if decision not in ("accepted", "rejected"):
            raise HTTPException(status_code=400, detail="Decision must be accepted or rejected.")
        try:
            result = self.supabase.rpc("respond_watch_group_invite", {
                "p_invite_id": invite_id,
                "p_decision": decision,
            }).execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to respond to invite.")

        rows = result.data if isinstance(result.data, list) else ([result.data] if result.data else [])
        row = rows[0] if rows else None
        if not row or row.get("status") not in ("accepted", "rejected"):
            raise HTTPException(status_code=500, detail="Failed to respond to invite.")
        return InviteDecisionResult(invite_id=row["invite_id"], group_id=row["group_id"], status=row["status"])

    # ---- picks ----

    def add_pick(self, group_id: str, sender_id: str, pick: PickCreate) -> None:
        title = (pick.title or "").strip()
        tmdb_id = (pick.tmdb_id or "").strip()
        if not title or not tmdb_id:
            raise HTTPException(status_code=400, detail="A pick needs a title.")
        try:
            self.supabase.table("watch_group_picks").insert({
                "group_id": group_id,
                "sender_id": sender_id,
                "media_type": pick.media_type,
                "tmdb_id": tmdb_id,
                "title": title[:MAX_PICK_TITLE_LENGTH],
                "poster": _optional_text(pick.poster, MAX_POSTER_LENGTH),
                "release_year": pick.release_year,
                "note": _optional_text(pick.note, MAX_NOTE_LENGTH),
            }).execute()
        except Exception as e:
            raise_for_api_error(e, conflict_detail=DUPLICATE_PICK_MESSAGE)

    def list_picks(self, group_id: str, current_user_id: str) -> List[PickResponse]:
        """Picks with vote tallies: highest score first, newest first among ties"""
        try:
            picks = self.supabase.table("watch_group_picks")\
                .select(PICK_COLUMNS)\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .execute()
            if not picks.data:
                return []
            senders = fetch_users_by_ids(self.supabase, (p["sender_id"] for p in picks.data), "id,name,avatar")
            votes = self.supabase.table("watch_group_pick_votes")\
                .select("pick_id,user_id,vote_value")\
                .in_("pick_id", [p["id"] for p in picks.data])\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=error_message(e))

        tallies: Dict[str, Dict[str, int]] = {}
        for vote in votes.data or []:
            entry = tallies.setdefault(vote["pick_id"], {"up": 0, "down": 0, "mine": 0})
            if vote["vote_value"] == 1:
                entry["up"] += 1
            elif vote["vote_value"] == -1:
                entry["down"] += 1
            if vote["user_id"] == current_user_id:
                entry["mine"] = vote["vote_value"]

        result = []
        for pick in picks.data:
            sender = senders.get(pick["sender_id"]) or {}
            tally = tallies.get(pick["id"], {"up": 0, "down": 0, "mine": 0})
            result.append(PickResponse(
                id=pick["id"],
                group_id=pick["group_id"],
                sender_id=pick["sender_id"],
                sender_name=sender.get("name") or "Member",
                sender_avatar=sender.get("avatar"),
                media_type=pick["media_type"],
                tmdb_id=str(pick["tmdb_id"]),
                title=pick["title"],
                poster=pick.get("poster"),
                release_year=pick.get("release_year"),
                note=pick.get("note"),
                created_at=pick.get("created_at"),
                upvotes=tally["up"],
                downvotes=tally["down"],
                score=tally["up"] - tally["down"],
                my_vote=tally["mine"],
            ))
        result.sort(key=lambda p: (p.score, _sort_time(p.created_at)), reverse=True)
        return result

    def vote(self, pick_id: str, user_id: str, vote_value: int) -> None:
        """One vote per (pick, user); voting again replaces the previous vote"""
        if vote_value not in (-1, 1):
            raise HTTPException(status_code=400, detail="Vote must be 1 or -1.")
        try:
            self.supabase.table("watch_group_pick_votes")\
                .upsert({
                    "pick_id": pick_id,
                    "user_id": user_id,
                    "vote_value": vote_value,
                    "updated_at": self.now().isoformat(),
                }, on_conflict="pick_id,user_id")\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to save vote.")

    def clear_vote(self, pick_id: str, user_id: str) -> None:
        try:
            self.supabase.table("watch_group_pick_votes")\
                .delete()\
                .eq("pick_id", pick_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to clear vote.")
