"""Team service - Team management, invitations and team scheduling"""

import logging
import re
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_team_invitation
from ...models import Team, TeamMember, User
from ...shared.dates import utc_now
from ..availability.service import AvailabilityService
from ..bookings.repository import BookingRepository
from ..users.repository import UserRepository
from .repository import TeamRepository
from .schemas import (
    ADMIN_ROLES,
    CreateTeamRequest,
    InviteMemberRequest,
    UpdateTeamRequest,
)

logger = logging.getLogger(__name__)

SCHEDULING_MODES = ("COLLECTIVE", "ROUND_ROBIN")
LOAD_WINDOW_DAYS = 30


def generate_team_slug(name: str) -> str:
    """Lowercase, non-alphanumeric runs become a single dash, no leading/trailing dashes"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")[:50]


class TeamService:
    """Service layer for team business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamRepository()

    def ensure_unique_slug(self, slug: str, exclude_team_id: Optional[str] = None) -> str:
        candidate = slug
        counter = 1
        while self.repo.slug_exists(self.db, candidate, exclude_team_id):
            candidate = f"{slug}-{counter}"
            counter += 1
        return candidate

    def is_slug_available(self, slug: Optional[str]) -> bool:
        if not slug:
            raise HTTPException(status_code=400, detail="Slug is required")
        return not self.repo.slug_exists(self.db, slug)

    # ========================================================================
    # ACCESS CHECKS
    # ========================================================================

    def _get_team(self, team_id: str) -> Team:
        team = self.repo.get_by_id(self.db, team_id)
        if not team:
            raise HTTPException(status_code=404, detail="Team not found")
        return team

    def _require_role(self, team_id: str, user: User, roles: Optional[tuple] = None) -> TeamMember:
        membership = self.repo.get_membership(self.db, team_id, user.id)
        if not membership or not membership.accepted:
            raise HTTPException(status_code=403, detail="Forbidden")
        if roles and membership.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return membership

    # ========================================================================
    # TEAMS
    # ========================================================================

    def create_team(self, data: CreateTeamRequest, user: User) -> Team:
        slug = self.ensure_unique_slug(data.slug or generate_team_slug(data.name))
        team = self.repo.create(self.db, user.id, name=data.name, slug=slug, logo_url=data.logoUrl)
        logger.info(f"✅ Team {team.id} ({slug}) created by {user.id}")
        return self.repo.get_by_id(self.db, team.id)

    def list_teams(self, user: User) -> list[Team]:
        return self.repo.list_for_user(self.db, user.id)

    def get_team(self, team_id: str, user: User) -> Team:
        team = self._get_team(team_id)
        self._require_role(team_id, user)
        return team

    def update_team(self, team_id: str, data: UpdateTeamRequest, user: User) -> Team:
        team = self._get_team(team_id)
        self._require_role(team_id, user, ADMIN_ROLES)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.slug is not None and data.slug != team.slug:
            updates["slug"] = self.ensure_unique_slug(data.slug, exclude_team_id=team.id)
        if "logoUrl" in data.model_fields_set:
            updates["logo_url"] = data.logoUrl
        return self.repo.update(self.db, team, **updates)

    def delete_team(self, team_id: str, user: User) -> None:
        team = self._get_team(team_id)
        self._require_role(team_id, user, ("OWNER",))
        self.repo.delete(self.db, team)
        logger.info(f"🗑️ Team {team_id} deleted by {user.id}")

    # ========================================================================
    # MEMBERS
    # ========================================================================

    def list_members(self, team_id: str, user: User, include_unaccepted: bool = False) -> list[TeamMember]:
        self._get_team(team_id)
        self._require_role(team_id, user)
        return self.repo.list_members(self.db, team_id, include_unaccepted)

    async def invite_member(self, team_id: str, data: InviteMemberRequest, user: User) -> TeamMember:
        """Create a pending membership and email the invitee"""
        team = self._get_team(team_id)
        self._require_role(team_id, user, ADMIN_ROLES)

        invitee = UserRepository.get_by_email(self.db, data.email)
        if not invitee:
            raise HTTPException(status_code=404, detail="User not found with this email")
        if self.repo.get_membership(self.db, team_id, invitee.id):
            raise HTTPException(status_code=400, detail="User is already a member of this team")

        member = self.repo.add_member(
            self.db, team_id=team_id, user_id=invitee.id, role=data.role, accepted=False
        )

        try:
            await send_team_invitation(
                to=invitee.email,
                inviter_name=user.name or user.email,
                team_name=team.name,
                role=data.role,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send team invitation to {invitee.email}: {e}")

        logger.info(f"📧 {invitee.id} invited to team {team_id} as {data.role}")
        return member

    def update_member_role(self, team_id: str, member_id: str, role: str, user: User) -> TeamMember:
        self._require_role(team_id, user, ADMIN_ROLES)
        member = self.repo.get_member(self.db, team_id, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Team member not found")
        if member.role == "OWNER" or role == "OWNER":
            raise HTTPException(status_code=400, detail="The owner role cannot be changed")
        return self.repo.update_member(self.db, member, role=role)

    def remove_member(self, team_id: str, member_id: str, user: User) -> None:
        member = self.repo.get_member(self.db, team_id, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Team member not found")
        if member.user_id != user.id:
            self._require_role(team_id, user, ADMIN_ROLES)
        if member.role == "OWNER" and self.repo.count_owners(self.db, team_id) <= 1:
            raise HTTPException(status_code=400, detail="Cannot remove the last owner of the team")
        self.repo.delete_member(self.db, member)

    def accept_invitation(self, team_id: str, user: User) -> TeamMember:
        membership = self.repo.get_membership(self.db, team_id, user.id)
        if not membership:
            raise HTTPException(status_code=404, detail="Invitation not found")
        if membership.accepted:
            return membership
        return self.repo.update_member(self.db, membership, accepted=True)

    def decline_invitation(self, team_id: str, user: User) -> None:
        membership = self.repo.get_membership(self.db, team_id, user.id)
        if not membership or membership.accepted:
            raise HTTPException(status_code=404, detail="Invitation not found")
        self.repo.delete_member(self.db, membership)

    # ========================================================================
    # TEAM SCHEDULING
    # ========================================================================

    def get_team_availability(
        self,
        team_id: str,
        user: User,
        day: Optional[str],
        duration: Optional[int],
        tz_name: Optional[str],
        mode: str = "COLLECTIVE",
    ) -> dict:
        """
        Combine the slots of every accepted member.

        COLLECTIVE keeps the slots every member shares; ROUND_ROBIN keeps any
        slot at least one member can take and lists who can take it.
        """
        self._get_team(team_id)
        self._require_role(team_id, user)
        if mode not in SCHEDULING_MODES:
            raise HTTPException(status_code=400, detail="Invalid scheduling type")
        if not tz_name:
            raise HTTPException(status_code=400, detail="timezone is required")

        members = self.repo.list_members(self.db, team_id)
        availability = AvailabilityService(self.db)
        per_member = [
            (m, availability.get_available_slots(m.user_id, day, duration, tz_name))
            for m in members
        ]
        if not per_member:
            return {"availableSlots": [], "memberAvailability": []}

        if mode == "COLLECTIVE":
            slots = list(per_member[0][1])
            for _, member_slots in per_member[1:]:
                starts = {s["startTime"] for s in member_slots}
                slots = [s for s in slots if s["startTime"] in starts]
        else:
            merged: dict[str, dict] = {}
            for member, member_slots in per_member:
                for slot in member_slots:
                    entry = merged.setdefault(slot["startTime"], {**slot, "availableMembers": []})
                    entry["availableMembers"].append(member.user_id)
            slots = sorted(merged.values(), key=lambda s: s["startTime"])

        return {
            "availableSlots": slots,
            "memberAvailability": [
                {
                    "userId": m.user_id,
                    "userName": m.user.name or m.user.username,
                    "availableSlots": member_slots,
                }
                for m, member_slots in per_member
            ],
        }

    def assign_round_robin_member(
        self, team_id: str, start_time: str, duration: int, user: User
    ) -> Optional[str]:
        """Available accepted member with the fewest recent active bookings"""
        self._get_team(team_id)
        self._require_role(team_id, user)

        since = utc_now() - timedelta(days=LOAD_WINDOW_DAYS)
        availability = AvailabilityService(self.db)
        candidates = []
        for member in self.repo.list_members(self.db, team_id):
            if availability.check_slot(member.user_id, start_time, duration):
                count = BookingRepository.count_active_since(self.db, member.user_id, since)
                candidates.append((count, member.created_at, member.user_id))

        if not candidates:
            return None
        candidates.sort(key=lambda c: (c[0], c[1]))
        return candidates[0][2]

    def get_load_distribution(self, team_id: str, user: User, days: int = LOAD_WINDOW_DAYS) -> list[dict]:
        self._get_team(team_id)
        self._require_role(team_id, user)

        since = utc_now() - timedelta(days=days)
        load = [
            {
                "userId": m.user_id,
                "userName": m.user.name or m.user.username,
                "bookingCount": BookingRepository.count_active_since(self.db, m.user_id, since),
            }
            for m in self.repo.list_members(self.db, team_id)
        ]
        return sorted(load, key=lambda item: item["bookingCount"], reverse=True)
