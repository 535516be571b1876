"""Team router - FastAPI endpoints for teams, members and team scheduling"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    AssignMemberRequest,
    CreateTeamRequest,
    InviteMemberRequest,
    UpdateMemberRoleRequest,
    UpdateTeamRequest,
    member_to_response,
    team_to_response,
)
from .service import LOAD_WINDOW_DAYS, TeamService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/teams", tags=["Teams"])


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Dependency injection for TeamService"""
    return TeamService(db)


# ============================================================================
# TEAMS
# ============================================================================


@router.post("", status_code=201)
async def create_team(
    data: CreateTeamRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = service.create_team(data, current_user)
    return {"team": team_to_response(team)}


@router.get("")
async def list_teams(
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    teams = service.list_teams(current_user)
    return {"teams": [team_to_response(t) for t in teams]}


@router.get("/check-slug")
async def check_team_slug(
    slug: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return {"available": service.is_slug_available(slug)}


@router.get("/{team_id}")
async def get_team(
    team_id: str,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return {"team": team_to_response(service.get_team(team_id, current_user))}


@router.patch("/{team_id}")
async def update_team(
    team_id: str,
    data: UpdateTeamRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return {"team": team_to_response(service.update_team(team_id, data, current_user))}


@router.delete("/{team_id}")
async def delete_team(
    team_id: str,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    service.delete_team(team_id, current_user)
    return {"success": True}


# ============================================================================
# MEMBERS AND INVITATIONS
# ============================================================================


@router.get("/{team_id}/members")
async def list_members(
    team_id: str,
    includeUnaccepted: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    members = service.list_members(team_id, current_user, includeUnaccepted)
    return {"members": [member_to_response(m) for m in members]}


@router.post("/{team_id}/members", status_code=201)
async def invite_member(
    team_id: str,
    data: InviteMemberRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    member = await service.invite_member(team_id, data, current_user)
    return {"member": member_to_response(member)}


@router.patch("/{team_id}/members/{member_id}")
async def update_member_role(
    team_id: str,
    member_id: str,
    data: UpdateMemberRoleRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    member = service.update_member_role(team_id, member_id, data.role, current_user)
    return {"member": member_to_response(member)}


@router.delete("/{team_id}/members/{member_id}")
async def remove_member(
    team_id: str,
    member_id: str,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    service.remove_member(team_id, member_id, current_user)
    return {"success": True}


@router.post("/{team_id}/accept")
async def accept_invitation(
    team_id: str,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    member = service.accept_invitation(team_id, current_user)
    return {"member": member_to_response(member)}


@router.post("/{team_id}/decline")
async def decline_invitation(
    team_id: str,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    service.decline_invitation(team_id, current_user)
    return {"success": True}


# ============================================================================
# TEAM SCHEDULING
# ============================================================================


@router.get("/{team_id}/availability")
async def get_team_availability(
    team_id: str,
    date: Optional[str] = Query(None),
    duration: Optional[int] = Query(None),
    timezone: Optional[str] = Query(None),
    schedulingType: str = Query("COLLECTIVE"),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.get_team_availability(
        team_id, current_user, date, duration, timezone, schedulingType
    )


@router.post("/{team_id}/assign")
async def assign_member(
    team_id: str,
    data: AssignMemberRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Pick the round-robin host for a slot"""
    user_id = service.assign_round_robin_member(team_id, data.startTime, data.duration, current_user)
    return {"userId": user_id}


@router.get("/{team_id}/load")
async def get_member_load(
    team_id: str,
    days: int = Query(LOAD_WINDOW_DAYS, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return {"load": service.get_load_distribution(team_id, current_user, days)}
