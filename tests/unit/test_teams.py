"""Tests for team scheduling"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from app.domain.teams.schemas import CreateTeamRequest, InviteMemberRequest
from app.domain.teams.service import TeamService, generate_team_slug
from app.models import Availability, TeamMember

from tests.conftest import next_weekday_at


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Sales Team", "sales-team"),
        ("  R&D / Labs!  ", "r-d-labs"),
        ("Support 24x7", "support-24x7"),
    ],
)
def test_generate_team_slug(name, slug):
    assert generate_team_slug(name) == slug


@pytest.fixture
def team(db, host, other_user):
    service = TeamService(db)
    team = service.create_team(CreateTeamRequest(name="Sales", slug="sales"), host)
    service.repo.add_member(db, team_id=team.id, user_id=other_user.id, role="MEMBER", accepted=True)
    db.add_all(
        Availability(user_id=user.id, day_of_week=day, start_time="09:00", end_time="17:00")
        for user in (host, other_user)
        for day in range(7)
    )
    db.commit()
    return team


def test_creator_becomes_accepted_owner(db, host, team):
    owner = db.query(TeamMember).filter(TeamMember.team_id == team.id, TeamMember.user_id == host.id).one()
    assert owner.role == "OWNER"
    assert owner.accepted is True


def test_duplicate_slug_gets_suffix(db, host, team):
    second = TeamService(db).create_team(CreateTeamRequest(name="Sales", slug="sales"), host)
    assert second.slug == "sales-1"


def test_round_robin_prefers_least_loaded_member(db, host, other_user, team, booking):
    start = next_weekday_at(14).isoformat() + "Z"
    assert TeamService(db).assign_round_robin_member(team.id, start, 30, host) == other_user.id


def test_round_robin_returns_none_when_nobody_is_free(db, host, team):
    start = next_weekday_at(20).isoformat() + "Z"  # after hours for everyone
    assert TeamService(db).assign_round_robin_member(team.id, start, 30, host) is None


def test_collective_availability_intersects_member_slots(db, host, team, booking):
    day = booking.start_time.date().isoformat()
    result = TeamService(db).get_team_availability(team.id, host, day, 30, "UTC", "COLLECTIVE")

    starts = [s["startTime"] for s in result["availableSlots"]]
    assert f"{day}T10:00:00+00:00" not in starts  # alice is booked
    assert f"{day}T11:00:00+00:00" in starts
    assert len(result["memberAvailability"]) == 2


def test_round_robin_availability_lists_free_members(db, host, other_user, team, booking):
    day = booking.start_time.date().isoformat()
    result = TeamService(db).get_team_availability(team.id, host, day, 30, "UTC", "ROUND_ROBIN")

    by_start = {s["startTime"]: s for s in result["availableSlots"]}
    assert by_start[f"{day}T10:00:00+00:00"]["availableMembers"] == [other_user.id]


def test_cannot_remove_last_owner(db, host, team):
    owner = db.query(TeamMember).filter(TeamMember.team_id == team.id, TeamMember.user_id == host.id).one()
    with pytest.raises(HTTPException) as exc:
        TeamService(db).remove_member(team.id, owner.id, host)
    assert exc.value.detail == "Cannot remove the last owner of the team"


def test_invite_requires_existing_user(db, host, team):
    with patch("app.domain.teams.service.send_team_invitation", new=AsyncMock()):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(
                TeamService(db).invite_member(team.id, InviteMemberRequest(email="nobody@example.com"), host)
            )
    assert exc.value.status_code == 404
