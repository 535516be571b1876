"""Team schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Team, TeamMember
from ...shared.dates import parse_datetime, to_iso
from ...shared.validators import validate_email_address, validate_slug, validate_url

TEAM_ROLES = ("OWNER", "ADMIN", "MEMBER")
ADMIN_ROLES = ("OWNER", "ADMIN")


def _check_role(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in TEAM_ROLES:
        raise ValueError("Invalid role")
    return value


class TeamFields(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    logoUrl: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        if len(v.strip()) < 1:
            raise ValueError("Team name is required")
        if len(v) > 100:
            raise ValueError("Team name is too long")
        return v.strip()

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v):
        if v is None:
            return v
        if len(v) < 3:
            raise ValueError("Slug must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Slug is too long")
        return validate_slug(v)

    @field_validator("logoUrl")
    @classmethod
    def check_logo_url(cls, v):
        return validate_url(v, "Invalid logo URL")


class CreateTeamRequest(TeamFields):
    name: str
    slug: str


class UpdateTeamRequest(TeamFields):
    pass


class InviteMemberRequest(BaseModel):
    email: str
    role: str = "MEMBER"

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email_address(v)

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        return _check_role(v)


class UpdateMemberRoleRequest(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        return _check_role(v)


class AssignMemberRequest(BaseModel):
    startTime: str
    duration: int

    @field_validator("startTime")
    @classmethod
    def check_start(cls, v):
        try:
            parse_datetime(v)
        except ValueError as e:
            raise ValueError("Invalid start time") from e
        return v

    @field_validator("duration")
    @classmethod
    def check_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be positive")
        return v


def member_to_response(member: TeamMember) -> dict:
    user = member.user
    return {
        "id": member.id,
        "teamId": member.team_id,
        "userId": member.user_id,
        "role": member.role,
        "accepted": member.accepted,
        "createdAt": to_iso(member.created_at),
        "user": {
            "id": user.id,
            "email": user.email,
            "username": user.username,
            "name": user.name,
            "avatarUrl": user.avatar_url,
        }
        if user
        else None,
    }


def team_to_response(team: Team, include_unaccepted: bool = True) -> dict:
    members = [m for m in team.members if include_unaccepted or m.accepted]
    return {
        "id": team.id,
        "name": team.name,
        "slug": team.slug,
        "logoUrl": team.logo_url,
        "createdAt": to_iso(team.created_at),
        "updatedAt": to_iso(team.updated_at),
        "members": [member_to_response(m) for m in members],
    }
