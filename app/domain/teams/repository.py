"""Team repository - Database operations for teams and memberships"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Team, TeamMember


class TeamRepository:
    """Repository for team database operations"""

    @staticmethod
    def get_by_id(db: Session, team_id: str) -> Optional[Team]:
        return (
            db.query(Team)
            .options(joinedload(Team.members).joinedload(TeamMember.user))
            .filter(Team.id == team_id)
            .first()
        )

    @staticmethod
    def slug_exists(db: Session, slug: str, exclude_team_id: Optional[str] = None) -> bool:
        query = db.query(Team.id).filter(Team.slug == slug)
        if exclude_team_id:
            query = query.filter(Team.id != exclude_team_id)
        return query.first() is not None

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Team]:
        """Teams the user has accepted membership in"""
        return (
            db.query(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .options(joinedload(Team.members).joinedload(TeamMember.user))
            .filter(TeamMember.user_id == user_id, TeamMember.accepted.is_(True))
            .order_by(Team.created_at.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, owner_id: str, **data) -> Team:
        team = Team(**data)
        db.add(team)
        db.flush()
        db.add(TeamMember(team_id=team.id, user_id=owner_id, role="OWNER", accepted=True))
        db.commit()
        db.refresh(team)
        return team

    @staticmethod
    def update(db: Session, team: Team, **updates) -> Team:
        for key, value in updates.items():
            setattr(team, key, value)
        db.commit()
        db.refresh(team)
        return team

    @staticmethod
    def delete(db: Session, team: Team) -> None:
        db.delete(team)
        db.commit()

    # ========================================================================
    # MEMBERS
    # ========================================================================

    @staticmethod
    def get_membership(db: Session, team_id: str, user_id: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_member(db: Session, team_id: str, member_id: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .options(joinedload(TeamMember.user))
            .filter(TeamMember.team_id == team_id, TeamMember.id == member_id)
            .first()
        )

    @staticmethod
    def list_members(db: Session, team_id: str, include_unaccepted: bool = False) -> list[TeamMember]:
        query = (
            db.query(TeamMember)
            .options(joinedload(TeamMember.user))
            .filter(TeamMember.team_id == team_id)
        )
        if not include_unaccepted:
            query = query.filter(TeamMember.accepted.is_(True))
        return query.order_by(TeamMember.created_at).all()

    @staticmethod
    def count_owners(db: Session, team_id: str) -> int:
        return (
            db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.role == "OWNER")
            .count()
        )

    @staticmethod
    def add_member(db: Session, **data) -> TeamMember:
        member = TeamMember(**data)
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def update_member(db: Session, member: TeamMember, **updates) -> TeamMember:
        for key, value in updates.items():
            setattr(member, key, value)
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def delete_member(db: Session, member: TeamMember) -> None:
        db.delete(member)
        db.commit()
