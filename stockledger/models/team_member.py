"""TeamMember model - links users to teams with roles."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class MemberRole(enum.Enum):
    """Member roles within a team."""
    OWNER = 'OWNER'
    MEMBER = 'MEMBER'


class TeamMember(Base):
    """TeamMember model - a user's membership in a team."""

    __tablename__ = 'team_member'
    __table_args__ = (UniqueConstraint('user_id', 'team_id', name='uq_team_member_user_team'),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False)
    role = Column(String(20), nullable=False, default=MemberRole.MEMBER.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='memberships')
    team = relationship('Team', back_populates='members')

    def __repr__(self):
        return f"<TeamMember(user_id={self.user_id}, team_id={self.team_id}, role='{self.role}')>"

    def is_owner(self):
        """Check if user owns the team."""
        return self.role == MemberRole.OWNER.value
