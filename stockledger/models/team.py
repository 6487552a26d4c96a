"""Team model - the owning organization of every stock and sale record."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class Team(Base):
    """Team model - each business using the platform."""

    __tablename__ = 'team'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    members = relationship('TeamMember', back_populates='team')

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"
