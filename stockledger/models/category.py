"""Category model."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class Category(Base):
    """Product Category."""

    __tablename__ = 'category'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    team = relationship('Team')

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
