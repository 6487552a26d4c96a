"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class Product(Base):
    """Product model. Read-only once inventory references it."""

    __tablename__ = 'product'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False)
    name = Column(String, nullable=False)
    category_id = Column(BigInteger, ForeignKey('category.id'), nullable=True)
    sku = Column(String, nullable=True)
    unit_size = Column(String(50), nullable=True)  # e.g. "330ml"
    pack_size = Column(Integer, nullable=True)  # units per retail pack
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    team = relationship('Team')
    category = relationship('Category', foreign_keys=[category_id])
    batches = relationship('InventoryBatch', back_populates='product')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"
