"""Legacy Sale model."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class LegacySale(Base):
    """
    Single-item sale recorded before multi-line transactions existed.
    Kept for reporting only; new sales always go through SaleTransaction.
    """

    __tablename__ = 'legacy_sale'

    record_type = 'legacy_sale'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False, index=True)
    batch_id = Column(BigInteger, ForeignKey('inventory_batch.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    sale_datetime = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    batch = relationship('InventoryBatch')

    @property
    def line_total(self):
        return self.quantity * self.unit_price

    def __repr__(self):
        return f"<LegacySale(id={self.id}, batch_id={self.batch_id}, quantity={self.quantity})>"
