"""Purchase Lot model (pooled cost basis)."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class PurchaseLot(Base):
    """
    One purchase event (a shipment) whose total cost is pooled across
    every batch it produced.
    """

    __tablename__ = 'purchase_lot'
    __table_args__ = (CheckConstraint('total_cost >= 0', name='ck_purchase_lot_total_cost'),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False)
    name = Column(String(200), nullable=False)
    purchase_date = Column(DateTime(timezone=True), nullable=False)
    total_cost = Column(BigInteger, nullable=False, default=0)  # minor units
    supplier = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    team = relationship('Team')
    batches = relationship('InventoryBatch', back_populates='lot')

    def __repr__(self):
        return f"<PurchaseLot(id={self.id}, name='{self.name}', total_cost={self.total_cost})>"
