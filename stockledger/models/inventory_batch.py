"""Inventory Batch model."""
from sqlalchemy import Column, BigInteger, Integer, String, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class InventoryBatch(Base):
    """
    Stock produced by one purchase event.

    Cost columns are read by the configured cost basis only:
    - pooled: lot_id (cost shared by every batch of the lot)
    - direct: total_cost / max(1, purchase_quantity * units_per_pack)

    version_id guards every UPDATE (optimistic concurrency): a commit that
    read an older version fails with StaleDataError instead of overwriting.
    """

    __tablename__ = 'inventory_batch'
    __table_args__ = (
        CheckConstraint(
            'quantity_remaining >= 0 AND quantity_remaining <= quantity_received',
            name='ck_inventory_batch_remaining',
        ),
        CheckConstraint('total_cost >= 0', name='ck_inventory_batch_total_cost'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    acquired_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    total_cost = Column(BigInteger, nullable=False, default=0)  # minor units
    quantity_received = Column(Integer, nullable=False)
    quantity_remaining = Column(Integer, nullable=False)
    expiration_date = Column(Date, nullable=True)
    location = Column(String(100), nullable=True)

    # Pooled cost basis
    lot_id = Column(BigInteger, ForeignKey('purchase_lot.id'), nullable=True, index=True)

    # Direct cost basis
    purchase_quantity = Column(Integer, nullable=True)  # packs bought
    units_per_pack = Column(Integer, nullable=True)

    version_id = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {'version_id_col': version_id}

    # Relationships
    team = relationship('Team')
    product = relationship('Product', back_populates='batches')
    lot = relationship('PurchaseLot', back_populates='batches')

    @property
    def sellable_units(self):
        """Units produced under the direct cost basis. Unset pack fields count as 1."""
        packs = 1 if self.purchase_quantity is None else self.purchase_quantity
        per_pack = 1 if self.units_per_pack is None else self.units_per_pack
        return packs * per_pack

    def __repr__(self):
        return (
            f"<InventoryBatch(id={self.id}, product_id={self.product_id}, "
            f"remaining={self.quantity_remaining}/{self.quantity_received})>"
        )
