"""Sale Line model."""
from sqlalchemy import Column, BigInteger, Integer, ForeignKey
from sqlalchemy.orm import relationship
from stockledger.database import Base, BigIntId


class SaleLine(Base):
    """One batch/quantity/price line of a sale transaction."""

    __tablename__ = 'sale_line'

    record_type = 'sale_line'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    transaction_id = Column(BigInteger, ForeignKey('sale_transaction.id'), nullable=False, index=True)
    batch_id = Column(BigInteger, ForeignKey('inventory_batch.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    line_total = Column(BigInteger, nullable=False)

    # Relationships
    transaction = relationship('SaleTransaction', back_populates='lines')
    batch = relationship('InventoryBatch')

    def to_dict(self):
        return {
            'id': self.id,
            'batch_id': self.batch_id,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'line_total': self.line_total,
        }

    def __repr__(self):
        return f"<SaleLine(id={self.id}, batch_id={self.batch_id}, quantity={self.quantity})>"
