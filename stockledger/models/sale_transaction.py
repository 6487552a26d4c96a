"""Sale Transaction model."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from stockledger.database import Base, BigIntId


class SaleTransaction(Base):
    """One checkout event. Written once, atomically, with its lines."""

    __tablename__ = 'sale_transaction'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey('team.id'), nullable=False, index=True)
    sale_datetime = Column(DateTime(timezone=True), nullable=False, index=True)
    customer_name = Column(String(200), nullable=True)
    subtotal = Column(BigInteger, nullable=False)
    tax = Column(BigInteger, nullable=True)
    discount = Column(BigInteger, nullable=True)
    total = Column(BigInteger, nullable=False)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    team = relationship('Team')
    lines = relationship(
        'SaleLine',
        back_populates='transaction',
        cascade='all, delete-orphan',
        order_by='SaleLine.id',
    )

    def to_dict(self, include_lines=True):
        data = {
            'id': self.id,
            'team_id': self.team_id,
            'sale_datetime': self.sale_datetime.isoformat() if self.sale_datetime else None,
            'customer_name': self.customer_name,
            'subtotal': self.subtotal,
            'tax': self.tax,
            'discount': self.discount,
            'total': self.total,
        }
        if include_lines:
            data['lines'] = [line.to_dict() for line in self.lines]
        return data

    def __repr__(self):
        return f"<SaleTransaction(id={self.id}, total={self.total})>"
