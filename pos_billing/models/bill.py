"""Bill model."""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from pos_billing.database import Base, BigIntPK, utcnow


def money(value) -> str:
    """Serialize a monetary Decimal as a two-decimal string."""
    return f"{value:.2f}" if value is not None else None


class Bill(Base):
    """Immutable record of a completed sale.

    Written once by checkout; there is no update or delete path.
    """

    __tablename__ = 'bill'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    bill_id = Column(String(36), unique=True, nullable=False, index=True)
    store_id = Column(BigInteger, ForeignKey('store.id'), nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False)
    grand_total = Column(Numeric(12, 2), nullable=False)
    # [{tax_name, tax_percentage, tax_amount}] merged by tax name, first-seen order
    tax_breakdown = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Relationships
    store = relationship('Store')
    lines = relationship('BillLine', back_populates='bill', order_by='BillLine.position',
                         cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'billId': self.bill_id,
            'store': self.store_id,
            'storeName': self.store.name if self.store else None,
            'items': [line.to_dict() for line in self.lines],
            'subtotal': money(self.subtotal),
            'taxAmount': money(self.tax_amount),
            'grandTotal': money(self.grand_total),
            'totalAmount': money(self.grand_total),
            'taxBreakdown': [
                {
                    'taxName': entry['tax_name'],
                    'taxPercentage': entry['tax_percentage'],
                    'taxAmount': entry['tax_amount'],
                }
                for entry in (self.tax_breakdown or [])
            ],
            'customerName': self.customer_name,
            'customerPhone': self.customer_phone,
            'customerEmail': self.customer_email,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Bill(bill_id='{self.bill_id}', grand_total={self.grand_total})>"
