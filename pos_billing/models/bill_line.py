"""Bill Line model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, JSON, ForeignKey
from sqlalchemy.orm import relationship
from pos_billing.database import Base, BigIntPK
from pos_billing.models.bill import money


class BillLine(Base):
    """Bill Line (detail of a bill), never addressed on its own."""

    __tablename__ = 'bill_line'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    bill_id = Column(BigInteger, ForeignKey('bill.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    # [{tax_name, tax_percentage, tax_amount}] in rule order
    taxes = Column(JSON, nullable=False, default=list)

    # Relationships
    bill = relationship('Bill', back_populates='lines')

    def to_dict(self):
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'quantity': self.quantity,
            'price': money(self.unit_price),
            'total': money(self.line_total),
            'taxes': [
                {
                    'taxName': tax['tax_name'],
                    'taxPercentage': tax['tax_percentage'],
                    'taxAmount': tax['tax_amount'],
                }
                for tax in (self.taxes or [])
            ],
        }

    def __repr__(self):
        return f"<BillLine(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
