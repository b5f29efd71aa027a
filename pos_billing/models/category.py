"""Category model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from pos_billing.database import Base, BigIntPK, utcnow


class Category(Base):
    """Product Category."""

    __tablename__ = 'category'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    tax_rules = relationship('TaxRule', back_populates='category', order_by='TaxRule.id')

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
