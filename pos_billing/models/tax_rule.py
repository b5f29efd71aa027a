"""Tax rule model."""
from sqlalchemy import Column, BigInteger, String, Boolean, Numeric, Enum, ForeignKey
from sqlalchemy.orm import relationship
from pos_billing.database import Base, BigIntPK
import enum


class TaxKind(str, enum.Enum):
    """How a tax rule's value is applied to a line."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class TaxRule(Base):
    """Tax applied to every product of a category.

    All active rules of a category apply together; amounts are additive.
    """

    __tablename__ = 'tax_rule'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    category_id = Column(BigInteger, ForeignKey('category.id'), nullable=False, index=True)
    kind = Column(Enum(TaxKind, name='tax_kind'), nullable=False, default=TaxKind.PERCENTAGE)
    value = Column(Numeric(10, 4), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    # Relationships
    category = relationship('Category', back_populates='tax_rules')

    def to_spec(self):
        """Plain-value view consumed by the bill computation engine."""
        from pos_billing.services.bill_computation import TaxSpec
        return TaxSpec(name=self.name, kind=self.kind.value, value=self.value)

    def __repr__(self):
        return f"<TaxRule(id={self.id}, name='{self.name}', kind={self.kind.value}, value={self.value})>"
