"""Store model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from pos_billing.database import Base, BigIntPK, utcnow


class Store(Base):
    """Physical point of sale."""

    __tablename__ = 'store'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    store_code = Column(String(32), unique=True, nullable=False)  # e.g. "SR1"
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    inventory = relationship('InventoryRecord', back_populates='store')

    def __repr__(self):
        return f"<Store(id={self.id}, code='{self.store_code}')>"
