"""Inventory model."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from pos_billing.database import Base, utcnow


class InventoryRecord(Base):
    """Quantity on hand for a (store, product, category) key."""

    __tablename__ = 'inventory'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    store_id = Column(BigInteger, ForeignKey('store.id'), primary_key=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), primary_key=True)
    category_id = Column(BigInteger, ForeignKey('category.id'), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    store = relationship('Store', back_populates='inventory')
    product = relationship('Product')

    def to_dict(self):
        return {
            'storeId': self.store_id,
            'productId': self.product_id,
            'productName': self.product.name if self.product else None,
            'categoryId': self.category_id,
            'quantity': self.quantity,
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
        }

    def __repr__(self):
        return f"<InventoryRecord(store_id={self.store_id}, product_id={self.product_id}, quantity={self.quantity})>"
