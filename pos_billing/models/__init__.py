"""Models package - exports all SQLAlchemy models."""
from pos_billing.models.store import Store
from pos_billing.models.category import Category
from pos_billing.models.product import Product
from pos_billing.models.tax_rule import TaxRule, TaxKind
from pos_billing.models.inventory import InventoryRecord
from pos_billing.models.bill import Bill
from pos_billing.models.bill_line import BillLine

__all__ = [
    'Store', 'Category', 'Product', 'TaxRule', 'TaxKind',
    'InventoryRecord', 'Bill', 'BillLine',
]
