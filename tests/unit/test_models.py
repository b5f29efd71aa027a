"""
Unit tests for SQLAlchemy models.
"""

import pytest
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from pos_billing.models import Bill, InventoryRecord, Store, TaxKind, TaxRule
from pos_billing.services.bill_computation import FIXED


class TestStoreModel:
    """Tests for Store model."""

    def test_store_code_unique(self, session, catalog):
        session.add(Store(store_code='SR1', name='Duplicate'))

        with pytest.raises(IntegrityError):
            session.commit()


class TestInventoryModel:
    """Tests for InventoryRecord model."""

    def test_quantity_cannot_go_negative(self, session, catalog):
        record = session.get(InventoryRecord, (catalog.store_id, catalog.jeans_id, catalog.clothing_id))
        record.quantity = -1

        with pytest.raises(IntegrityError):
            session.commit()

    def test_to_dict(self, session, catalog):
        record = session.get(InventoryRecord, (catalog.store_id, catalog.novel_id, catalog.books_id))

        data = record.to_dict()

        assert data['productName'] == 'Novel'
        assert data['quantity'] == 5
        assert data['categoryId'] == catalog.books_id


class TestTaxRuleModel:
    """Tests for TaxRule model."""

    def test_to_spec(self, session, catalog):
        rule = TaxRule(name='Bag fee', category_id=catalog.books_id, kind=TaxKind.FIXED, value=Decimal('2.5'))
        session.add(rule)
        session.commit()

        spec = rule.to_spec()

        assert spec.name == 'Bag fee'
        assert spec.kind == FIXED
        assert spec.value == Decimal('2.5')


class TestBillModel:
    """Tests for Bill model."""

    def test_bill_id_unique(self, session, catalog):
        for _ in range(2):
            session.add(Bill(
                bill_id='same-id',
                store_id=catalog.store_id,
                subtotal=Decimal('1.00'),
                tax_amount=Decimal('0.00'),
                grand_total=Decimal('1.00'),
                tax_breakdown=[],
            ))

        with pytest.raises(IntegrityError):
            session.commit()
