"""
Integration tests for the inventory ledger.
"""

import pytest

from pos_billing.exceptions import InsufficientStockError, NotFoundError, ValidationError
from pos_billing.services import inventory_service
from pos_billing.services.bill_computation import MAX_QUANTITY
from pos_billing.services.inventory_service import Reservation, reserve, reserve_all, restock


class TestReserve:
    """Tests for conditional decrements."""

    def test_reserve_decrements(self, session, catalog, stock):
        reserve(session, catalog.store_id, catalog.shirt_id, catalog.clothing_id, 4, 'Shirt')
        session.commit()

        assert stock(catalog.store_id, catalog.shirt_id) == 6

    def test_reserve_exact_quantity_reaches_zero(self, session, catalog, stock):
        reserve(session, catalog.store_id, catalog.jeans_id, catalog.clothing_id, 1, 'Jeans')
        session.commit()

        assert stock(catalog.store_id, catalog.jeans_id) == 0

    def test_reserve_more_than_available(self, session, catalog, stock):
        with pytest.raises(InsufficientStockError) as excinfo:
            reserve(session, catalog.store_id, catalog.jeans_id, catalog.clothing_id, 2, 'Jeans')
        session.rollback()

        assert excinfo.value.available == 1
        assert excinfo.value.requested == 2
        assert stock(catalog.store_id, catalog.jeans_id) == 1

    def test_reserve_wrong_category_key(self, session, catalog):
        with pytest.raises(InsufficientStockError):
            reserve(session, catalog.store_id, catalog.shirt_id, catalog.books_id, 1, 'Shirt')
        session.rollback()

    def test_reserve_all_rolls_back_as_a_unit(self, session, catalog, stock):
        reservations = [
            Reservation(catalog.shirt_id, catalog.clothing_id, 5, 'Shirt'),
            Reservation(catalog.jeans_id, catalog.clothing_id, 2, 'Jeans'),
        ]

        with pytest.raises(InsufficientStockError):
            reserve_all(session, catalog.store_id, reservations)
        session.rollback()

        assert stock(catalog.store_id, catalog.shirt_id) == 10

    def test_reserve_all_merges_same_key(self, session, catalog, stock):
        reservations = [
            Reservation(catalog.novel_id, catalog.books_id, 2, 'Novel'),
            Reservation(catalog.novel_id, catalog.books_id, 3, 'Novel'),
        ]

        reserve_all(session, catalog.store_id, reservations)
        session.commit()

        assert stock(catalog.store_id, catalog.novel_id) == 0

    def test_reserve_all_follows_key_order(self, session, catalog, monkeypatch):
        calls = []
        monkeypatch.setattr(inventory_service, 'reserve',
                            lambda session, store_id, product_id, *args: calls.append(product_id))
        reservations = [
            Reservation(catalog.novel_id, catalog.books_id, 1, 'Novel'),
            Reservation(catalog.jeans_id, catalog.clothing_id, 1, 'Jeans'),
            Reservation(catalog.shirt_id, catalog.clothing_id, 1, 'Shirt'),
        ]

        reserve_all(session, catalog.store_id, reservations)
        reserve_all(session, catalog.store_id, reversed(reservations))

        expected = sorted([catalog.novel_id, catalog.jeans_id, catalog.shirt_id])
        assert calls == expected + expected


class TestRestock:
    """Tests for restocking."""

    def test_restock_existing_record(self, session, catalog):
        record = restock(session, catalog.store_id, catalog.jeans_id, 4)

        assert record.quantity == 5

    def test_restock_creates_record(self, session, catalog):
        record = restock(session, catalog.other_store_id, catalog.novel_id, 2)

        assert record.quantity == 2
        assert record.category_id == catalog.books_id

    @pytest.mark.parametrize('quantity', [0, -1, 'x', None])
    def test_invalid_quantity(self, session, catalog, quantity):
        with pytest.raises(ValidationError):
            restock(session, catalog.store_id, catalog.shirt_id, quantity)

    def test_unknown_store_and_product(self, session, catalog):
        with pytest.raises(NotFoundError):
            restock(session, 987654, catalog.shirt_id, 1)
        with pytest.raises(NotFoundError):
            restock(session, catalog.store_id, 987654, 1)
        with pytest.raises(NotFoundError):
            restock(session, 10**20, catalog.shirt_id, 1)

    def test_restock_past_column_limit(self, session, catalog, stock):
        with pytest.raises(ValidationError):
            restock(session, catalog.store_id, catalog.shirt_id, MAX_QUANTITY)

        assert stock(catalog.store_id, catalog.shirt_id) == 10

    def test_restock_up_to_column_limit(self, session, catalog):
        record = restock(session, catalog.store_id, catalog.shirt_id, MAX_QUANTITY - 10)

        assert record.quantity == MAX_QUANTITY


class TestInventoryApi:
    """Tests for the inventory endpoints."""

    def test_list_store_inventory(self, client, catalog):
        response = client.get(f'/api/inventory/store/{catalog.store_id}')

        assert response.status_code == 200
        inventory = response.get_json()['inventory']
        assert {row['productName']: row['quantity'] for row in inventory} == {
            'Shirt': 10, 'Jeans': 1, 'Novel': 5
        }

    def test_restock_endpoint(self, client, catalog):
        response = client.post('/api/inventory/restock', json={
            'storeId': catalog.store_id, 'productId': catalog.jeans_id, 'quantity': 9
        })

        assert response.status_code == 200
        assert response.get_json()['inventory']['quantity'] == 10

    def test_restock_missing_ids(self, client, catalog):
        response = client.post('/api/inventory/restock', json={'quantity': 1})

        assert response.status_code == 400

    @pytest.mark.parametrize('ids', [
        {'storeId': True},
        {'productId': 1.9},
        {'productId': '2.5'},
        {'storeId': [1]},
    ])
    def test_restock_malformed_ids(self, client, catalog, stock, ids):
        body = {'storeId': catalog.store_id, 'productId': catalog.shirt_id, 'quantity': 1}
        body.update(ids)

        response = client.post('/api/inventory/restock', json=body)

        assert response.status_code == 400
        assert stock(catalog.store_id, catalog.shirt_id) == 10

    def test_restock_out_of_range_product(self, client, catalog):
        response = client.post('/api/inventory/restock', json={
            'storeId': catalog.store_id, 'productId': 10**20, 'quantity': 1
        })

        assert response.status_code == 404

    def test_list_out_of_range_store(self, client, catalog):
        response = client.get(f'/api/inventory/store/{10**20}')

        assert response.status_code == 200
        assert response.get_json() == {'inventory': []}

    def test_restock_then_checkout(self, client, catalog):
        client.post('/api/inventory/restock', json={
            'storeId': catalog.store_id, 'productId': catalog.jeans_id, 'quantity': 2
        })

        response = client.post('/api/bills/checkout', json={
            'storeId': catalog.store_id,
            'items': [{'productId': catalog.jeans_id, 'quantity': 3}],
        })

        assert response.status_code == 201
