"""
Integration tests for sales reports and insights.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from pos_billing.database import utcnow
from pos_billing.models import Bill
from pos_billing.services.insights_service import GLOBAL_FALLBACK, STORE_FALLBACK, store_sales_summary
from pos_billing.services.report_service import get_store_summary


class StubClient:
    def __init__(self, text=None):
        self.text = text
        self.prompts = []

    def generate(self, prompt, **kwargs):
        self.prompts.append(prompt)
        return self.text


def sell(client, store_id, product_id, quantity=1):
    response = client.post('/api/bills/checkout', json={
        'storeId': store_id,
        'items': [{'productId': product_id, 'quantity': quantity}],
    })
    assert response.status_code == 201
    return response.get_json()['bill']


def old_bill(session, store_id, days_ago, total, tax):
    session.add(Bill(
        bill_id=f'old-{days_ago}',
        store_id=store_id,
        subtotal=Decimal(total) - Decimal(tax),
        tax_amount=Decimal(tax),
        grand_total=Decimal(total),
        tax_breakdown=[],
        created_at=utcnow() - timedelta(days=days_ago),
    ))
    session.commit()


class TestStoreSummary:
    """Tests for rolling-window aggregates."""

    def test_empty_store(self, session, catalog):
        summary = get_store_summary(session, catalog.store_id)

        assert summary['dailySales'] == 0
        assert summary['monthlyRevenue'] == '0.00'
        assert summary['gstPending'] == 0

    def test_windows(self, session, catalog):
        old_bill(session, catalog.store_id, 3, '118.00', '18.00')
        old_bill(session, catalog.store_id, 10, '236.00', '36.00')
        old_bill(session, catalog.store_id, 45, '500.00', '50.00')

        summary = get_store_summary(session, catalog.store_id)

        assert (summary['dailySales'], summary['weeklySales'], summary['monthlySales']) == (0, 1, 2)
        assert summary['weeklyRevenue'] == '118.00'
        assert summary['monthlyRevenue'] == '354.00'
        assert summary['gstCollected'] == '54.00'
        assert summary['gstPending'] == 10


class TestReportApi:
    """Tests for the report endpoints."""

    def test_store_report(self, client, catalog):
        sell(client, catalog.store_id, catalog.shirt_id, 2)

        response = client.get(f'/api/reports/store/{catalog.store_id}')

        assert response.status_code == 200
        report = response.get_json()
        assert report['storeId'] == catalog.store_id
        assert report['dailySales'] == 1
        assert Decimal(report['dailyRevenue']) == Decimal('236.00')
        assert Decimal(report['gstCollected']) == Decimal('36.00')
        assert report['gstPending'] == 7

    def test_unknown_store(self, client, catalog):
        response = client.get('/api/reports/store/987654')

        assert response.status_code == 404

    def test_all_stores(self, client, catalog):
        sell(client, catalog.other_store_id, catalog.shirt_id, 1)

        reports = client.get('/api/reports/all').get_json()

        assert [r['storeId'] for r in reports] == ['SR1', 'SR2']
        assert reports[0]['monthlySales'] == 0
        assert reports[1]['monthlySales'] == 1
        assert reports[1]['storeName'] == 'Mall Store'
        assert reports[1]['location'] == 'City Mall'


class TestInsights:
    """Tests for generated insights and their fallbacks."""

    def test_sales_summary(self, client, session, catalog):
        sell(client, catalog.store_id, catalog.shirt_id, 2)
        sell(client, catalog.store_id, catalog.novel_id, 3)
        sell(client, catalog.store_id, catalog.shirt_id, 1)

        summary = store_sales_summary(session, catalog.store_id)

        assert summary == [
            {'productName': 'Novel', 'units': 3, 'revenue': 120.0},
            {'productName': 'Shirt', 'units': 3, 'revenue': 300.0},
        ]

    def test_store_insights(self, app, client, catalog, monkeypatch):
        stub = StubClient('- Restock shirts')
        monkeypatch.setitem(app.extensions, 'text_generation', stub)
        sell(client, catalog.store_id, catalog.shirt_id, 2)

        response = client.get(
            f'/api/reports/store/{catalog.store_id}/insights', query_string={'question': 'What sells?'}
        )

        assert response.status_code == 200
        assert response.get_json() == {'insights': '- Restock shirts'}
        assert 'What sells?' in stub.prompts[0]
        assert '"productName": "Shirt"' in stub.prompts[0]

    def test_store_insights_fallback(self, app, client, catalog, monkeypatch):
        monkeypatch.setitem(app.extensions, 'text_generation', StubClient(None))

        response = client.get(f'/api/reports/store/{catalog.store_id}/insights')

        assert response.get_json() == {'insights': STORE_FALLBACK, 'fallback': True}

    def test_store_insights_unknown_store(self, app, client, catalog, monkeypatch):
        monkeypatch.setitem(app.extensions, 'text_generation', StubClient('x'))

        response = client.get('/api/reports/store/987654/insights')

        assert response.status_code == 404

    @pytest.mark.parametrize('text, expected', [
        ('Denim is back', {'insights': 'Denim is back'}),
        (None, {'insights': GLOBAL_FALLBACK, 'fallback': True}),
    ])
    def test_global_insights(self, app, client, monkeypatch, text, expected):
        monkeypatch.setitem(app.extensions, 'text_generation', StubClient(text))

        response = client.get('/api/reports/insights/global')

        assert response.status_code == 200
        assert response.get_json() == expected
