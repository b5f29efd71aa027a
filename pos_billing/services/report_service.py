"""
Sales report service.
Provides per-store and all-store sales aggregates over rolling windows.
"""

import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy import func

from pos_billing.database import find_by_id, utcnow
from pos_billing.exceptions import NotFoundError
from pos_billing.models import Bill, Store
from pos_billing.services.bill_computation import round2
from pos_billing.services.cache_service import get_cache

REPORT_WINDOWS = (
    ('daily', 1),
    ('weekly', 7),
    ('monthly', 30),
)

# Share of collected GST reported as pending (simulated figure)
GST_PENDING_RATIO = Decimal('0.2')


def _aggregate_sales(session, store_id: int, since: datetime, until: datetime) -> Tuple[int, Decimal, Decimal]:
    """Bill count, revenue and tax collected for a store in [since, until]."""
    row = session.query(
        func.count(Bill.id),
        func.coalesce(func.sum(Bill.grand_total), 0),
        func.coalesce(func.sum(Bill.tax_amount), 0),
    ).filter(
        Bill.store_id == store_id,
        Bill.created_at >= since,
        Bill.created_at <= until,
    ).one()
    count, revenue, tax = row
    return int(count or 0), round2(revenue or 0), round2(tax or 0)


def get_store_summary(session, store_id: int, now: Optional[datetime] = None) -> Dict:
    """
    Sales aggregates for one store.

    Returns:
        dict with keys dailySales, dailyRevenue, weeklySales, weeklyRevenue,
        monthlySales, monthlyRevenue, gstCollected (30 days), gstPending.
        Amounts are decimal strings so the summary is JSON-ready.
    """
    now = now or utcnow()
    summary = {}
    gst_collected = Decimal('0.00')

    for label, days in REPORT_WINDOWS:
        count, revenue, tax = _aggregate_sales(session, store_id, now - timedelta(days=days), now)
        summary[f'{label}Sales'] = count
        summary[f'{label}Revenue'] = str(revenue)
        if label == 'monthly':
            gst_collected = tax

    summary['gstCollected'] = str(gst_collected)
    summary['gstPending'] = math.floor(gst_collected * GST_PENDING_RATIO)
    return summary


def _cached_summary(session, store_id: int) -> Dict:
    ttl = current_app.config.get('CACHE_REPORTS_TTL', 60)
    return get_cache().memoize(store_id, 'summary', lambda: get_store_summary(session, store_id), ttl)


def get_store_report(session, store_id: int) -> Dict:
    """Manager-level report for one store."""
    store = find_by_id(session, Store, store_id)
    if not store:
        raise NotFoundError(f'Store not found: {store_id}')

    report = {'storeId': store.id}
    report.update(_cached_summary(session, store.id))
    return report


def get_all_store_reports(session) -> List[Dict]:
    """Admin-level report: one summary per store."""
    reports = []
    for store in session.query(Store).order_by(Store.id).all():
        report = dict(_cached_summary(session, store.id))
        report.update({
            'storeId': store.store_code,
            'storeName': store.name,
            'location': store.location,
        })
        reports.append(report)
    return reports
