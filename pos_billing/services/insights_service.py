"""Trend insights generated from store sales, with static fallbacks."""
import json
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import func

from pos_billing.database import find_by_id, utcnow
from pos_billing.exceptions import NotFoundError
from pos_billing.models import Bill, BillLine, Store
from pos_billing.services.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)

SUMMARY_DAYS = 90
SUMMARY_LIMIT = 100

STORE_FALLBACK = (
    "Approximate insights based on sales summary: Focus on replenishing top-selling "
    "products, bundle complementary items, and promote 10-15% discounts on slower movers. "
    "(AI service temporarily unavailable)"
)

GLOBAL_FALLBACK = (
    "Global Fashion Trends (Fallback Data):\n"
    "- Sustainable fashion continues to gain momentum\n"
    "- Comfort-focused styles remain popular\n"
    "- Digital-first shopping experiences are the new norm\n"
    "- Seasonal color trends vary by region and demographics\n"
    "- Note: AI insights temporarily unavailable"
)


def store_sales_summary(session, store_id: int, days: int = SUMMARY_DAYS) -> List[Dict]:
    """Units and revenue per product name over the last `days`, top sellers first."""
    since = utcnow() - timedelta(days=days)
    units = func.sum(BillLine.quantity)
    rows = session.query(
        BillLine.product_name,
        units.label('units'),
        func.sum(BillLine.line_total).label('revenue'),
    ).join(Bill, Bill.id == BillLine.bill_id).filter(
        Bill.store_id == store_id,
        Bill.created_at >= since,
    ).group_by(BillLine.product_name).order_by(units.desc(), BillLine.product_name).limit(SUMMARY_LIMIT).all()

    return [
        {'productName': name, 'units': int(total_units or 0), 'revenue': float(revenue or 0)}
        for name, total_units, revenue in rows
    ]


def _store_prompt(store_id: int, summary: List[Dict], question: str) -> str:
    today = utcnow().date().isoformat()
    return f"""Using ONLY the store sales summary below, answer the user's question as specifically as possible. If the exact answer is not derivable, provide the CLOSEST POSSIBLE estimate from the available data and clearly label it as "approximate". Never refuse; always answer with your best available store-based insight.

Store ID: {store_id}
Data window in summary: last {SUMMARY_DAYS} days (as of {today})

Sales summary (aggregated by productName):
{json.dumps(summary)}

User question:
{question}

Answer format:
- Short, direct bullets or a numbered list
- If estimating, include a brief note like "approximate based on last {SUMMARY_DAYS} days\""""


def get_store_insights(session, store_id: int, question: Optional[str],
                       client: TextGenerationClient) -> Dict:
    """Insights for one store from its recent sales."""
    if not find_by_id(session, Store, store_id):
        raise NotFoundError(f'Store not found: {store_id}')

    question = (question or '').strip() or \
        "Provide overall fashion trend insights for this store based on recent sales."
    summary = store_sales_summary(session, store_id)

    text = client.generate(_store_prompt(store_id, summary, question), temperature=0.25)
    if text is None:
        logger.warning(f"[AI] Serving fallback insights for store {store_id}")
        return {'insights': STORE_FALLBACK, 'fallback': True}
    return {'insights': text}


def get_global_insights(question: Optional[str], client: TextGenerationClient) -> Dict:
    """Store-independent insights."""
    question = (question or '').strip() or "Global fashion insights (concise)."
    today = utcnow().date().isoformat()
    prompt = (
        "Answer the user's question about fashion directly. If the timeframe is current/future "
        "or data is uncertain, infer the most likely answer from widely recognized global patterns "
        f"up to {today}, and clearly label it as \"approximate\". Do not refuse. Keep it concise "
        "(<= 8 items or <= 10 bullets). Avoid generic templates.\n\n"
        f"User question:\n{question}"
    )

    text = client.generate(prompt, temperature=0.2)
    if text is None:
        return {'insights': GLOBAL_FALLBACK, 'fallback': True}
    return {'insights': text}
