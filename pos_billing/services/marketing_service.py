"""
Marketing service: upcoming-event suggestions and discount campaigns
emailed to past customers of a store.
"""
import json
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from pos_billing.database import find_by_id, utcnow
from pos_billing.exceptions import DeliveryError, NotFoundError, ValidationError
from pos_billing.models import Bill, Store
from pos_billing.services.bill_computation import parse_id
from pos_billing.services.email_service import send_email_with_attachments
from pos_billing.services.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)

CAMPAIGN_BATCH_SIZE = 50
FALLBACK_EVENT_COUNT = 4

# Fixed-date observances used when the text service is unavailable
FIXED_DATE_EVENTS = (
    ("New Year's Day", 1, 1, "Event", "Start of the calendar year"),
    ("Republic Day", 1, 26, "Holiday", "National holiday"),
    ("Independence Day", 8, 15, "Holiday", "National holiday"),
    ("Gandhi Jayanti", 10, 2, "Holiday", "National holiday"),
    ("Christmas", 12, 25, "Holiday", "Public holiday"),
)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def fallback_events(today: Optional[date] = None, count: int = FALLBACK_EVENT_COUNT) -> List[Dict]:
    """Next fixed-date observances after today."""
    today = today or utcnow().date()
    upcoming = []
    for name, month, day, kind, note in FIXED_DATE_EVENTS:
        when = date(today.year, month, day)
        if when < today:
            when = date(today.year + 1, month, day)
        upcoming.append({'name': name, 'date': when.isoformat(), 'type': kind, 'note': note})
    upcoming.sort(key=lambda event: event['date'])
    return upcoming[:count]


def parse_events(text: str) -> List[Dict]:
    """Parse a JSON array from generated text, tolerating surrounding prose."""
    try:
        events = json.loads(text)
    except ValueError:
        match = _JSON_ARRAY.search(text or '')
        if not match:
            return []
        try:
            events = json.loads(match.group(0))
        except ValueError:
            return []
    if not isinstance(events, list):
        return []
    return [event for event in events if isinstance(event, dict)]


def get_upcoming_events(client: TextGenerationClient, today: Optional[date] = None) -> Dict:
    today = today or utcnow().date()
    prompt = (
        "You are a helpful assistant for a retail cashier in India.\n"
        f"Today is {today.isoformat()}. List the next 8 notable upcoming Indian government holidays, "
        "national festivals, and widely observed events within the next 60 days.\n"
        "Return only a compact JSON array with objects of shape:\n"
        '[{ "name": string, "date": "YYYY-MM-DD", "type": "Holiday|Festival|Event", "note": string }]\n'
        "No extra text, only valid JSON."
    )

    text = client.generate(prompt, temperature=0.3, max_output_tokens=512)
    if text is None:
        logger.error("[MARKETING] Event generation failed, serving fallback")
        return {'events': fallback_events(today), 'fallback': True}

    events = parse_events(text)
    if not events:
        logger.warning(f"[MARKETING] Parsed events empty: {text[:300]}")
    else:
        logger.info(f"[MARKETING] Events fetched: {len(events)}")
    return {'events': events}


def _parse_discount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError('storeId, eventName, discountPercent required')
    try:
        discount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Invalid discountPercent: {value!r}')
    if not discount.is_finite() or discount <= 0 or discount > 100:
        raise ValidationError('discountPercent must be between 0 and 100')
    return discount


def collect_recipients(session, store_id: int) -> List[Dict[str, str]]:
    """Distinct customer emails of a store, normalized; the first name seen wins."""
    rows = session.query(Bill.customer_name, Bill.customer_email).filter(
        Bill.store_id == store_id,
        Bill.customer_email.isnot(None),
        Bill.customer_email != '',
    ).order_by(Bill.id).all()

    unique = {}
    for name, email in rows:
        email = (email or '').strip().lower()
        if email and email not in unique:
            unique[email] = {'name': name or 'Customer', 'email': email}
    return list(unique.values())


def _campaign_html(name: str, event_name: str, discount: str) -> str:
    year = utcnow().year
    return f"""
<div style="font-family: Arial, sans-serif; background:#f7f7fb; padding:24px;">
  <div style="max-width:640px; margin:0 auto; background:#ffffff; border-radius:12px; overflow:hidden;">
    <div style="background:#6d5efc; color:#fff; padding:24px 28px;">
      <h1 style="margin:0; font-size:22px;">Special Celebration Offer</h1>
      <p style="margin:6px 0 0;">Exclusive for our valued customers</p>
    </div>
    <div style="padding:28px;">
      <p style="font-size:16px; color:#333;"><strong>Welcome {name}</strong>,</p>
      <p style="font-size:16px; color:#333;">
        On the occasion of <strong>{event_name}</strong>, our previous buyers will get
        <span style="background:#fff5cc; padding:2px 6px; font-weight:600;">{discount}% OFF</span>
        on every item!
      </p>
      <p style="font-size:15px; color:#334;">Come and visit your nearest stores to enjoy this offer.</p>
    </div>
    <div style="background:#fbfbfd; color:#777; padding:14px 20px; font-size:12px; text-align:center;">
      &copy; {year} Your Store. All rights reserved.
    </div>
  </div>
</div>"""


def send_campaign(session, store_id, event_name: str, discount_percent) -> Dict:
    """Email a discount offer to every past customer of the store.

    Individual send failures are logged and skipped; `sent` counts only
    messages actually handed to the mail server.
    """
    event_name = (event_name or '').strip()
    if store_id in (None, '') or not event_name:
        raise ValidationError('storeId, eventName, discountPercent required')
    discount = format(_parse_discount(discount_percent).normalize(), 'f')

    store_id = parse_id(store_id, 'storeId')
    if not find_by_id(session, Store, store_id):
        raise NotFoundError(f'Store not found: {store_id}')

    recipients = collect_recipients(session, store_id)
    logger.info(f"[MARKETING] Campaign '{event_name}' store={store_id} recipients={len(recipients)}")
    if not recipients:
        return {'message': 'No prior customers with email found', 'sent': 0, 'totalRecipients': 0}

    subject = f"{event_name} Celebration - {discount}% OFF for our valued buyers"
    sent = 0
    for start in range(0, len(recipients), CAMPAIGN_BATCH_SIZE):
        batch = recipients[start:start + CAMPAIGN_BATCH_SIZE]
        logger.info(f"[MARKETING] Sending batch start={start} size={len(batch)}")
        for recipient in batch:
            text = (
                f"Welcome {recipient['name']}, On the occasion of {event_name}, our previous buyers "
                f"will get {discount}% discount on every item. Come and visit your nearest stores."
            )
            try:
                if send_email_with_attachments(
                    to=recipient['email'],
                    subject=subject,
                    text=text,
                    html=_campaign_html(recipient['name'], event_name, discount),
                ):
                    sent += 1
            except DeliveryError as e:
                logger.error(f"[MARKETING] Failed to send to {recipient['email']}: {e.message}")

    logger.info(f"[MARKETING] Campaign done sent={sent} total={len(recipients)}")
    return {'message': 'Campaign processed', 'sent': sent, 'totalRecipients': len(recipients)}
