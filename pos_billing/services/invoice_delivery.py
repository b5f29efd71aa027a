"""
Invoice delivery: render the bill PDF and email it to the customer.

Two entry points:
- dispatch_invoice: best-effort send right after checkout. Never raises; by
  default runs on a background thread so SMTP latency and retries stay out
  of the checkout response.
- send_invoice: explicit (re-)send for an existing bill. Raises DeliveryError.
"""
import logging
import threading

from flask import current_app

from pos_billing.database import get_session
from pos_billing.exceptions import ValidationError
from pos_billing.services.bill_store import get_bill
from pos_billing.services.email_service import send_email_with_attachments
from pos_billing.services.invoice_pdf import render_invoice_pdf

logger = logging.getLogger(__name__)

CHECKOUT_INTRO = "Thank you for your purchase. Please find your invoice attached."
RESEND_INTRO = "Please find your invoice attached."


def build_invoice_message(bill, to: str, intro: str = CHECKOUT_INTRO) -> dict:
    """Message payload for the mail collaborator: {to, subject, text, html, attachments}."""
    name = bill.customer_name or "Customer"
    return {
        'to': to,
        'subject': f"Your Invoice - {bill.bill_id}",
        'text': f"Hi {name},\n\n{intro}",
        'html': f"<p>Hi {name},</p><p>{intro}</p>",
        'attachments': [
            {
                'filename': f"invoice-{bill.bill_id}.pdf",
                'content': render_invoice_pdf(bill),
            }
        ],
    }


def send_invoice(bill, to: str = None, intro: str = RESEND_INTRO) -> bool:
    """Render and send the invoice, to the given address or the one on the bill.

    Raises:
        ValidationError: no address on the request or the bill
        DeliveryError: rendering or sending failed
    """
    recipient = (to or '').strip() or bill.customer_email
    if not recipient:
        raise ValidationError('No email provided on request or stored on bill')

    message = build_invoice_message(bill, recipient, intro)
    sent = send_email_with_attachments(**message)
    _record_delivery('sent' if sent else 'skipped')
    return sent


def _deliver(bill) -> None:
    try:
        send_invoice(bill, bill.customer_email, intro=CHECKOUT_INTRO)
    except Exception as e:
        # The bill is already committed; delivery failures are only logged.
        logger.exception(f"[EMAIL] Failed to send invoice {bill.bill_id}: {e}")
        _record_delivery('failed')


def _deliver_in_background(app, bill_id: str) -> None:
    with app.app_context():
        try:
            bill = get_bill(get_session(), bill_id)
        except Exception as e:
            logger.exception(f"[EMAIL] Could not load bill {bill_id} for delivery: {e}")
            _record_delivery('failed')
            return
        _deliver(bill)


def dispatch_invoice(bill) -> None:
    """Fire-and-forget delivery after a successful checkout."""
    if not bill.customer_email:
        return

    if current_app.config.get('INVOICE_DELIVERY_ASYNC', True):
        worker = threading.Thread(
            target=_deliver_in_background,
            args=(current_app._get_current_object(), bill.bill_id),
            name=f"invoice-{bill.bill_id}",
            daemon=True,
        )
        worker.start()
        logger.info(f"[EMAIL] Invoice {bill.bill_id} queued for {bill.customer_email}")
    else:
        _deliver(bill)


def _record_delivery(outcome: str) -> None:
    try:
        from pos_billing.blueprints.metrics import invoice_deliveries_total
        invoice_deliveries_total.labels(outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"[EMAIL] Failed to record metrics: {e}")
