"""
Email service for invoices and marketing campaigns.
Uses Flask-Mail for SMTP delivery with attachments.
"""
import logging
import time
from typing import List, Optional

from flask import current_app
from flask_mail import Mail, Message

from pos_billing.exceptions import DeliveryError

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """Check if mail is configured and enabled."""
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def send_email_with_attachments(
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    attachments: Optional[List[dict]] = None
) -> bool:
    """
    Send an email, retrying transient SMTP failures.

    Args:
        to: Recipient email
        subject: Email subject
        text: Plain text body
        html: HTML body (optional)
        attachments: list of {filename, content: bytes, content_type?}

    Returns:
        True if sent, False if mail is disabled and the send was skipped

    Raises:
        DeliveryError: when every attempt failed
    """
    if not _mail_enabled():
        logger.warning(f"[MAIL DISABLED] Email skipped for {to}: {subject}")
        return False

    msg = Message(subject=subject, recipients=[to], body=text, html=html)
    for attachment in attachments or []:
        msg.attach(
            attachment['filename'],
            attachment.get('content_type', 'application/pdf'),
            attachment['content'],
        )

    retries = max(1, int(current_app.config.get('MAIL_SEND_RETRIES', 3)))
    backoff = float(current_app.config.get('MAIL_RETRY_BACKOFF', 1.0))
    last_error = None
    for attempt in range(1, retries + 1):
        try:
            mail.send(msg)
            logger.info(f"[EMAIL] Sent to {to}: {subject}")
            return True
        except Exception as e:
            last_error = e
            logger.warning(f"[EMAIL] Attempt {attempt}/{retries} to {to} failed: {e}")
            if attempt < retries:
                time.sleep(min(backoff * 2 ** (attempt - 1), 5.0))

    logger.error(f"[EMAIL] Giving up on {to} after {retries} attempts")
    raise DeliveryError(f'Failed to send email to {to}: {last_error}')
