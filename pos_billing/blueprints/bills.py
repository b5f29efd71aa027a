"""Bills blueprint: checkout, listing and invoice re-send."""
from flask import Blueprint, request, jsonify, current_app, Response
from typing import Tuple

from pos_billing.database import get_session
from pos_billing.services.checkout_service import checkout
from pos_billing.services.bill_store import get_bill, list_bills_by_store
from pos_billing.services.invoice_delivery import send_invoice

bills_bp = Blueprint('bills', __name__, url_prefix='/api/bills')


@bills_bp.route('/checkout', methods=['POST'])
def create_bill() -> Tuple[Response, int]:
    """Convert the posted cart into a bill, decrementing inventory."""
    db_session = get_session()
    data = request.get_json(silent=True)

    bill = checkout(data, db_session)

    current_app.logger.info(f"Bill {bill.bill_id} created for store {bill.store_id}")
    return jsonify({
        'message': 'Bill created successfully',
        'bill': bill.to_dict(),
    }), 201


@bills_bp.route('/store/<int:store_id>', methods=['GET'])
def bills_by_store(store_id: int) -> Tuple[Response, int]:
    """All bills of a store, newest first."""
    db_session = get_session()
    bills = list_bills_by_store(db_session, store_id)
    return jsonify({'bills': [bill.to_dict() for bill in bills]}), 200


@bills_bp.route('/<bill_id>/send-email', methods=['POST'])
def send_bill_email(bill_id: str) -> Tuple[Response, int]:
    """Render and send the invoice again, to the body email or the stored one."""
    db_session = get_session()
    data = request.get_json(silent=True) or {}

    bill = get_bill(db_session, bill_id)
    sent = send_invoice(bill, data.get('email'))

    if not sent:
        current_app.logger.warning(f"Invoice email for {bill_id} skipped: mail disabled")
        return jsonify({'status': 'error', 'message': 'Email delivery is not configured'}), 503
    return jsonify({'message': 'Invoice email sent'}), 200
