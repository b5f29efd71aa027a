"""Marketing blueprint: event suggestions and discount campaigns."""
from flask import Blueprint, request, jsonify, current_app, Response
from typing import Tuple

from pos_billing.database import get_session
from pos_billing.services.marketing_service import get_upcoming_events, send_campaign

marketing_bp = Blueprint('marketing', __name__, url_prefix='/api/marketing')


@marketing_bp.route('/events', methods=['GET'])
def upcoming_events() -> Tuple[Response, int]:
    return jsonify(get_upcoming_events(current_app.extensions['text_generation'])), 200


@marketing_bp.route('/campaign', methods=['POST'])
def campaign() -> Tuple[Response, int]:
    """Body: {storeId, eventName, discountPercent}."""
    data = request.get_json(silent=True) or {}
    result = send_campaign(
        get_session(),
        data.get('storeId'),
        data.get('eventName'),
        data.get('discountPercent'),
    )
    return jsonify(result), 200
