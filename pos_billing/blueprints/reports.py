"""Reports blueprint: sales aggregates and trend insights."""
from flask import Blueprint, request, jsonify, current_app, Response
from typing import Tuple

from pos_billing.database import get_session
from pos_billing.services.report_service import get_store_report, get_all_store_reports
from pos_billing.services.insights_service import get_store_insights, get_global_insights

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


def _text_client():
    return current_app.extensions['text_generation']


@reports_bp.route('/store/<int:store_id>', methods=['GET'])
def store_report(store_id: int) -> Tuple[Response, int]:
    """Manager-level report for one store."""
    return jsonify(get_store_report(get_session(), store_id)), 200


@reports_bp.route('/all', methods=['GET'])
def all_store_reports() -> Tuple[Response, int]:
    """Admin-level report for every store."""
    return jsonify(get_all_store_reports(get_session())), 200


@reports_bp.route('/store/<int:store_id>/insights', methods=['GET'])
def store_insights(store_id: int) -> Tuple[Response, int]:
    result = get_store_insights(get_session(), store_id, request.args.get('question'), _text_client())
    return jsonify(result), 200


@reports_bp.route('/insights/global', methods=['GET'])
def global_insights() -> Tuple[Response, int]:
    return jsonify(get_global_insights(request.args.get('question'), _text_client())), 200
