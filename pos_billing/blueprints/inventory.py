"""Inventory blueprint: stock listing and restock."""
from flask import Blueprint, request, jsonify, current_app, Response
from typing import Tuple

from pos_billing.database import get_session
from pos_billing.exceptions import ValidationError
from pos_billing.services.bill_computation import parse_id
from pos_billing.services.inventory_service import get_store_inventory, restock

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')


@inventory_bp.route('/store/<int:store_id>', methods=['GET'])
def store_inventory(store_id: int) -> Tuple[Response, int]:
    db_session = get_session()
    records = get_store_inventory(db_session, store_id)
    return jsonify({'inventory': [record.to_dict() for record in records]}), 200


@inventory_bp.route('/restock', methods=['POST'])
def restock_product() -> Tuple[Response, int]:
    """Increment stock. Body: {storeId, productId, quantity}."""
    db_session = get_session()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    if data.get('storeId') in (None, '') or data.get('productId') in (None, ''):
        raise ValidationError('storeId and productId are required')
    store_id = parse_id(data['storeId'], 'storeId')
    product_id = parse_id(data['productId'], 'productId')

    record = restock(db_session, store_id, product_id, data.get('quantity'))
    current_app.logger.info(f"Restocked product {product_id} in store {store_id}")
    return jsonify({'message': 'Inventory updated', 'inventory': record.to_dict()}), 200
