"""
Inventory routes
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from procurement.buisness.reference.inventory_manager import InventoryManager
from procurement.data.core.inventory_item import InventoryItem
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload

logger = get_logger("procurement.presentation.routes.inventory")

bp = Blueprint('inventory', __name__)


@bp.route('/inventory', methods=['GET'])
@login_required
def list_inventory():
    current_actor()
    query = InventoryItem.query.filter_by(is_active=True)
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(InventoryItem.item_name.ilike(f"%{search}%"))
    if request.args.get('low_stock', 'false').lower() in ('true', '1', 'yes'):
        query = query.filter(InventoryItem.central_stock < current_app.config['LOW_STOCK_THRESHOLD'])
    items = query.order_by(InventoryItem.item_name).all()
    return jsonify({'items': [item.to_dict() for item in items], 'count': len(items)})


@bp.route('/inventory/<int:inventory_item_id>', methods=['GET'])
@login_required
def get_inventory_item(inventory_item_id):
    current_actor()
    return jsonify(InventoryManager(inventory_item_id).inventory_item.to_dict())


@bp.route('/inventory', methods=['POST'])
@login_required
def create_inventory_item():
    actor = current_actor()
    item = InventoryManager.create(actor, json_payload(logger, "create_inventory_item"))
    return jsonify(item.to_dict()), 201


@bp.route('/inventory/<int:inventory_item_id>', methods=['PUT'])
@login_required
def update_inventory_item(inventory_item_id):
    actor = current_actor()
    item = InventoryManager(inventory_item_id).update(actor, json_payload(logger, "update_inventory_item"))
    return jsonify(item.to_dict())


@bp.route('/inventory/<int:inventory_item_id>', methods=['DELETE'])
@login_required
def delete_inventory_item(inventory_item_id):
    item = InventoryManager(inventory_item_id).delete(current_actor())
    return jsonify(item.to_dict())


@bp.route('/inventory/link-vendor', methods=['POST'])
@login_required
def link_vendor():
    actor = current_actor()
    payload = json_payload(logger, "link_vendor")
    item = InventoryManager.link_vendor(actor, payload.get('item_name'), payload.get('vendor_id'))
    return jsonify(item.to_dict())
