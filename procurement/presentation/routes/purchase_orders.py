"""
Purchase order routes
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement import db
from procurement.buisness.purchase_orders.purchase_order_factory import PurchaseOrderFactory
from procurement.buisness.purchase_orders.purchase_order_manager import PurchaseOrderManager
from procurement.buisness.workflow.errors import ForbiddenError, NotFoundError, ValidationError
from procurement.buisness.core.actor import SITE_ENGINEER
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload, optional_int
from procurement.services.purchasing.purchasing_service import PurchasingService

logger = get_logger("procurement.presentation.routes.purchase_orders")

bp = Blueprint('purchase_orders', __name__)

HEADER_FIELDS = ('expected_delivery_date', 'valid_till', 'gst_tax_rate', 'notes')


def _header_info(payload):
    return {field: payload.get(field) for field in HEADER_FIELDS if field in payload}


@bp.route('/purchase-orders', methods=['GET'])
@login_required
def list_purchase_orders():
    actor = current_actor()
    filters = PurchasingService.parse_po_filters(request.args)
    orders = PurchasingService.list_purchase_orders(actor, filters)
    return jsonify({'purchase_orders': [po.to_dict() for po in orders], 'count': len(orders)})


@bp.route('/purchase-orders/<int:po_id>', methods=['GET'])
@login_required
def get_purchase_order(po_id):
    actor = current_actor()
    po = db.session.get(PurchaseOrderHeader, po_id)
    if po is None:
        raise NotFoundError(f"Purchase order {po_id} not found")
    if actor.role == SITE_ENGINEER and not actor.is_assigned_to(po.delivery_site_id):
        raise ForbiddenError(f"You do not have access to {po.po_number}")
    return jsonify(po.to_dict())


@bp.route('/purchase-orders', methods=['POST'])
@login_required
def issue_purchase_orders():
    """Issue POs for items with an approved cost comparison, one PO per vendor"""
    actor = current_actor()
    payload = json_payload(logger, "issue_purchase_orders")
    overrides = payload.get('vendor_overrides') or {}
    if not isinstance(overrides, dict):
        raise ValidationError("vendor_overrides must map request item ids to vendor ids")
    item_ids = payload.get('request_item_ids')
    if not isinstance(item_ids, list):
        raise ValidationError("request_item_ids must be a list")
    orders = PurchaseOrderFactory.issue_from_cost_comparisons(
        actor,
        request_item_ids=[optional_int(i, "request_item_ids") for i in item_ids],
        vendor_overrides={optional_int(k, "vendor_overrides"): optional_int(v, "vendor_overrides")
                          for k, v in overrides.items()},
        header_info=_header_info(payload),
    )
    return jsonify({'purchase_orders': [po.to_dict() for po in orders]}), 201


@bp.route('/purchase-orders/issue-direct', methods=['POST'])
@login_required
def issue_direct_purchase_order():
    """Issue a PO for an item that skipped the cost comparison"""
    actor = current_actor()
    payload = json_payload(logger, "issue_direct_purchase_order")
    po = PurchaseOrderFactory.issue_direct(
        actor,
        request_item_id=optional_int(payload.get('request_item_id'), "request_item_id"),
        vendor_id=payload.get('vendor_id'),
        unit_price=payload.get('unit_price'),
        header_info=_header_info(payload),
    )
    return jsonify(po.to_dict()), 201


@bp.route('/purchase-orders/<int:po_id>/ordered', methods=['POST'])
@login_required
def mark_ordered(po_id):
    po = PurchaseOrderManager(po_id).mark_ordered(current_actor())
    return jsonify(po.to_dict())


@bp.route('/purchase-orders/<int:po_id>/dispatch', methods=['POST'])
@login_required
def mark_out_for_delivery(po_id):
    po = PurchaseOrderManager(po_id).mark_out_for_delivery(current_actor())
    return jsonify(po.to_dict())


@bp.route('/purchase-orders/<int:po_id>/cancel', methods=['POST'])
@login_required
def cancel_purchase_order(po_id):
    actor = current_actor()
    payload = json_payload(logger, "cancel_purchase_order")
    po = PurchaseOrderManager(po_id).cancel(actor, payload.get('reason'))
    return jsonify(po.to_dict())


@bp.route('/purchase-orders/<int:po_id>/reject', methods=['POST'])
@login_required
def reject_purchase_order(po_id):
    actor = current_actor()
    payload = json_payload(logger, "reject_purchase_order")
    po = PurchaseOrderManager(po_id).reject(actor, payload.get('reason'))
    return jsonify(po.to_dict())
