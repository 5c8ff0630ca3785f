"""
Delivery routes
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from procurement.buisness.deliveries.delivery_tracker import DeliveryTracker
from procurement.buisness.workflow.context import RequestContext
from procurement.buisness.workflow.policies import RequestOwnershipPolicy
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload, optional_int
from procurement.services.purchasing.purchasing_service import PurchasingService

logger = get_logger("procurement.presentation.routes.deliveries")

bp = Blueprint('deliveries', __name__)


@bp.route('/deliveries/<int:item_id>', methods=['POST'])
@login_required
def confirm_delivery(item_id):
    actor = current_actor()
    payload = json_payload(logger, "confirm_delivery")
    tracker = DeliveryTracker(item_id)
    delivery = tracker.confirm_delivery(
        actor,
        payload.get('delivered_quantity'),
        receiver_name=payload.get('receiver_name'),
        delivery_type=payload.get('delivery_type'),
        vehicle_number=payload.get('vehicle_number'),
        notes=payload.get('notes'),
        photo_urls=payload.get('photo_urls'),
        expected_version=optional_int(payload.get('expected_version'), "expected_version"),
    )
    return jsonify({'delivery': delivery.to_dict(), 'item': tracker.item.to_dict()}), 201


@bp.route('/deliveries/<int:item_id>', methods=['GET'])
@login_required
def list_item_deliveries(item_id):
    actor = current_actor()
    ctx = RequestContext.for_item(item_id)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    deliveries = DeliveryTracker.deliveries_for(item_id)
    return jsonify({'deliveries': [d.to_dict() for d in deliveries], 'count': len(deliveries)})


@bp.route('/requests/<request_number>/deliveries', methods=['GET'])
@login_required
def list_request_deliveries(request_number):
    actor = current_actor()
    ctx = RequestContext.load(request_number)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    deliveries = PurchasingService.deliveries_for_request(ctx.request_number)
    return jsonify({'deliveries': [d.to_dict() for d in deliveries], 'count': len(deliveries)})
