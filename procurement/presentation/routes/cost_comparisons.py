"""
Cost comparison routes
One comparison per request item, addressed by the request item id
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.cost_comparisons.cost_comparison_manager import CostComparisonManager
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload, optional_int
from procurement.services.purchasing.purchasing_service import PurchasingService

logger = get_logger("procurement.presentation.routes.cost_comparisons")

bp = Blueprint('cost_comparisons', __name__)


@bp.route('/cost-comparisons', methods=['GET'])
@login_required
def list_cost_comparisons():
    current_actor()
    comparisons = PurchasingService.list_cost_comparisons(request.args.get('status') or None)
    return jsonify({'cost_comparisons': [c.to_dict() for c in comparisons], 'count': len(comparisons)})


@bp.route('/cost-comparisons/<int:item_id>', methods=['GET'])
@login_required
def get_cost_comparison(item_id):
    current_actor()
    return jsonify(CostComparisonManager(item_id).to_dict())


@bp.route('/cost-comparisons/<int:item_id>', methods=['PUT'])
@login_required
def upsert_cost_comparison(item_id):
    actor = current_actor()
    payload = json_payload(logger, "upsert_cost_comparison")
    manager = CostComparisonManager(item_id)
    manager.upsert(actor, payload.get('vendor_quotes'), bool(payload.get('is_direct_delivery', False)))
    return jsonify(manager.to_dict())


@bp.route('/cost-comparisons/<int:item_id>/submit', methods=['POST'])
@login_required
def submit_cost_comparison(item_id):
    actor = current_actor()
    payload = json_payload(logger, "submit_cost_comparison")
    manager = CostComparisonManager(item_id)
    if 'vendor_quotes' in payload:
        manager.upsert(actor, payload.get('vendor_quotes'), bool(payload.get('is_direct_delivery', False)))
    manager.submit(actor, optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(manager.to_dict())


@bp.route('/cost-comparisons/<int:item_id>/approve', methods=['POST'])
@login_required
def approve_cost_comparison(item_id):
    actor = current_actor()
    payload = json_payload(logger, "approve_cost_comparison")
    manager = CostComparisonManager(item_id)
    manager.approve(actor, payload.get('selected_vendor_id'), payload.get('notes'))
    return jsonify(manager.to_dict())


@bp.route('/cost-comparisons/<int:item_id>/reject', methods=['POST'])
@login_required
def reject_cost_comparison(item_id):
    actor = current_actor()
    payload = json_payload(logger, "reject_cost_comparison")
    manager = CostComparisonManager(item_id)
    manager.reject(actor, payload.get('manager_notes'))
    return jsonify(manager.to_dict())


@bp.route('/cost-comparisons/<int:item_id>/resubmit', methods=['POST'])
@login_required
def resubmit_cost_comparison(item_id):
    actor = current_actor()
    payload = json_payload(logger, "resubmit_cost_comparison")
    is_direct = payload.get('is_direct_delivery')
    manager = CostComparisonManager(item_id)
    manager.resubmit(actor, payload.get('vendor_quotes'), None if is_direct is None else bool(is_direct))
    return jsonify(manager.to_dict())
