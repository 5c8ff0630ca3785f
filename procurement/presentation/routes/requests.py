"""
Material request routes
Draft lifecycle, manager decisions and purchase-officer item edits
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.workflow.context import RequestContext
from procurement.buisness.workflow.policies import RequestOwnershipPolicy
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload, optional_int
from procurement.services.requests.audit_log_service import AuditLogService
from procurement.services.requests.request_search_service import RequestSearchService

logger = get_logger("procurement.presentation.routes.requests")

bp = Blueprint('requests', __name__)


def _load_visible(request_number, actor):
    ctx = RequestContext.load(request_number)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    return ctx


def _load_item_visible(item_id, actor):
    ctx = RequestContext.for_item(item_id)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    return ctx


def _draft_args(payload):
    return dict(
        site_id=optional_int(payload.get('site_id'), "site_id"),
        items=payload.get('items'),
        required_by=payload.get('required_by'),
        notes=payload.get('notes'),
        is_urgent=bool(payload.get('is_urgent', False)),
    )


# ========== Listing ==========

@bp.route('/requests', methods=['GET'])
@login_required
def list_requests():
    actor = current_actor()
    filters = RequestSearchService.parse_filters(request.args)
    groups = RequestSearchService.list_groups(actor, filters)
    return jsonify({'requests': [group.to_dict() for group in groups], 'count': len(groups)})


@bp.route('/requests/items', methods=['GET'])
@login_required
def list_request_items():
    actor = current_actor()
    filters = RequestSearchService.parse_filters(request.args)
    items = RequestSearchService.list_items(actor, filters)
    return jsonify({'items': [item.to_dict() for item in items], 'count': len(items)})


@bp.route('/requests/<request_number>', methods=['GET'])
@login_required
def get_request(request_number):
    actor = current_actor()
    ctx = _load_visible(request_number, actor)
    data = ctx.to_dict(actor)
    data['notes'] = [note.to_dict() for note in AuditLogService.get_notes(ctx.request_number)]
    return jsonify(data)


# ========== Draft lifecycle ==========

@bp.route('/requests', methods=['POST'])
@login_required
def create_draft():
    actor = current_actor()
    payload = json_payload(logger, "create_draft")
    ctx = RequestContext.create_draft(actor, **_draft_args(payload))
    return jsonify(ctx.to_dict(actor)), 201


@bp.route('/requests/<request_number>', methods=['PUT'])
@login_required
def update_draft(request_number):
    actor = current_actor()
    payload = json_payload(logger, "update_draft")
    ctx = _load_visible(request_number, actor)
    ctx.update_draft(actor, **_draft_args(payload))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/<request_number>/send', methods=['POST'])
@login_required
def send_draft(request_number):
    actor = current_actor()
    payload = json_payload(logger, "send_draft")
    ctx = _load_visible(request_number, actor)
    ctx.send(actor, payload.get('order_note'), optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/<request_number>', methods=['DELETE'])
@login_required
def delete_draft(request_number):
    actor = current_actor()
    ctx = _load_visible(request_number, actor)
    removed = ctx.delete(actor)
    return jsonify({'success': True, 'deleted_items': removed})


# ========== Manager decision ==========

@bp.route('/requests/<request_number>/approve', methods=['POST'])
@login_required
def approve_request(request_number):
    actor = current_actor()
    payload = json_payload(logger, "approve_request")
    ctx = _load_visible(request_number, actor)
    ctx.approve(actor, optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/<request_number>/reject', methods=['POST'])
@login_required
def reject_request(request_number):
    actor = current_actor()
    payload = json_payload(logger, "reject_request")
    ctx = _load_visible(request_number, actor)
    ctx.reject(actor, payload.get('reason'), optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/<request_number>/route', methods=['POST'])
@login_required
def route_request(request_number):
    actor = current_actor()
    payload = json_payload(logger, "route_request")
    ctx = _load_visible(request_number, actor)
    ctx.route_direct(actor, payload.get('direct_action'),
                     optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/items/<int:item_id>/approve', methods=['POST'])
@login_required
def approve_request_item(item_id):
    """Addressing one item approves its whole group"""
    actor = current_actor()
    payload = json_payload(logger, "approve_request_item")
    ctx = _load_item_visible(item_id, actor)
    ctx.approve(actor, optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/items/<int:item_id>/reject', methods=['POST'])
@login_required
def reject_request_item(item_id):
    actor = current_actor()
    payload = json_payload(logger, "reject_request_item")
    ctx = _load_item_visible(item_id, actor)
    ctx.reject(actor, payload.get('reason'), optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))


# ========== Purchase officer, item level ==========

@bp.route('/requests/items/<int:item_id>', methods=['PATCH'])
@login_required
def update_item_details(item_id):
    actor = current_actor()
    payload = json_payload(logger, "update_item_details")
    expected_version = optional_int(payload.pop('expected_version', None), "expected_version")
    ctx = _load_item_visible(item_id, actor)
    ctx.update_details(actor, item_id, payload, expected_version)
    return jsonify(ctx.to_dict(actor))


@bp.route('/requests/items/<int:item_id>/direct-to-po', methods=['POST'])
@login_required
def direct_to_po(item_id):
    actor = current_actor()
    payload = json_payload(logger, "direct_to_po")
    ctx = _load_item_visible(item_id, actor)
    ctx.direct_to_po(actor, item_id, optional_int(payload.get('expected_version'), "expected_version"))
    return jsonify(ctx.to_dict(actor))
