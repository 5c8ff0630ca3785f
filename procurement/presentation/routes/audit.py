"""
Audit note routes
Request notes are append-only; the GRN log is the delivery subset across requests.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.workflow.context import RequestContext
from procurement.buisness.workflow.policies import RequestOwnershipPolicy
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload
from procurement.services.requests.audit_log_service import AuditLogService

logger = get_logger("procurement.presentation.routes.audit")

bp = Blueprint('audit', __name__)


@bp.route('/notes/<request_number>', methods=['GET'])
@login_required
def get_notes(request_number):
    actor = current_actor()
    ctx = RequestContext.load(request_number)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    notes = AuditLogService.get_notes(ctx.request_number, request.args.get('type') or None)
    return jsonify({'notes': [note.to_dict() for note in notes], 'count': len(notes)})


@bp.route('/notes/<request_number>', methods=['POST'])
@login_required
def add_note(request_number):
    actor = current_actor()
    payload = json_payload(logger, "add_note")
    ctx = RequestContext.load(request_number)
    RequestOwnershipPolicy.check_visible(ctx.group, actor)
    note = ctx.add_note(actor, payload.get('content'))
    return jsonify(note.to_dict()), 201


@bp.route('/grn-logs', methods=['GET'])
@login_required
def get_grn_logs():
    actor = current_actor()
    logs = AuditLogService.get_all_grn_logs(actor)
    return jsonify({'logs': [note.to_dict() for note in logs], 'count': len(logs)})
