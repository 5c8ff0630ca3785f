"""
Dashboard and notification routes
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.workflow.notifier import Notifier
from procurement.presentation.routes.api_helpers import current_actor
from procurement.services.dashboard.dashboard_service import DashboardService

bp = Blueprint('dashboard', __name__)


@bp.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    return jsonify(DashboardService.for_actor(current_actor()))


@bp.route('/notifications', methods=['GET'])
@login_required
def list_notifications():
    actor = current_actor()
    unread_only = request.args.get('unread', 'false').lower() in ('true', '1', 'yes')
    notifications = Notifier.for_user(actor.user_id, unread_only=unread_only)
    return jsonify({'notifications': [n.to_dict() for n in notifications], 'count': len(notifications)})


@bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_notification_read(notification_id):
    notification = Notifier.mark_read(current_actor(), notification_id)
    return jsonify(notification.to_dict())
