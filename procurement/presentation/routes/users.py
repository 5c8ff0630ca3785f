"""
User administration routes (managers)
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.core.actor import MANAGER
from procurement.buisness.core.user_manager import UserManager
from procurement.buisness.workflow.errors import ForbiddenError
from procurement.data.core.user_info.user import User
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload

logger = get_logger("procurement.presentation.routes.users")

bp = Blueprint('users', __name__)


@bp.route('/users', methods=['GET'])
@login_required
def list_users():
    actor = current_actor()
    if not actor.has_role(MANAGER):
        raise ForbiddenError("Only managers can list users")
    query = User.query
    role = request.args.get('role')
    if role:
        query = query.filter_by(role=role)
    users = query.order_by(User.username).all()
    return jsonify({'users': [user.to_dict() for user in users], 'count': len(users)})


@bp.route('/users/<int:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    actor = current_actor()
    if actor.user_id != user_id and not actor.has_role(MANAGER):
        raise ForbiddenError("Only managers can view other users")
    return jsonify(UserManager(user_id).user.to_dict())


@bp.route('/users', methods=['POST'])
@login_required
def create_user():
    actor = current_actor()
    user = UserManager.create(actor, json_payload(logger, "create_user"))
    return jsonify(user.to_dict()), 201


@bp.route('/users/<int:user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    actor = current_actor()
    user = UserManager(user_id).update(actor, json_payload(logger, "update_user"))
    return jsonify(user.to_dict())


@bp.route('/users/<int:user_id>/active', methods=['POST'])
@login_required
def set_user_active(user_id):
    actor = current_actor()
    payload = json_payload(logger, "set_user_active")
    user = UserManager(user_id).set_active(actor, bool(payload.get('is_active', True)))
    return jsonify(user.to_dict())


@bp.route('/users/<int:user_id>', methods=['DELETE'])
@login_required
def delete_user(user_id):
    UserManager(user_id).delete(current_actor())
    return jsonify({'success': True})
