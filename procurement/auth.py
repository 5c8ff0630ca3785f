from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from procurement.data.core.user_info.user import User
from procurement import limiter
from procurement.buisness.core.actor import Actor
from procurement.buisness.core.user_manager import UserManager
from procurement.buisness.workflow.errors import UnauthorizedError, ValidationError
from procurement.logger import get_logger

logger = get_logger("procurement.auth")
auth = Blueprint('auth', __name__, url_prefix='/auth')


@auth.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    if current_user.is_authenticated:
        logger.debug(f"User {current_user.username} already authenticated")
        return jsonify({'user': current_user.to_dict()})

    payload = request.get_json(silent=True) or request.form
    username = (payload.get('username') or '').strip().lower()
    password = payload.get('password')

    logger.debug(f"Login attempt for username: {username}")

    if not username or not password:
        logger.warning(f"Login attempt with missing credentials for username: {username}")
        raise ValidationError('Please enter both username and password')

    user = User.query.filter_by(username=username).first()

    if user is None or not user.check_password(password):
        logger.warning(f"Failed login attempt for username: {username}")
        raise UnauthorizedError('Invalid username or password')

    if not user.is_active:
        logger.warning(f"Login attempt for disabled account: {username}")
        raise UnauthorizedError('Account is disabled')

    login_user(user)
    logger.info(f"Successful login for user: {username}")
    return jsonify({'user': user.to_dict()})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    logger.info(f"User logged out: {username}")
    return jsonify({'success': True})


@auth.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})


@auth.route('/change-password', methods=['POST'])
@login_required
def change_password():
    payload = request.get_json(silent=True) or {}
    actor = Actor.from_user(current_user)
    UserManager(actor.user_id).change_password(
        actor, payload.get('current_password'), payload.get('new_password'),
    )
    return jsonify({'success': True})
