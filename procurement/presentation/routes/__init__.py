"""
Routes package for the procurement service
One JSON blueprint per workflow area, all mounted under /api
"""

from flask import Blueprint, jsonify

from procurement import csrf
from procurement.logger import get_logger

logger = get_logger("procurement.routes")

API_PREFIX = '/api'

main = Blueprint('main', __name__)


@main.route('/api/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


def init_app(app):
    """Initialize all route blueprints with the Flask app"""
    logger.debug("Initializing route blueprints")

    from . import (
        audit,
        cost_comparisons,
        dashboard,
        deliveries,
        inventory,
        purchase_orders,
        requests,
        sites,
        users,
        vendors,
    )

    app.register_blueprint(main)

    # JSON clients authenticate with the session cookie; CSRF tokens are not used on the API
    for module in (requests, cost_comparisons, purchase_orders, deliveries,
                   sites, vendors, inventory, users, audit, dashboard):
        csrf.exempt(module.bp)
        app.register_blueprint(module.bp, url_prefix=API_PREFIX)

    logger.info("All route blueprints registered")
