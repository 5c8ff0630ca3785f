"""
Site routes
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.reference.site_manager import SiteManager
from procurement.data.core.site import Site
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload

logger = get_logger("procurement.presentation.routes.sites")

bp = Blueprint('sites', __name__)


@bp.route('/sites', methods=['GET'])
@login_required
def list_sites():
    current_actor()
    query = Site.query
    if request.args.get('include_inactive', 'false').lower() not in ('true', '1', 'yes'):
        query = query.filter_by(is_active=True)
    sites = query.order_by(Site.name).all()
    return jsonify({'sites': [site.to_dict() for site in sites], 'count': len(sites)})


@bp.route('/sites/<int:site_id>', methods=['GET'])
@login_required
def get_site(site_id):
    current_actor()
    manager = SiteManager(site_id)
    data = manager.site.to_dict()
    data['usage'] = manager.usage()
    return jsonify(data)


@bp.route('/sites', methods=['POST'])
@login_required
def create_site():
    actor = current_actor()
    site = SiteManager.create(actor, json_payload(logger, "create_site"))
    return jsonify(site.to_dict()), 201


@bp.route('/sites/<int:site_id>', methods=['PUT'])
@login_required
def update_site(site_id):
    actor = current_actor()
    site = SiteManager(site_id).update(actor, json_payload(logger, "update_site"))
    return jsonify(site.to_dict())


@bp.route('/sites/<int:site_id>/toggle', methods=['POST'])
@login_required
def toggle_site(site_id):
    site = SiteManager(site_id).toggle_active(current_actor())
    return jsonify(site.to_dict())


@bp.route('/sites/<int:site_id>', methods=['DELETE'])
@login_required
def delete_site(site_id):
    SiteManager(site_id).delete(current_actor())
    return jsonify({'success': True})
