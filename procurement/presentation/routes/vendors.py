"""
Vendor routes
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from procurement.buisness.reference.vendor_manager import VendorManager
from procurement.data.core.vendor import Vendor
from procurement.logger import get_logger
from procurement.presentation.routes.api_helpers import current_actor, json_payload

logger = get_logger("procurement.presentation.routes.vendors")

bp = Blueprint('vendors', __name__)


@bp.route('/vendors', methods=['GET'])
@login_required
def list_vendors():
    current_actor()
    query = Vendor.query
    if request.args.get('include_inactive', 'false').lower() not in ('true', '1', 'yes'):
        query = query.filter_by(is_active=True)
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(Vendor.company_name.ilike(f"%{search}%"))
    vendors = query.order_by(Vendor.company_name).all()
    return jsonify({'vendors': [vendor.to_dict() for vendor in vendors], 'count': len(vendors)})


@bp.route('/vendors/<int:vendor_id>', methods=['GET'])
@login_required
def get_vendor(vendor_id):
    current_actor()
    manager = VendorManager(vendor_id)
    data = manager.vendor.to_dict()
    data['usage'] = manager.usage()
    return jsonify(data)


@bp.route('/vendors', methods=['POST'])
@login_required
def create_vendor():
    actor = current_actor()
    vendor = VendorManager.create(actor, json_payload(logger, "create_vendor"))
    return jsonify(vendor.to_dict()), 201


@bp.route('/vendors/<int:vendor_id>', methods=['PUT'])
@login_required
def update_vendor(vendor_id):
    actor = current_actor()
    vendor = VendorManager(vendor_id).update(actor, json_payload(logger, "update_vendor"))
    return jsonify(vendor.to_dict())


@bp.route('/vendors/<int:vendor_id>/deactivate', methods=['POST'])
@login_required
def deactivate_vendor(vendor_id):
    vendor = VendorManager(vendor_id).deactivate(current_actor())
    return jsonify(vendor.to_dict())


@bp.route('/vendors/<int:vendor_id>', methods=['DELETE'])
@login_required
def delete_vendor(vendor_id):
    VendorManager(vendor_id).delete(current_actor())
    return jsonify({'success': True})
