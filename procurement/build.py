#!/usr/bin/env python3
"""
Database build for the procurement service
Creates tables, seeds the first manager and optionally inserts demo reference data
"""

import json
import os
from pathlib import Path

from procurement import create_app, db
from procurement.logger import get_logger

logger = get_logger("procurement.build")

DEMO_DATA_FILE = Path(__file__).parent / 'data' / 'build_data_demo.json'


def build_models():
    from procurement.data import register_models
    register_models()
    db.create_all()
    logger.info("Database tables created")


def seed_manager():
    """
    Create the first manager from SEED_MANAGER_USERNAME / SEED_MANAGER_PASSWORD

    Returns:
        User or None: the manager, or None when no credentials are configured
    """
    from procurement.buisness.core.actor import MANAGER
    from procurement.buisness.core.user_manager import UserManager
    from procurement.data.core.user_info.user import User

    username = os.environ.get('SEED_MANAGER_USERNAME')
    password = os.environ.get('SEED_MANAGER_PASSWORD')
    if not username or not password:
        logger.warning("SEED_MANAGER_USERNAME/SEED_MANAGER_PASSWORD not set; no manager seeded")
        return None

    existing = User.query.filter_by(username=username.strip().lower()).first()
    if existing is not None:
        logger.info(f"Manager {existing.username} already present, skipping seed")
        return existing

    # No actor: the first manager bootstraps the user directory
    return UserManager.create(None, {
        'username': username,
        'full_name': os.environ.get('SEED_MANAGER_FULL_NAME', 'Manager'),
        'password': password,
        'role': MANAGER,
    })


def insert_demo_data(manager):
    """Insert the sites, vendors, inventory and users listed in build_data_demo.json"""
    from procurement.data.core.inventory_item import InventoryItem
    from procurement.data.core.site import Site
    from procurement.data.core.user_info.user import User
    from procurement.data.core.vendor import Vendor

    password = os.environ.get('DEMO_USER_PASSWORD')
    if not password:
        raise RuntimeError("DEMO_USER_PASSWORD is required to insert demo users")

    with open(DEMO_DATA_FILE, 'r') as f:
        demo_data = json.load(f)

    user_id = manager.id if manager else None
    try:
        for site_data in demo_data.get('Sites', {}).values():
            site, created = Site.find_or_create_from_dict(site_data, user_id=user_id, lookup_fields=['name'])
            if created:
                logger.info(f"Inserted site: {site.name}")

        vendors = []
        for vendor_data in demo_data.get('Vendors', {}).values():
            vendor, created = Vendor.find_or_create_from_dict(
                vendor_data, user_id=user_id, lookup_fields=['company_name']
            )
            vendors.append(vendor)
            if created:
                logger.info(f"Inserted vendor: {vendor.company_name}")

        for item_data in demo_data.get('Inventory', {}).values():
            item, created = InventoryItem.find_or_create_from_dict(
                item_data, user_id=user_id, lookup_fields=['item_name']
            )
            if created:
                item.vendors = list(vendors)
                logger.info(f"Inserted inventory item: {item.item_name}")

        for user_data in demo_data.get('Users', {}).values():
            user, created = User.find_or_create_from_dict(
                dict(user_data, password=password), lookup_fields=['username']
            )
            if created:
                user.assigned_sites = Site.query.filter(Site.name.in_(user_data.get('sites', []))).all()
                logger.info(f"Inserted user: {user.username} ({user.role})")

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Demo data insertion failed")
        raise
    logger.info("Demo data inserted")


def build_database(seed_demo=False, app=None):
    """
    Args:
        seed_demo (bool): also insert demo reference data
        app: an existing application; a new one is created when omitted
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (demo data: {seed_demo})")
        build_models()
        manager = seed_manager()
        if seed_demo:
            insert_demo_data(manager)
        logger.info("Database build completed successfully")
