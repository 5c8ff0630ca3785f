"""
Pytest configuration and fixtures for the procurement workflow tests
"""
import os

os.environ.setdefault('SECRET_KEY', 'test_secret_key_for_procurement_tests')
os.environ['LOG_TO_FILE'] = 'false'
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ['DATABASE_URL'] = 'sqlite://'

import pytest  # noqa: E402

from procurement import create_app  # noqa: E402
from procurement import db as _db  # noqa: E402
from procurement.buisness.core.actor import (  # noqa: E402
    Actor,
    ADMIN,
    MANAGER,
    PURCHASE_OFFICER,
    SITE_ENGINEER,
)
from procurement.buisness.cost_comparisons.cost_comparison_manager import CostComparisonManager  # noqa: E402
from procurement.buisness.purchase_orders.purchase_order_factory import PurchaseOrderFactory  # noqa: E402
from procurement.buisness.workflow.context import RequestContext  # noqa: E402
from procurement.data.core.inventory_item import InventoryItem  # noqa: E402
from procurement.data.core.site import Site  # noqa: E402
from procurement.data.core.user_info.user import User  # noqa: E402
from procurement.data.core.vendor import Vendor  # noqa: E402

TEST_PASSWORD = 'correct-horse-battery'


@pytest.fixture(scope='session')
def app():
    """Create Flask application for testing"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'SESSION_COOKIE_SECURE': False,
        'LOW_STOCK_THRESHOLD': 20,
        'AUTO_CREATE_INVENTORY_ON_DELIVERY': False,
    })
    return app


@pytest.fixture(autouse=True)
def db(app):
    """Fresh tables and a fresh app context (and so a fresh flask.g) for every test"""
    with app.app_context():
        _db.drop_all()
        _db.create_all()
        yield _db
        _db.session.remove()


@pytest.fixture(scope='function')
def client(app, db):
    """Create Flask test client"""
    return app.test_client()


def login(client, username, password=TEST_PASSWORD):
    """Helper function to login a user"""
    return client.post('/auth/login', json={'username': username, 'password': password})


def actor_for(user):
    return Actor.from_user(user)


# ========== Reference data ==========

@pytest.fixture
def site(db):
    site = Site(name='North Tower', code='NT-01', type='site', is_active=True)
    db.session.add(site)
    db.session.commit()
    return site


@pytest.fixture
def other_site(db):
    site = Site(name='Riverside Mall', code='RM-02', type='site', is_active=True)
    db.session.add(site)
    db.session.commit()
    return site


def _make_user(db, username, role, sites=()):
    user = User(username=username, full_name=username.replace('_', ' ').title(), role=role, is_active=True)
    user.set_password(TEST_PASSWORD)
    user.assigned_sites = list(sites)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def engineer(db, site):
    return _make_user(db, 'site_engineer', SITE_ENGINEER, [site])


@pytest.fixture
def other_engineer(db, other_site):
    return _make_user(db, 'other_engineer', SITE_ENGINEER, [other_site])


@pytest.fixture
def manager(db):
    return _make_user(db, 'manager', MANAGER)


@pytest.fixture
def purchaser(db):
    return _make_user(db, 'purchaser', PURCHASE_OFFICER)


@pytest.fixture
def admin(db):
    return _make_user(db, 'admin_user', ADMIN)


@pytest.fixture
def engineer_actor(engineer):
    return actor_for(engineer)


@pytest.fixture
def manager_actor(manager):
    return actor_for(manager)


@pytest.fixture
def purchaser_actor(purchaser):
    return actor_for(purchaser)


def _make_vendor(db, company_name, gst_number, email):
    vendor = Vendor(
        company_name=company_name,
        contact_name='Sales Desk',
        email=email,
        phone='9800000000',
        gst_number=gst_number,
        address='Industrial Estate',
        is_active=True,
    )
    db.session.add(vendor)
    db.session.commit()
    return vendor


@pytest.fixture
def vendor(db):
    return _make_vendor(db, 'Acme Cement Supplies', '24AAAAA0000A1Z5', 'sales@acme.example')


@pytest.fixture
def second_vendor(db):
    return _make_vendor(db, 'Prime Building Materials', '27BBBBB1111B1Z2', 'orders@prime.example')


@pytest.fixture
def cement_stock(db):
    item = InventoryItem(item_name='Cement', unit='bags', central_stock=500.0, is_active=True)
    db.session.add(item)
    db.session.commit()
    return item


# ========== Workflow helpers ==========

CEMENT = {'item_name': 'Cement', 'quantity': 100, 'unit': 'bags'}


@pytest.fixture
def workflow(site, engineer_actor, manager_actor, purchaser_actor):
    """Drive a request through the workflow up to a given point"""

    class Workflow:

        @staticmethod
        def draft(items=None, actor=None, site_id=None):
            return RequestContext.create_draft(
                actor or engineer_actor,
                site_id=site_id or site.id,
                items=items or [dict(CEMENT)],
            )

        @classmethod
        def pending(cls, items=None):
            return cls.draft(items).send(engineer_actor)

        @classmethod
        def approved(cls, items=None):
            return cls.pending(items).approve(manager_actor)

        @classmethod
        def cc_approved(cls, quotes, is_direct_delivery=False, items=None):
            ctx = cls.approved(items)
            item_id = ctx.items[0].id
            manager = CostComparisonManager(item_id)
            manager.upsert(purchaser_actor, quotes, is_direct_delivery)
            manager.submit(purchaser_actor)
            CostComparisonManager(item_id).approve(manager_actor)
            return item_id

        @classmethod
        def on_order(cls, vendor):
            item_id = cls.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
            (po,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])
            return item_id, po

    return Workflow
