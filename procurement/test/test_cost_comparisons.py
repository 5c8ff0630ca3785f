"""
Cost comparison engine
"""
import pytest

from procurement import db
from procurement.buisness.cost_comparisons.cost_comparison_manager import (
    CostComparisonManager,
    EMPTY_QUOTES_MESSAGE,
)
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.data.core.notification import Notification
from procurement.data.requests.request_item import RequestItem


def _item(item_id):
    return db.session.get(RequestItem, item_id)


def test_reject_and_resubmit_replaces_quotes(workflow, vendor, second_vendor, purchaser_actor, manager_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id

    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
    assert _item(item_id).status == 'ready_for_cc'
    manager.submit(purchaser_actor)
    assert _item(item_id).status == 'cc_pending'

    CostComparisonManager(item_id).reject(manager_actor, "too expensive")
    assert _item(item_id).status == 'cc_rejected'

    comparison = CostComparisonManager(item_id).resubmit(
        purchaser_actor, [{'vendor_id': second_vendor.id, 'unit_price': 40}]
    )
    assert _item(item_id).status == 'cc_pending'
    assert comparison.status == 'cc_pending'
    assert comparison.vendor_ids == [second_vendor.id]
    assert comparison.quotes[0].unit_price == 40
    assert comparison.resubmission_count == 1


def test_submit_without_quotes_fails(workflow, purchaser_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [])

    with pytest.raises(ValidationError) as excinfo:
        manager.submit(purchaser_actor)
    assert excinfo.value.message == EMPTY_QUOTES_MESSAGE
    assert _item(item_id).status == 'ready_for_cc'


def test_resubmit_without_quotes_fails(workflow, vendor, purchaser_actor, manager_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
    manager.submit(purchaser_actor)
    CostComparisonManager(item_id).reject(manager_actor, "too expensive")

    with pytest.raises(ValidationError):
        CostComparisonManager(item_id).resubmit(purchaser_actor, [])
    assert _item(item_id).status == 'cc_rejected'


def test_reject_requires_manager_notes(workflow, vendor, purchaser_actor, manager_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
    manager.submit(purchaser_actor)

    with pytest.raises(ValidationError):
        CostComparisonManager(item_id).reject(manager_actor, None)
    assert _item(item_id).status == 'cc_pending'


def test_approve_defaults_to_lowest_total(workflow, vendor, second_vendor, purchaser_actor, manager_actor, purchaser):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [
        {'vendor_id': vendor.id, 'unit_price': 45},
        # cheaper after the discount: 50 x 100 less 20% = 4000 < 4500
        {'vendor_id': second_vendor.id, 'unit_price': 50, 'discount_percent': 20},
    ])
    manager.submit(purchaser_actor)

    comparison = CostComparisonManager(item_id).approve(manager_actor)
    assert comparison.selected_vendor_id == second_vendor.id
    assert _item(item_id).status == 'cc_approved'
    assert Notification.query.filter_by(user_id=purchaser.id, type='cc_approved').count() == 1


def test_approve_rejects_vendor_outside_quotes(workflow, vendor, second_vendor, purchaser_actor, manager_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
    manager.submit(purchaser_actor)

    with pytest.raises(ValidationError):
        CostComparisonManager(item_id).approve(manager_actor, selected_vendor_id=second_vendor.id)
    assert _item(item_id).status == 'cc_pending'


def test_duplicate_vendor_in_quotes(workflow, vendor, purchaser_actor):
    ctx = workflow.approved()
    with pytest.raises(ValidationError):
        CostComparisonManager(ctx.items[0].id).upsert(purchaser_actor, [
            {'vendor_id': vendor.id, 'unit_price': 50},
            {'vendor_id': vendor.id, 'unit_price': 45},
        ])


def test_quote_for_unknown_vendor(workflow, purchaser_actor):
    ctx = workflow.approved()
    with pytest.raises(NotFoundError):
        CostComparisonManager(ctx.items[0].id).upsert(purchaser_actor, [{'vendor_id': 999, 'unit_price': 50}])
    assert _item(ctx.items[0].id).status == 'approved'


def test_direct_delivery_requires_inventory_item(workflow, vendor, purchaser_actor):
    ctx = workflow.approved()
    with pytest.raises(ValidationError):
        CostComparisonManager(ctx.items[0].id).upsert(
            purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}], is_direct_delivery=True
        )


def test_upsert_is_purchase_officer_only(workflow, vendor, manager_actor):
    ctx = workflow.approved()
    with pytest.raises(ForbiddenError):
        CostComparisonManager(ctx.items[0].id).upsert(manager_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])


def test_submitted_comparison_cannot_be_edited(workflow, vendor, purchaser_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    manager = CostComparisonManager(item_id)
    manager.upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
    manager.submit(purchaser_actor)

    with pytest.raises(ConflictError):
        CostComparisonManager(item_id).upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 30}])


def test_cost_comparison_needs_approved_request(workflow, vendor, purchaser_actor):
    ctx = workflow.pending()
    with pytest.raises(ConflictError):
        CostComparisonManager(ctx.items[0].id).upsert(purchaser_actor, [{'vendor_id': vendor.id, 'unit_price': 50}])
