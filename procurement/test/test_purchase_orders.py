"""
Purchase order issue, grouping and status changes
"""
import pytest

from procurement import db
from procurement.buisness.deliveries.delivery_tracker import DeliveryTracker
from procurement.buisness.purchase_orders.purchase_order_factory import PurchaseOrderFactory
from procurement.buisness.purchase_orders.purchase_order_manager import PurchaseOrderManager
from procurement.buisness.workflow.errors import ConflictError, ForbiddenError, ValidationError
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.core.notification import Notification
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.requests.request_item import RequestItem


def _item(item_id):
    return db.session.get(RequestItem, item_id)


def _stock(inventory_id):
    return db.session.get(InventoryItem, inventory_id).central_stock


# ========== Issue ==========

def test_issue_from_approved_comparison(workflow, vendor, purchaser_actor):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])

    (po,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])

    assert po.status == 'pending_po'
    assert po.vendor_id == vendor.id
    assert po.po_number.startswith('PO-')
    assert po.total_amount == 5000
    assert po.lines_count == 1
    assert _item(item_id).status == 'pending_po'


def test_direct_delivery_draws_from_stock(workflow, vendor, purchaser_actor, cement_stock):
    """Cement x100 fulfilled from 500 bags of central stock"""
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}], is_direct_delivery=True)

    (po,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])

    assert po.status == 'direct_po'
    assert po.is_direct_delivery
    assert _item(item_id).status == 'direct_po'
    assert _stock(cement_stock.id) == 400


def test_items_grouped_by_vendor(workflow, vendor, second_vendor, purchaser_actor):
    first = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
    second = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 30}])
    third = workflow.cc_approved([{'vendor_id': second_vendor.id, 'unit_price': 20}])

    pos = PurchaseOrderFactory.issue_from_cost_comparisons(
        purchaser_actor, request_item_ids=[first, second, third]
    )

    assert len(pos) == 2
    by_vendor = {po.vendor_id: po for po in pos}
    assert by_vendor[vendor.id].lines_count == 2
    assert by_vendor[vendor.id].total_amount == 8000
    assert by_vendor[second_vendor.id].lines_count == 1
    assert pos[0].po_number != pos[1].po_number


def test_vendor_override_must_be_quoted(workflow, vendor, second_vendor, purchaser_actor):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])

    with pytest.raises(ValidationError):
        PurchaseOrderFactory.issue_from_cost_comparisons(
            purchaser_actor, request_item_ids=[item_id], vendor_overrides={item_id: second_vendor.id}
        )
    assert _item(item_id).status == 'cc_approved'


def test_issue_is_atomic(workflow, vendor, purchaser_actor, db):
    normal = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
    scarce = InventoryItem(item_name='Steel', unit='ton', central_stock=1.0, is_active=True)
    db.session.add(scarce)
    db.session.commit()
    direct = workflow.cc_approved(
        [{'vendor_id': vendor.id, 'unit_price': 60000}],
        is_direct_delivery=True,
        items=[{'item_name': 'Steel', 'quantity': 5, 'unit': 'ton'}],
    )

    with pytest.raises(ValidationError) as excinfo:
        PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[normal, direct])

    assert "Insufficient stock" in excinfo.value.message
    assert PurchaseOrderHeader.query.count() == 0
    assert _item(normal).status == 'cc_approved'
    assert _item(direct).status == 'cc_approved'
    assert _stock(scarce.id) == 1.0


def test_issue_requires_approved_comparison(workflow, purchaser_actor):
    ctx = workflow.approved()
    with pytest.raises(ValidationError):
        PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[ctx.items[0].id])
    assert PurchaseOrderHeader.query.count() == 0


def test_issue_requires_purchase_officer(workflow, vendor, manager_actor):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
    with pytest.raises(ForbiddenError):
        PurchaseOrderFactory.issue_from_cost_comparisons(manager_actor, request_item_ids=[item_id])


def test_issue_direct_after_skipping_comparison(workflow, vendor, purchaser_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    ctx.direct_to_po(purchaser_actor, item_id)

    po = PurchaseOrderFactory.issue_direct(
        purchaser_actor, request_item_id=item_id, vendor_id=vendor.id, unit_price=55,
        header_info={'gst_tax_rate': 18},
    )

    assert po.status == 'pending_po'
    assert po.total_amount == 5500
    assert po.tax_amount == 990
    assert po.grand_total == 6490
    assert _item(item_id).status == 'pending_po'


def test_issue_direct_requires_positive_price(workflow, vendor, purchaser_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    ctx.direct_to_po(purchaser_actor, item_id)

    with pytest.raises(ValidationError):
        PurchaseOrderFactory.issue_direct(purchaser_actor, request_item_id=item_id, vendor_id=vendor.id, unit_price=0)
    assert _item(item_id).status == 'ready_for_po'


@pytest.mark.parametrize('bad_id', [None, 'abc', True])
def test_non_integer_item_ids_are_rejected(workflow, vendor, purchaser_actor, bad_id):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
    with pytest.raises(ValidationError):
        PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id, bad_id])
    assert _item(item_id).status == 'cc_approved'
    assert PurchaseOrderHeader.query.count() == 0


def test_missing_vendor_override_is_rejected(workflow, vendor, purchaser_actor):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}])
    with pytest.raises(ValidationError):
        PurchaseOrderFactory.issue_from_cost_comparisons(
            purchaser_actor, request_item_ids=[item_id], vendor_overrides={item_id: None}
        )
    assert PurchaseOrderHeader.query.count() == 0


# ========== Status changes ==========

def test_mark_ordered_and_dispatch_follow_to_items(workflow, vendor, purchaser_actor):
    item_id, po = workflow.on_order(vendor)

    PurchaseOrderManager(po.id).mark_ordered(purchaser_actor)
    assert _item(item_id).status == 'ordered'

    po = PurchaseOrderManager(po.id).mark_out_for_delivery(purchaser_actor)
    assert po.status == 'out_for_delivery'
    assert _item(item_id).status == 'out_for_delivery'


def test_repeated_status_update_is_conflict(workflow, vendor, purchaser_actor):
    item_id, po = workflow.on_order(vendor)
    PurchaseOrderManager(po.id).mark_ordered(purchaser_actor)

    with pytest.raises(ConflictError):
        PurchaseOrderManager(po.id).mark_ordered(purchaser_actor)

    PurchaseOrderManager(po.id).mark_out_for_delivery(purchaser_actor)
    with pytest.raises(ConflictError):
        PurchaseOrderManager(po.id).mark_out_for_delivery(purchaser_actor)
    assert _item(item_id).status == 'out_for_delivery'


def test_cancel_releases_items(workflow, vendor, purchaser_actor):
    item_id, po = workflow.on_order(vendor)

    po = PurchaseOrderManager(po.id).cancel(purchaser_actor, "Vendor out of stock")

    assert po.status == 'cancelled'
    assert po.status_reason == "Vendor out of stock"
    assert _item(item_id).status == 'ready_for_po'

    (reissued,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])
    assert reissued.status == 'pending_po'
    assert _item(item_id).status == 'pending_po'


def test_cancel_direct_po_restores_stock(workflow, vendor, purchaser_actor, cement_stock):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}], is_direct_delivery=True)
    (po,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])
    assert _stock(cement_stock.id) == 400

    PurchaseOrderManager(po.id).cancel(purchaser_actor)
    assert _stock(cement_stock.id) == 500


def test_cancelled_po_cannot_be_cancelled_again(workflow, vendor, purchaser_actor, cement_stock):
    item_id = workflow.cc_approved([{'vendor_id': vendor.id, 'unit_price': 50}], is_direct_delivery=True)
    (first,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])
    first_id = first.id
    PurchaseOrderManager(first_id).cancel(purchaser_actor)

    (second,) = PurchaseOrderFactory.issue_from_cost_comparisons(purchaser_actor, request_item_ids=[item_id])
    assert _stock(cement_stock.id) == 400

    with pytest.raises(ConflictError):
        PurchaseOrderManager(first_id).cancel(purchaser_actor)

    assert _stock(cement_stock.id) == 400
    assert _item(item_id).status == 'direct_po'
    assert db.session.get(PurchaseOrderHeader, second.id).status == 'direct_po'


def test_cancel_blocked_after_delivery(workflow, vendor, purchaser_actor, engineer_actor):
    item_id, po = workflow.on_order(vendor)
    DeliveryTracker(item_id).confirm_delivery(engineer_actor, 60)

    with pytest.raises(ConflictError):
        PurchaseOrderManager(po.id).cancel(purchaser_actor)
    assert db.session.get(PurchaseOrderHeader, po.id).status == 'pending_po'
    assert _item(item_id).status == 'partially_processed'


def test_manager_rejects_po_with_reason(workflow, vendor, manager_actor, purchaser):
    item_id, po = workflow.on_order(vendor)

    with pytest.raises(ValidationError):
        PurchaseOrderManager(po.id).reject(manager_actor, "")

    po = PurchaseOrderManager(po.id).reject(manager_actor, "Price above budget")
    assert po.status == 'rejected_po'
    assert _item(item_id).status == 'rejected_po'
    assert Notification.query.filter_by(user_id=purchaser.id, type='po_rejected').count() == 1


def test_purchase_officer_cannot_reject_po(workflow, vendor, purchaser_actor):
    _, po = workflow.on_order(vendor)
    with pytest.raises(ForbiddenError):
        PurchaseOrderManager(po.id).reject(purchaser_actor, "Not mine to reject")


def test_ordered_po_cannot_go_back(workflow, vendor, purchaser_actor, manager_actor):
    _, po = workflow.on_order(vendor)
    PurchaseOrderManager(po.id).mark_ordered(purchaser_actor)
    with pytest.raises(ConflictError):
        PurchaseOrderManager(po.id).reject(manager_actor, "Too late")
