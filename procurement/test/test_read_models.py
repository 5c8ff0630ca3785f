"""
Search ranking, role visibility, GRN log scoping and dashboard counts
"""
from procurement.buisness.deliveries.delivery_tracker import DeliveryTracker
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.requests.request_item import RequestItem
from procurement.services.dashboard.dashboard_service import DashboardService
from procurement.services.purchasing.purchasing_service import PurchasingService
from procurement.services.requests.audit_log_service import AuditLogService
from procurement.services.requests.request_search_service import (
    RANK_EXACT_FIELD,
    RANK_FUZZY,
    RANK_ITEM_ORDER,
    RANK_REQUEST_NUMBER,
    RANK_SUBSTRING,
    RequestFilters,
    RequestSearchService,
    fuzzy_search,
    match_rank,
)
from procurement.test.conftest import actor_for


def _item(request_number, item_name, item_order=1, unit='bags'):
    return RequestItem(
        request_number=request_number,
        item_order=item_order,
        item_name=item_name,
        quantity=1,
        unit=unit,
        status='pending',
    )


# ========== Fuzzy search ==========

def test_hits_are_ordered_by_match_quality():
    typo = _item('010', 'Cemet')
    partial = _item('011', 'Cement bags')
    exact = _item('012', 'Cement')

    assert fuzzy_search([typo, partial, exact], 'cement') == [exact, partial, typo]
    assert match_rank(exact, 'cement') == RANK_EXACT_FIELD
    assert match_rank(partial, 'cement') == RANK_SUBSTRING
    assert match_rank(typo, 'cement') == RANK_FUZZY


def test_request_number_beats_everything():
    item = _item('002', 'Cement')
    assert match_rank(item, 'REQ-002') == RANK_REQUEST_NUMBER
    assert match_rank(item, '002') == RANK_REQUEST_NUMBER
    assert match_rank(item, '2') == RANK_REQUEST_NUMBER


def test_item_order_match():
    item = _item('005', 'Sand', item_order=3, unit='ton')
    assert match_rank(item, '3') == RANK_ITEM_ORDER


def test_short_terms_match_word_starts_only():
    item = _item('020', 'Cement', unit='bags')
    assert match_rank(item, 'ag') is None
    assert match_rank(item, 'bag') == RANK_SUBSTRING
    assert fuzzy_search([item], 'ag') == []


def test_fuzzy_needs_five_characters():
    item = _item('021', 'Sand', unit='ton')
    assert match_rank(item, 'Sadn') is None
    assert match_rank(_item('022', 'Bricks'), 'Brick') == RANK_SUBSTRING
    assert match_rank(_item('023', 'Bricks'), 'Bricsk') is None


def test_blank_term_keeps_everything():
    items = [_item('030', 'Cement'), _item('031', 'Sand')]
    assert fuzzy_search(items, '  ') == items


def test_parse_filters_accepts_legacy_status():
    filters = RequestSearchService.parse_filters(
        {'status': 'po_rejected', 'site_id': '3', 'is_urgent': 'true', 'q': ' cement '}
    )
    assert filters == RequestFilters(status='rejected_po', site_id=3, is_urgent=True, search_term='cement')


# ========== Visibility ==========

def test_visibility_per_role(workflow, engineer_actor, manager_actor, purchaser_actor, other_engineer):
    workflow.draft()
    sent = workflow.pending()

    def numbers(actor):
        return {item.request_number for item in RequestSearchService.list_items(actor)}

    assert numbers(engineer_actor) == {'DRAFT-001', sent.request_number}
    assert numbers(manager_actor) == {sent.request_number}
    assert numbers(purchaser_actor) == set()
    assert numbers(actor_for(other_engineer)) == set()

    sent.approve(manager_actor)
    assert numbers(purchaser_actor) == {sent.request_number}


def test_list_groups_with_search(workflow, manager_actor):
    workflow.pending(items=[
        {'item_name': 'Cement', 'quantity': 100, 'unit': 'bags'},
        {'item_name': 'Sand', 'quantity': 5, 'unit': 'ton'},
    ])
    workflow.pending(items=[{'item_name': 'Bricks', 'quantity': 1000, 'unit': 'nos'}])

    groups = RequestSearchService.list_groups(manager_actor, RequestFilters(search_term='sand'))
    assert [group.request_number for group in groups] == ['001']
    assert [item.item_name for item in groups[0].items] == ['Sand']


def test_site_engineer_sees_only_pos_for_assigned_sites(workflow, vendor, purchaser_actor, engineer_actor,
                                                        other_engineer):
    _, po = workflow.on_order(vendor)
    assert [p.id for p in PurchasingService.list_purchase_orders(engineer_actor)] == [po.id]
    assert PurchasingService.list_purchase_orders(actor_for(other_engineer)) == []
    assert [p.id for p in PurchasingService.list_purchase_orders(purchaser_actor)] == [po.id]


# ========== GRN log ==========

def test_grn_log_scoped_to_own_requests(workflow, vendor, engineer_actor, manager_actor, other_engineer):
    item_id, _ = workflow.on_order(vendor)
    DeliveryTracker(item_id).confirm_delivery(engineer_actor, 30)

    assert len(AuditLogService.get_all_grn_logs(engineer_actor)) == 1
    assert len(AuditLogService.get_all_grn_logs(manager_actor)) == 1
    assert AuditLogService.get_all_grn_logs(actor_for(other_engineer)) == []


def test_notes_accept_display_number(workflow):
    ctx = workflow.pending()
    notes = AuditLogService.get_notes(ctx.group.display_number)
    assert notes
    assert all(note.request_number == ctx.request_number for note in notes)
    assert AuditLogService.get_notes(ctx.request_number, note_type='log') == []


# ========== Dashboard ==========

def test_manager_dashboard_counts(workflow, manager_actor, cement_stock, db):
    workflow.pending()
    workflow.approved()
    workflow.pending().reject(manager_actor, "Not needed")
    db.session.add(InventoryItem(item_name='Sand', unit='ton', central_stock=5, is_active=True))
    db.session.commit()

    data = DashboardService.for_actor(manager_actor)
    overview = data['overview']
    assert overview['total_requests'] == 3
    assert overview['pending_requests'] == 1
    assert overview['approved_requests'] == 1
    assert overview['rejected_requests'] == 1
    assert overview['total_inventory_items'] == 2
    assert overview['low_stock_items'] == 1
    assert data['charts']['site_performance'] == [{'name': 'North Tower', 'requests': 3}]
    assert data['work_queue']['total_waiting'] == 1


def test_engineer_dashboard_has_no_overview(workflow, engineer_actor):
    workflow.draft()
    data = DashboardService.for_actor(engineer_actor)
    assert 'overview' not in data
    assert data['status_counts'] == {'draft': 1}
    assert data['work_queue']['waiting']['draft'] == 1
