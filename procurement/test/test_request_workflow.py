"""
Request lifecycle: drafts, sending, manager decisions and item-level edits
"""
import pytest
from sqlalchemy import text

from procurement.buisness.workflow.context import RequestContext
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.data.core.notification import Notification
from procurement.data.requests.request_item import RequestItem
from procurement.data.requests.request_note import RequestNote
from procurement.test.conftest import actor_for


def _notes(request_number):
    return RequestNote.query.filter_by(request_number=request_number).all()


# ========== Drafts ==========

def test_create_draft_numbers_and_status(workflow):
    ctx = workflow.draft(items=[
        {'item_name': 'Cement', 'quantity': 100, 'unit': 'bags'},
        {'item_name': 'Sand', 'quantity': 5, 'unit': 'ton'},
    ])
    assert ctx.request_number == 'DRAFT-001'
    assert ctx.status == 'draft'
    assert [item.item_order for item in ctx.items] == [1, 2]

    second = workflow.draft()
    assert second.request_number == 'DRAFT-002'


def test_create_draft_requires_an_item(engineer_actor, site):
    with pytest.raises(ValidationError):
        RequestContext.create_draft(engineer_actor, site_id=site.id, items=[])
    assert RequestItem.query.count() == 0


def test_create_draft_rejects_non_positive_quantity(engineer_actor, site):
    with pytest.raises(ValidationError):
        RequestContext.create_draft(
            engineer_actor, site_id=site.id, items=[{'item_name': 'Cement', 'quantity': 0, 'unit': 'bags'}]
        )


def test_engineer_cannot_raise_request_for_unassigned_site(engineer_actor, other_site):
    with pytest.raises(ForbiddenError):
        RequestContext.create_draft(
            engineer_actor, site_id=other_site.id, items=[{'item_name': 'Cement', 'quantity': 1, 'unit': 'bags'}]
        )


def test_update_draft_replaces_items(workflow, engineer_actor, site):
    ctx = workflow.draft()
    ctx.update_draft(engineer_actor, site.id, [{'item_name': 'Bricks', 'quantity': 1000, 'unit': 'nos'}])
    assert [item.item_name for item in ctx.items] == ['Bricks']
    assert ctx.request_number == 'DRAFT-001'


def test_delete_draft(workflow, engineer_actor):
    ctx = workflow.draft()
    assert ctx.delete(engineer_actor) == 1
    assert RequestItem.query.count() == 0


# ========== Sending ==========

def test_send_draft_moves_to_pending_with_audit_note(workflow, engineer_actor, manager):
    """Cement x100 bags: draft -> pending with a pending note"""
    ctx = workflow.draft()
    ctx.send(engineer_actor)

    assert ctx.request_number == '001'
    assert ctx.group.display_number == 'REQ-001'
    assert all(item.status == 'pending' for item in ctx.items)

    notes = _notes('001')
    assert any(note.type == 'note' and note.status == 'pending' for note in notes)
    assert Notification.query.filter_by(user_id=manager.id, type='request_submitted').count() == 1


def test_send_draft_with_order_note(workflow, engineer_actor):
    ctx = workflow.draft()
    ctx.send(engineer_actor, order_note="Needed before the slab pour")
    contents = [note.content for note in _notes(ctx.request_number)]
    assert "Needed before the slab pour" in contents


def test_send_fails_when_not_draft(workflow, engineer_actor):
    ctx = workflow.pending()
    with pytest.raises(ConflictError):
        ctx.send(engineer_actor)


def test_send_fails_for_non_creator(workflow, db, site):
    from procurement.test.conftest import _make_user
    colleague = _make_user(db, 'colleague', 'site_engineer', [site])
    ctx = workflow.draft()
    with pytest.raises(ForbiddenError):
        ctx.send(actor_for(colleague))
    assert RequestContext.load('DRAFT-001').status == 'draft'


def test_request_numbers_are_sequential(workflow):
    first = workflow.pending()
    second = workflow.pending()
    assert (first.request_number, second.request_number) == ('001', '002')


# ========== Manager decision ==========

def test_approve_then_reject_is_conflict(workflow, manager_actor, purchaser):
    ctx = workflow.pending()
    ctx.approve(manager_actor)
    assert ctx.status == 'approved'
    assert Notification.query.filter_by(user_id=purchaser.id, type='request_approved').count() == 1

    with pytest.raises(ConflictError):
        ctx.reject(manager_actor, "Changed my mind")
    assert RequestContext.load(ctx.request_number).status == 'approved'


def test_second_approve_on_stale_read_is_conflict_without_duplicate_note(workflow, manager_actor):
    first = workflow.pending()
    stale = RequestContext.load(first.request_number)

    first.approve(manager_actor)
    note_count = len(_notes(first.request_number))

    with pytest.raises(ConflictError):
        stale.approve(manager_actor)
    assert len(_notes(first.request_number)) == note_count
    assert RequestContext.load(first.request_number).status == 'approved'


def test_concurrent_write_is_conflict_without_note(workflow, manager_actor, db):
    ctx = workflow.pending()
    note_count = len(_notes(ctx.request_number))
    assert all(item.version for item in ctx.items)
    db.session.execute(
        text("UPDATE request_items SET version = version + 1 WHERE request_number = :number"),
        {'number': ctx.request_number},
    )

    with pytest.raises(ConflictError):
        ctx.approve(manager_actor)

    assert len(_notes(ctx.request_number)) == note_count
    assert RequestContext.load(ctx.request_number).status == 'pending'


def test_approve_with_stale_version_is_conflict(workflow, manager_actor):
    ctx = workflow.pending()
    stale_version = ctx.items[0].version - 1
    with pytest.raises(ConflictError):
        ctx.approve(manager_actor, expected_version=stale_version)
    assert RequestContext.load(ctx.request_number).status == 'pending'


def test_reject_requires_reason(workflow, manager_actor):
    ctx = workflow.pending()
    with pytest.raises(ValidationError):
        ctx.reject(manager_actor, "   ")
    assert RequestContext.load(ctx.request_number).status == 'pending'


def test_reject_records_reason_and_notifies_creator(workflow, manager_actor, engineer):
    ctx = workflow.pending()
    ctx.reject(manager_actor, "Duplicate of REQ-000")
    assert ctx.status == 'rejected'
    assert ctx.items[0].rejection_reason == "Duplicate of REQ-000"
    assert Notification.query.filter_by(user_id=engineer.id, type='request_rejected').count() == 1


def test_engineer_cannot_approve(workflow, engineer_actor):
    ctx = workflow.pending()
    with pytest.raises(ForbiddenError):
        ctx.approve(engineer_actor)


def test_route_direct(workflow, manager_actor):
    ctx = workflow.pending()
    ctx.route_direct(manager_actor, 'po')
    assert ctx.status == 'recheck'
    assert ctx.items[0].direct_action == 'po'


def test_route_direct_rejects_unknown_action(workflow, manager_actor):
    ctx = workflow.pending()
    with pytest.raises(ValidationError):
        ctx.route_direct(manager_actor, 'teleport')


def test_group_items_share_status_through_approval(workflow, manager_actor):
    ctx = workflow.pending(items=[
        {'item_name': 'Cement', 'quantity': 100, 'unit': 'bags'},
        {'item_name': 'Sand', 'quantity': 5, 'unit': 'ton'},
    ])
    assert ctx.group.is_uniform and ctx.status == 'pending'
    ctx.approve(manager_actor)
    assert ctx.group.is_uniform and ctx.status == 'approved'


# ========== Purchase officer, item level ==========

def test_update_details_writes_diff_note(workflow, purchaser_actor):
    ctx = workflow.approved()
    item_id = ctx.items[0].id
    ctx.update_details(purchaser_actor, item_id, {'quantity': 120, 'specs_brand': 'UltraTech'})
    item = ctx.group.item(item_id)
    assert item.quantity == 120
    assert item.specs_brand == 'UltraTech'
    assert any(note.content.startswith("Details updated for Cement") for note in _notes(ctx.request_number))


def test_update_details_rejects_unknown_fields(workflow, purchaser_actor):
    ctx = workflow.approved()
    with pytest.raises(ValidationError):
        ctx.update_details(purchaser_actor, ctx.items[0].id, {'status': 'delivered'})


def test_items_diverge_after_approval(workflow, purchaser_actor):
    ctx = workflow.approved(items=[
        {'item_name': 'Cement', 'quantity': 100, 'unit': 'bags'},
        {'item_name': 'Sand', 'quantity': 5, 'unit': 'ton'},
    ])
    ctx.direct_to_po(purchaser_actor, ctx.items[0].id)
    assert [item.status for item in ctx.items] == ['ready_for_po', 'approved']
    assert ctx.status is None


def test_load_unknown_request(db):
    with pytest.raises(NotFoundError):
        RequestContext.load('REQ-999')


def test_notes_cannot_be_edited(workflow, db):
    from procurement.buisness.workflow.errors import ImmutableRecordError
    ctx = workflow.pending()
    note = _notes(ctx.request_number)[0]
    note.content = "rewritten"
    with pytest.raises(ImmutableRecordError):
        db.session.flush()
    db.session.rollback()


def test_add_note_by_any_role(workflow, purchaser_actor):
    ctx = workflow.pending()
    note = ctx.add_note(purchaser_actor, "Checked with the vendor")
    assert note.type == 'note'
    assert note.status == 'pending'
    with pytest.raises(ValidationError):
        ctx.add_note(purchaser_actor, "  ")
