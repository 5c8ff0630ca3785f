"""
Transition table checks for the request, cost comparison and purchase order state machines
"""
import pytest

from procurement.buisness.core.actor import Actor, ADMIN, MANAGER, PURCHASE_OFFICER, SITE_ENGINEER
from procurement.buisness.workflow.errors import ConflictError, ForbiddenError
from procurement.buisness.workflow.state_machine import (
    CostComparisonStateMachine,
    PurchaseOrderStateMachine,
    RequestStateMachine as SM,
)

ENGINEER = Actor(user_id=1, role=SITE_ENGINEER, assigned_site_ids=frozenset({1}))
MANAGER_ACTOR = Actor(user_id=2, role=MANAGER)
PURCHASER = Actor(user_id=3, role=PURCHASE_OFFICER)
ADMIN_ACTOR = Actor(user_id=4, role=ADMIN)


@pytest.mark.parametrize('action, actor, from_status, expected', [
    (SM.SEND_DRAFT, ENGINEER, SM.DRAFT, SM.PENDING),
    (SM.APPROVE, MANAGER_ACTOR, SM.PENDING, SM.APPROVED),
    (SM.REJECT, MANAGER_ACTOR, SM.PENDING, SM.REJECTED),
    (SM.ROUTE_DIRECT, MANAGER_ACTOR, SM.PENDING, SM.RECHECK),
    (SM.SUBMIT_COST_COMPARISON, PURCHASER, SM.READY_FOR_CC, SM.CC_PENDING),
    (SM.APPROVE_COST_COMPARISON, MANAGER_ACTOR, SM.CC_PENDING, SM.CC_APPROVED),
    (SM.REJECT_COST_COMPARISON, MANAGER_ACTOR, SM.CC_PENDING, SM.CC_REJECTED),
    (SM.RESUBMIT_COST_COMPARISON, PURCHASER, SM.CC_REJECTED, SM.CC_PENDING),
    (SM.DIRECT_TO_PO, PURCHASER, SM.RECHECK, SM.READY_FOR_PO),
    (SM.ISSUE_PO, PURCHASER, SM.READY_FOR_PO, SM.PENDING_PO),
    (SM.ISSUE_DIRECT_PO, PURCHASER, SM.READY_FOR_PO, SM.DIRECT_PO),
    (SM.RELEASE_PO, PURCHASER, SM.REJECTED_PO, SM.READY_FOR_PO),
    (SM.CONFIRM_PARTIAL_DELIVERY, ENGINEER, SM.PENDING_PO, SM.PARTIALLY_PROCESSED),
    (SM.CONFIRM_FINAL_DELIVERY, ENGINEER, SM.PARTIALLY_PROCESSED, SM.DELIVERED),
])
def test_allowed_transitions(action, actor, from_status, expected):
    assert SM.validate_transition(action, actor, from_status) == expected


@pytest.mark.parametrize('action, actor, from_status', [
    (SM.APPROVE, ENGINEER, SM.PENDING),
    (SM.SEND_DRAFT, MANAGER_ACTOR, SM.DRAFT),
    (SM.SUBMIT_COST_COMPARISON, MANAGER_ACTOR, SM.READY_FOR_CC),
    (SM.APPROVE_COST_COMPARISON, PURCHASER, SM.CC_PENDING),
    (SM.CONFIRM_FINAL_DELIVERY, PURCHASER, SM.PENDING_PO),
])
def test_wrong_role_is_forbidden(action, actor, from_status):
    with pytest.raises(ForbiddenError):
        SM.validate_transition(action, actor, from_status)


@pytest.mark.parametrize('action, actor, from_status', [
    (SM.APPROVE, MANAGER_ACTOR, SM.APPROVED),
    (SM.REJECT, MANAGER_ACTOR, SM.APPROVED),
    (SM.SEND_DRAFT, ENGINEER, SM.PENDING),
    (SM.RESUBMIT_COST_COMPARISON, PURCHASER, SM.CC_PENDING),
    (SM.CONFIRM_PARTIAL_DELIVERY, ENGINEER, SM.DELIVERED),
    (SM.ISSUE_PO, PURCHASER, SM.CC_APPROVED),
])
def test_wrong_status_is_conflict(action, actor, from_status):
    with pytest.raises(ConflictError):
        SM.validate_transition(action, actor, from_status)


def test_role_gate_is_checked_before_status_gate():
    with pytest.raises(ForbiddenError):
        SM.validate_transition(SM.APPROVE, ENGINEER, SM.DELIVERED)


def test_admin_passes_every_role_gate():
    assert SM.validate_transition(SM.APPROVE, ADMIN_ACTOR, SM.PENDING) == SM.APPROVED
    assert SM.validate_transition(SM.ISSUE_PO, ADMIN_ACTOR, SM.READY_FOR_PO) == SM.PENDING_PO


def test_legacy_po_rejected_spelling_is_accepted():
    assert SM.validate_transition(SM.RELEASE_PO, PURCHASER, 'po_rejected') == SM.READY_FOR_PO


def test_terminal_states_have_no_outgoing_transitions():
    for status in SM.TERMINAL_STATES:
        assert SM.reachable_statuses(status) == set()


def test_every_target_is_a_known_status():
    for transition in SM.TRANSITIONS.values():
        assert transition.to_state is None or transition.to_state in SM.ALL_STATUSES
        assert transition.from_states <= SM.ALL_STATUSES


def test_allowed_actions_for_pending_manager():
    assert SM.allowed_actions(MANAGER_ACTOR, SM.PENDING) == sorted([SM.APPROVE, SM.REJECT, SM.ROUTE_DIRECT])


def test_group_validation_fails_on_one_stale_item():
    with pytest.raises(ConflictError):
        SM.validate_group(SM.APPROVE, MANAGER_ACTOR, [SM.PENDING, SM.APPROVED])


def test_cost_comparison_machine():
    assert CostComparisonStateMachine.can_transition('draft', 'cc_pending')
    assert CostComparisonStateMachine.can_transition('cc_rejected', 'cc_pending')
    assert not CostComparisonStateMachine.can_transition('cc_approved', 'cc_pending')
    with pytest.raises(ConflictError):
        CostComparisonStateMachine.validate_transition('draft', 'cc_approved')


def test_purchase_order_machine():
    assert PurchaseOrderStateMachine.can_transition('pending_po', 'ordered')
    assert PurchaseOrderStateMachine.can_transition('direct_po', 'out_for_delivery')
    assert PurchaseOrderStateMachine.can_transition('rejected_po', 'cancelled')
    assert not PurchaseOrderStateMachine.can_transition('delivered', 'cancelled')
    assert not PurchaseOrderStateMachine.can_transition('cancelled', 'cancelled')
    assert not PurchaseOrderStateMachine.can_transition('ordered', 'ordered')
    with pytest.raises(ConflictError):
        PurchaseOrderStateMachine.validate_transition('cancelled', 'ordered')
