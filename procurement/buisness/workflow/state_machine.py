"""
State machines for request item, cost comparison and purchase order lifecycles

RequestStateMachine is a single explicit table: action -> (roles, from-states, to-state).
Every mutation entry point resolves its action here, so a new status or role rule
touches one place. Keeps "what is allowed" separate from "how persistence occurs".
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from procurement.buisness.core.actor import (
    Actor,
    MANAGER,
    PURCHASE_OFFICER,
    SITE_ENGINEER,
)
from procurement.buisness.workflow.errors import ConflictError, ForbiddenError


@dataclass(frozen=True)
class Transition:
    action: str
    roles: FrozenSet[str]
    from_states: FrozenSet[str]
    to_state: Optional[str]  # None: status is not written (delete, detail edit)
    description: str


def _t(action: str, roles: Iterable[str], from_states: Iterable[str], to_state: Optional[str],
       description: str) -> Transition:
    return Transition(action, frozenset(roles), frozenset(from_states), to_state, description)


class RequestStateMachine:
    """
    State machine for RequestItem.status.

    Gates are applied in order: role, then from-state. Payload gates (reason text,
    quote count, quantities) belong to the managers that own the payload.
    """

    # Valid statuses
    DRAFT = 'draft'
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    RECHECK = 'recheck'
    READY_FOR_CC = 'ready_for_cc'
    CC_PENDING = 'cc_pending'
    CC_APPROVED = 'cc_approved'
    CC_REJECTED = 'cc_rejected'
    READY_FOR_PO = 'ready_for_po'
    PENDING_PO = 'pending_po'
    REJECTED_PO = 'rejected_po'
    READY_FOR_DELIVERY = 'ready_for_delivery'
    DELIVERY_PROCESSING = 'delivery_processing'
    DELIVERY_STAGE = 'delivery_stage'
    PARTIALLY_PROCESSED = 'partially_processed'
    DELIVERED = 'delivered'
    DIRECT_PO = 'direct_po'
    ORDERED = 'ordered'
    OUT_FOR_DELIVERY = 'out_for_delivery'

    ALL_STATUSES: FrozenSet[str] = frozenset({
        DRAFT, PENDING, APPROVED, REJECTED, RECHECK, READY_FOR_CC, CC_PENDING,
        CC_APPROVED, CC_REJECTED, READY_FOR_PO, PENDING_PO, REJECTED_PO,
        READY_FOR_DELIVERY, DELIVERY_PROCESSING, DELIVERY_STAGE,
        PARTIALLY_PROCESSED, DELIVERED, DIRECT_PO, ORDERED, OUT_FOR_DELIVERY,
    })

    # Legacy spelling accepted on input
    ALIASES: Dict[str, str] = {'po_rejected': REJECTED_PO}

    TERMINAL_STATES: FrozenSet[str] = frozenset({REJECTED, DELIVERED})

    # Statuses where every item of a request group must agree
    GROUP_UNIFORM_STATES: FrozenSet[str] = frozenset({DRAFT, PENDING})

    # Statuses from which a delivery can be confirmed
    DELIVERABLE_STATES: FrozenSet[str] = frozenset({
        PENDING_PO, ORDERED, OUT_FOR_DELIVERY, DIRECT_PO, PARTIALLY_PROCESSED,
        READY_FOR_DELIVERY, DELIVERY_STAGE, DELIVERY_PROCESSING,
    })

    # Statuses a purchase order line holds its item in
    ON_ORDER_STATES: FrozenSet[str] = frozenset({PENDING_PO, DIRECT_PO, ORDERED, OUT_FOR_DELIVERY, REJECTED_PO})

    # Actions
    SAVE_DRAFT = 'save_draft'
    UPDATE_DRAFT = 'update_draft'
    SEND_DRAFT = 'send_draft'
    DELETE_DRAFT = 'delete_draft'
    APPROVE = 'approve'
    REJECT = 'reject'
    ROUTE_DIRECT = 'route_direct'
    UPDATE_DETAILS = 'update_details'
    START_COST_COMPARISON = 'start_cost_comparison'
    SUBMIT_COST_COMPARISON = 'submit_cost_comparison'
    APPROVE_COST_COMPARISON = 'approve_cost_comparison'
    REJECT_COST_COMPARISON = 'reject_cost_comparison'
    RESUBMIT_COST_COMPARISON = 'resubmit_cost_comparison'
    DIRECT_TO_PO = 'direct_to_po'
    PREPARE_PO = 'prepare_po'
    ISSUE_PO = 'issue_po'
    ISSUE_DIRECT_PO = 'issue_direct_po'
    REJECT_PO = 'reject_po'
    RELEASE_PO = 'release_po'
    MARK_ORDERED = 'mark_ordered'
    DISPATCH = 'dispatch'
    CONFIRM_PARTIAL_DELIVERY = 'confirm_partial_delivery'
    CONFIRM_FINAL_DELIVERY = 'confirm_final_delivery'

    TRANSITIONS: Dict[str, Transition] = {t.action: t for t in (
        _t(SAVE_DRAFT, {SITE_ENGINEER}, {DRAFT}, DRAFT, "Save draft"),
        _t(UPDATE_DRAFT, {SITE_ENGINEER}, {DRAFT}, DRAFT, "Edit draft"),
        _t(SEND_DRAFT, {SITE_ENGINEER}, {DRAFT}, PENDING, "Send draft for approval"),
        _t(DELETE_DRAFT, {SITE_ENGINEER}, {DRAFT}, None, "Delete draft"),
        _t(APPROVE, {MANAGER}, {PENDING}, APPROVED, "Approve request"),
        _t(REJECT, {MANAGER}, {PENDING}, REJECTED, "Reject request"),
        _t(ROUTE_DIRECT, {MANAGER}, {PENDING}, RECHECK, "Approve and route straight to purchasing"),
        _t(UPDATE_DETAILS, {PURCHASE_OFFICER}, {APPROVED, RECHECK, READY_FOR_CC, CC_PENDING}, None,
           "Correct item details"),
        _t(START_COST_COMPARISON, {PURCHASE_OFFICER}, {APPROVED, RECHECK, READY_FOR_CC},
           READY_FOR_CC, "Start cost comparison"),
        _t(SUBMIT_COST_COMPARISON, {PURCHASE_OFFICER}, {APPROVED, RECHECK, READY_FOR_CC}, CC_PENDING,
           "Submit cost comparison"),
        _t(APPROVE_COST_COMPARISON, {MANAGER}, {CC_PENDING}, CC_APPROVED, "Approve cost comparison"),
        _t(REJECT_COST_COMPARISON, {MANAGER}, {CC_PENDING}, CC_REJECTED, "Reject cost comparison"),
        _t(RESUBMIT_COST_COMPARISON, {PURCHASE_OFFICER}, {CC_REJECTED}, CC_PENDING,
           "Resubmit cost comparison"),
        _t(DIRECT_TO_PO, {PURCHASE_OFFICER}, {APPROVED, RECHECK, READY_FOR_CC}, READY_FOR_PO,
           "Skip cost comparison"),
        _t(PREPARE_PO, {PURCHASE_OFFICER}, {CC_APPROVED}, READY_FOR_PO, "Prepare purchase order"),
        _t(ISSUE_PO, {PURCHASE_OFFICER}, {READY_FOR_PO}, PENDING_PO, "Issue purchase order"),
        _t(ISSUE_DIRECT_PO, {PURCHASE_OFFICER}, {READY_FOR_PO}, DIRECT_PO,
           "Issue purchase order fulfilled from inventory"),
        _t(REJECT_PO, {MANAGER}, {PENDING_PO}, REJECTED_PO, "Reject purchase order"),
        _t(RELEASE_PO, {PURCHASE_OFFICER}, {PENDING_PO, DIRECT_PO, ORDERED, OUT_FOR_DELIVERY, REJECTED_PO},
           READY_FOR_PO, "Cancel purchase order"),
        _t(MARK_ORDERED, {PURCHASE_OFFICER}, {PENDING_PO}, ORDERED, "Mark ordered with vendor"),
        _t(DISPATCH, {PURCHASE_OFFICER}, {PENDING_PO, ORDERED, DIRECT_PO}, OUT_FOR_DELIVERY,
           "Mark out for delivery"),
        _t(CONFIRM_PARTIAL_DELIVERY, {SITE_ENGINEER}, DELIVERABLE_STATES, PARTIALLY_PROCESSED,
           "Confirm partial delivery"),
        _t(CONFIRM_FINAL_DELIVERY, {SITE_ENGINEER}, DELIVERABLE_STATES, DELIVERED,
           "Confirm final delivery"),
    )}

    @classmethod
    def normalize(cls, status: str) -> str:
        return cls.ALIASES.get(status, status)

    @classmethod
    def get(cls, action: str) -> Transition:
        try:
            return cls.TRANSITIONS[action]
        except KeyError:
            raise ValueError(f"Unknown request action: {action}") from None

    @classmethod
    def can_transition(cls, action: str, actor: Actor, from_status: str) -> bool:
        """
        Check if actor may apply action to an item currently in from_status.

        Returns:
            bool: True if both the role gate and the from-state gate pass
        """
        transition = cls.get(action)
        return actor.has_role(*transition.roles) and cls.normalize(from_status) in transition.from_states

    @classmethod
    def validate_transition(cls, action: str, actor: Actor, from_status: str) -> Optional[str]:
        """
        Validate transition and return the target status.

        Args:
            action: Action name from TRANSITIONS
            actor: Calling actor
            from_status: Current status as read inside the transaction

        Returns:
            str | None: Target status (None when the action writes no status)

        Raises:
            ForbiddenError: role not allowed for the action
            ConflictError: current status is not in the allowed from-set
        """
        transition = cls.get(action)

        if not actor.has_role(*transition.roles):
            raise ForbiddenError(
                f"{transition.description}: not permitted for role '{actor.role}'"
            )

        if cls.normalize(from_status) not in transition.from_states:
            raise ConflictError(
                f"{transition.description}: not allowed while status is '{from_status}'"
            )

        return transition.to_state

    @classmethod
    def validate_group(cls, action: str, actor: Actor, statuses: Iterable[str]) -> Optional[str]:
        """
        Validate a request-level action against every item of a group.

        All items must pass the gate; one stale item fails the whole group.
        """
        to_state = None
        for status in statuses:
            to_state = cls.validate_transition(action, actor, status)
        return to_state

    @classmethod
    def allowed_actions(cls, actor: Actor, from_status: str) -> List[str]:
        """Actions actor could apply to an item in from_status (for UI affordances)"""
        return sorted(
            action for action in cls.TRANSITIONS
            if cls.can_transition(action, actor, from_status)
        )

    @classmethod
    def reachable_statuses(cls, from_status: str) -> Set[str]:
        """Target statuses reachable in one step from from_status, across all roles"""
        return {
            t.to_state for t in cls.TRANSITIONS.values()
            if t.to_state and cls.normalize(from_status) in t.from_states
        }


class CostComparisonStateMachine:
    """
    State machine for CostComparison.status.

    Mirrors the parent item's cost comparison statuses; a rejected comparison
    is edited and resubmitted rather than replaced.
    """

    DRAFT = 'draft'
    CC_PENDING = 'cc_pending'
    CC_APPROVED = 'cc_approved'
    CC_REJECTED = 'cc_rejected'

    TERMINAL_STATES = {CC_APPROVED}

    EDITABLE_STATES = {DRAFT, CC_REJECTED}

    TRANSITIONS: Dict[str, Set[str]] = {
        DRAFT: {CC_PENDING},
        CC_PENDING: {CC_APPROVED, CC_REJECTED},
        CC_REJECTED: {CC_PENDING},
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        if from_status in cls.TERMINAL_STATES:
            return False
        return to_status in cls.TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """
        Raises:
            ConflictError: If transition is not allowed
        """
        if not cls.can_transition(from_status, to_status):
            raise ConflictError(
                f"Invalid cost comparison status transition: {from_status} → {to_status}"
            )


class PurchaseOrderStateMachine:
    """
    State machine for PurchaseOrderHeader.status.

    Lifecycle: pending_po|direct_po → ordered → out_for_delivery → delivered.
    Cancellation is allowed from any non-terminal status.
    """

    PENDING_PO = 'pending_po'
    DIRECT_PO = 'direct_po'
    ORDERED = 'ordered'
    OUT_FOR_DELIVERY = 'out_for_delivery'
    DELIVERED = 'delivered'
    REJECTED_PO = 'rejected_po'
    CANCELLED = 'cancelled'

    TERMINAL_STATES = {DELIVERED, CANCELLED}

    TRANSITIONS: Dict[str, Set[str]] = {
        PENDING_PO: {ORDERED, OUT_FOR_DELIVERY, DELIVERED, REJECTED_PO, CANCELLED},
        DIRECT_PO: {OUT_FOR_DELIVERY, DELIVERED, CANCELLED},
        ORDERED: {OUT_FOR_DELIVERY, DELIVERED, CANCELLED},
        OUT_FOR_DELIVERY: {DELIVERED, CANCELLED},
        REJECTED_PO: {CANCELLED},
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        if from_status in cls.TERMINAL_STATES:
            return False
        return to_status in cls.TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """
        Raises:
            ConflictError: If transition is not allowed
        """
        if not cls.can_transition(from_status, to_status):
            raise ConflictError(
                f"Invalid purchase order status transition: {from_status} → {to_status}"
            )
