"""
RequestManager - Domain service for request workflow operations

Applies RequestStateMachine transitions to request groups and items, writes the
audit notes and notifications that go with them. Never commits; the owning
RequestContext wraps each call in a unit of work.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from procurement import db
from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER
from procurement.buisness.workflow.audit_trail import AuditTrail
from procurement.buisness.workflow.errors import ConflictError, ValidationError
from procurement.buisness.workflow.narrator import WorkflowNarrator
from procurement.buisness.workflow.notifier import Notifier
from procurement.buisness.workflow.policies import (
    PayloadValidationPolicy,
    RequestOwnershipPolicy,
    SiteAssignmentPolicy,
)
from procurement.buisness.workflow.state_machine import RequestStateMachine
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

if TYPE_CHECKING:
    from procurement.buisness.workflow.context import RequestContext

logger = get_logger("procurement.buisness.workflow.request_manager")

DRAFT_PREFIX = 'DRAFT-'
_SEQUENCE_RE = re.compile(r'^(\d+)$')

# Fields a purchase officer may correct after approval
EDITABLE_DETAIL_FIELDS = ('item_name', 'description', 'specs_brand', 'quantity', 'unit')

DIRECT_ACTIONS = ('po', 'delivery')


class RequestManager:
    """
    Domain service for request workflow operations.

    Responsibilities:
    - Allocate draft and request numbers
    - Transition item statuses via RequestStateMachine
    - Enforce draft ownership and site assignment
    - Emit audit notes via WorkflowNarrator/AuditTrail
    """

    def __init__(self, ctx: 'RequestContext'):
        self.ctx = ctx
        self.group = ctx.group

    # ========== Numbering ==========

    @staticmethod
    def _max_sequence(numbers: Iterable[str], prefix: str = '') -> int:
        highest = 0
        for number in numbers:
            if prefix:
                if not number.startswith(prefix):
                    continue
                number = number[len(prefix):]
            match = _SEQUENCE_RE.match(number)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    @staticmethod
    def _existing_numbers(drafts: bool) -> List[str]:
        query = db.session.query(RequestItem.request_number).distinct()
        if drafts:
            query = query.filter(RequestItem.request_number.like(f'{DRAFT_PREFIX}%'))
        else:
            query = query.filter(~RequestItem.request_number.like(f'{DRAFT_PREFIX}%'))
        return [row[0] for row in query.all()]

    @classmethod
    def next_draft_number(cls) -> str:
        """Next DRAFT-NNN number"""
        highest = cls._max_sequence(cls._existing_numbers(drafts=True), DRAFT_PREFIX)
        return f"{DRAFT_PREFIX}{highest + 1:03d}"

    @classmethod
    def next_request_number(cls) -> str:
        """Next sequential zero-padded request number ("001", "002", ...)"""
        highest = cls._max_sequence(cls._existing_numbers(drafts=False))
        return f"{highest + 1:03d}"

    # ========== Shared helpers ==========

    def _check_expected_version(self, items: Iterable[RequestItem], expected_version: Optional[int]) -> None:
        if expected_version is None:
            return
        for item in items:
            if item.version != expected_version:
                raise ConflictError(
                    f"Request {item.display_number} changed since it was loaded "
                    f"(version {item.version}, expected {expected_version})"
                )

    def _apply_group(self, action: str, actor: Actor, **fields) -> Optional[str]:
        to_state = RequestStateMachine.validate_group(action, actor, self.group.statuses)
        old_status = self.group.status
        for item in self.group.items:
            if to_state:
                item.status = to_state
            for key, value in fields.items():
                setattr(item, key, value)
            item.touch(actor.user_id)
        logger.info(
            f"{action}: request {self.group.display_number} {old_status} → {to_state} "
            f"({len(self.group.items)} item(s)) by user {actor.user_id}"
        )
        return to_state

    @staticmethod
    def apply_item_transition(item: RequestItem, action: str, actor: Actor, **fields) -> Optional[str]:
        """Validate and apply one item-level transition; shared by the purchasing and delivery managers"""
        old_status = item.status
        to_state = RequestStateMachine.validate_transition(action, actor, old_status)
        if to_state:
            item.status = to_state
        for key, value in fields.items():
            setattr(item, key, value)
        item.touch(actor.user_id)
        logger.info(
            f"{action}: item {item.id} ({item.display_number}#{item.item_order}) "
            f"{old_status} → {item.status} by user {actor.user_id}"
        )
        return to_state

    @staticmethod
    def _build_items(actor: Actor, request_number: str, site_id: int, items: List[Dict[str, Any]],
                     notes: Optional[str]) -> List[RequestItem]:
        created = []
        for order, data in enumerate(items, start=1):
            item = RequestItem(
                request_number=request_number,
                item_order=order,
                site_id=site_id,
                status=RequestStateMachine.DRAFT,
                notes=data.get('notes') or notes,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
                **{k: v for k, v in data.items() if k != 'notes'},
            )
            db.session.add(item)
            created.append(item)
        return created

    # ========== Draft lifecycle ==========

    @classmethod
    def create_draft(cls, actor: Actor, site_id: int, items: Any, required_by: Any = None,
                     notes: Optional[str] = None, is_urgent: bool = False) -> str:
        """
        Create a new draft request group.

        Returns:
            str: the allocated DRAFT- number
        """
        RequestStateMachine.validate_transition(RequestStateMachine.SAVE_DRAFT, actor, RequestStateMachine.DRAFT)
        site = SiteAssignmentPolicy.check(site_id, actor)
        normalized = PayloadValidationPolicy.validate_items(
            items,
            default_required_by=PayloadValidationPolicy.parse_date(required_by, "Required by"),
            default_is_urgent=is_urgent,
        )

        request_number = cls.next_draft_number()
        cls._build_items(actor, request_number, site.id, normalized, PayloadValidationPolicy.optional_text(notes))
        db.session.flush()
        logger.info(f"Draft {request_number} saved with {len(normalized)} item(s) for site {site.name}")
        return request_number

    def update_draft(self, actor: Actor, site_id: int, items: Any, required_by: Any = None,
                     notes: Optional[str] = None, is_urgent: bool = False) -> None:
        """Replace every item of the draft; the draft number is kept"""
        RequestStateMachine.validate_group(RequestStateMachine.UPDATE_DRAFT, actor, self.group.statuses)
        RequestOwnershipPolicy.check(self.group, actor, "edit")
        site = SiteAssignmentPolicy.check(site_id, actor)
        normalized = PayloadValidationPolicy.validate_items(
            items,
            default_required_by=PayloadValidationPolicy.parse_date(required_by, "Required by"),
            default_is_urgent=is_urgent,
        )

        for item in self.group.items:
            db.session.delete(item)
        db.session.flush()

        self._build_items(actor, self.group.request_number, site.id, normalized,
                          PayloadValidationPolicy.optional_text(notes))
        db.session.flush()
        logger.info(f"Draft {self.group.request_number} updated with {len(normalized)} item(s)")

    def send(self, actor: Actor, order_note: Optional[str] = None,
             expected_version: Optional[int] = None) -> str:
        """
        Send a draft for approval: draft → pending, renumbered to the next request number.

        Returns:
            str: the new request number
        """
        RequestStateMachine.validate_group(RequestStateMachine.SEND_DRAFT, actor, self.group.statuses)
        RequestOwnershipPolicy.check(self.group, actor, "send")
        SiteAssignmentPolicy.check(self.group.site_id, actor)
        self._check_expected_version(self.group.items, expected_version)

        draft_number = self.group.request_number
        new_number = self.next_request_number()

        AuditTrail.copy_notes(draft_number, new_number)

        self._apply_group(RequestStateMachine.SEND_DRAFT, actor, request_number=new_number)
        self.group.request_number = new_number

        order_note = PayloadValidationPolicy.optional_text(order_note)
        if order_note:
            AuditTrail.add_unless_repeated(new_number, actor, RequestStateMachine.PENDING, order_note)

        display_number = self.group.display_number
        AuditTrail.add(
            new_number, actor, RequestStateMachine.PENDING,
            WorkflowNarrator.draft_sent(display_number, len(self.group.items)),
        )
        Notifier.notify_role(
            MANAGER,
            title="New material request",
            message=f"{display_number} is waiting for approval",
            type='request_submitted',
            link=f"/api/requests/{new_number}",
            entity_type='request',
        )
        logger.info(f"Draft {draft_number} sent as {display_number}")
        return new_number

    def delete(self, actor: Actor) -> int:
        """Hard-delete a draft. Returns the number of items removed."""
        RequestStateMachine.validate_group(RequestStateMachine.DELETE_DRAFT, actor, self.group.statuses)
        RequestOwnershipPolicy.check(self.group, actor, "delete")
        for item in self.group.items:
            db.session.delete(item)
        logger.info(f"Draft {self.group.request_number} deleted by user {actor.user_id}")
        return len(self.group.items)

    # ========== Manager decision ==========

    def approve(self, actor: Actor, expected_version: Optional[int] = None) -> None:
        """pending → approved for every item of the group"""
        RequestStateMachine.validate_group(RequestStateMachine.APPROVE, actor, self.group.statuses)
        self._check_expected_version(self.group.items, expected_version)
        self._apply_group(RequestStateMachine.APPROVE, actor, **self._decision_fields(actor))

        AuditTrail.add(
            self.group.request_number, actor, RequestStateMachine.APPROVED,
            WorkflowNarrator.approved(len(self.group.items)),
        )
        Notifier.notify_role(
            PURCHASE_OFFICER,
            title="Request approved",
            message=f"{self.group.display_number} was approved and is ready for procurement",
            type='request_approved',
            link=f"/api/requests/{self.group.request_number}",
            entity_type='request',
        )

    def reject(self, actor: Actor, reason: Optional[str], expected_version: Optional[int] = None) -> None:
        """pending → rejected; a reason is mandatory"""
        RequestStateMachine.validate_group(RequestStateMachine.REJECT, actor, self.group.statuses)
        reason = PayloadValidationPolicy.require_text(reason, "Rejection reason is required")
        self._check_expected_version(self.group.items, expected_version)

        fields = self._decision_fields(actor)
        fields['rejection_reason'] = reason
        self._apply_group(RequestStateMachine.REJECT, actor, **fields)

        AuditTrail.add(
            self.group.request_number, actor, RequestStateMachine.REJECTED,
            WorkflowNarrator.rejected(reason),
        )
        if self.group.creator_id:
            Notifier.notify_user(
                self.group.creator_id,
                title="Request rejected",
                message=f"{self.group.display_number} was rejected: {reason}",
                type='request_rejected',
                link=f"/api/requests/{self.group.request_number}",
                entity_type='request',
            )

    def route_direct(self, actor: Actor, direct_action: str, expected_version: Optional[int] = None) -> None:
        """pending → recheck, flagged for a direct purchase order or direct delivery"""
        RequestStateMachine.validate_group(RequestStateMachine.ROUTE_DIRECT, actor, self.group.statuses)
        if direct_action not in DIRECT_ACTIONS:
            raise ValidationError("Direct action must be 'po' or 'delivery'")
        self._check_expected_version(self.group.items, expected_version)

        fields = self._decision_fields(actor)
        fields['direct_action'] = direct_action
        self._apply_group(RequestStateMachine.ROUTE_DIRECT, actor, **fields)

        AuditTrail.add(
            self.group.request_number, actor, RequestStateMachine.RECHECK,
            WorkflowNarrator.routed_direct(direct_action),
        )
        Notifier.notify_role(
            PURCHASE_OFFICER,
            title="Request approved for direct purchase",
            message=f"{self.group.display_number} was approved for direct {direct_action}",
            type='request_approved',
            link=f"/api/requests/{self.group.request_number}",
            entity_type='request',
        )

    @staticmethod
    def _decision_fields(actor: Actor) -> Dict[str, Any]:
        return {'approved_by_id': actor.user_id, 'approved_at': datetime.utcnow(), 'rejection_reason': None}

    # ========== Purchase officer, item level ==========

    def update_details(self, actor: Actor, item_id: int, changes: Dict[str, Any],
                       expected_version: Optional[int] = None) -> Dict[str, tuple]:
        """
        Correct item details after approval.

        Returns:
            dict: field -> (old, new) for every field that actually changed
        """
        item = self.group.item(item_id)
        RequestStateMachine.validate_transition(RequestStateMachine.UPDATE_DETAILS, actor, item.status)
        self._check_expected_version([item], expected_version)

        unknown = set(changes) - set(EDITABLE_DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        cleaned = {}
        for field, value in changes.items():
            if field == 'quantity':
                cleaned[field] = PayloadValidationPolicy.positive_number(value, "Quantity")
            elif field in ('item_name', 'unit'):
                cleaned[field] = PayloadValidationPolicy.require_text(value, f"{field.replace('_', ' ').capitalize()} is required")
            else:
                cleaned[field] = PayloadValidationPolicy.optional_text(value)

        diff = {
            field: (getattr(item, field), value)
            for field, value in cleaned.items()
            if getattr(item, field) != value
        }
        if not diff:
            return diff

        self.apply_item_transition(item, RequestStateMachine.UPDATE_DETAILS, actor, **cleaned)
        AuditTrail.add(
            item.request_number, actor, item.status,
            WorkflowNarrator.details_updated(item.item_name, diff),
        )
        return diff

    def direct_to_po(self, actor: Actor, item_id: int, expected_version: Optional[int] = None) -> None:
        """Skip the cost comparison: approved/recheck/ready_for_cc → ready_for_po"""
        item = self.group.item(item_id)
        self._check_expected_version([item], expected_version)
        self.apply_item_transition(item, RequestStateMachine.DIRECT_TO_PO, actor,
                         direct_action=item.direct_action or 'po')
        AuditTrail.add(
            item.request_number, actor, item.status,
            WorkflowNarrator.direct_to_po(item.item_name),
        )

    # ========== Notes ==========

    def add_note(self, actor: Actor, content: str):
        """Free-text note by any authenticated role; the group's current status is recorded"""
        status = self.group.status or self.group.first.status
        return AuditTrail.add(self.group.request_number, actor, status, content)
