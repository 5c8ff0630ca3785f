"""
CostComparisonManager - vendor quote comparison for a single request item

Owns the CostComparison row of one request item and moves the item through
ready_for_cc → cc_pending → cc_approved | cc_rejected (→ cc_pending on resubmit).
Each public operation is one unit of work.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from procurement import db
from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.audit_trail import AuditTrail
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.buisness.workflow.narrator import WorkflowNarrator
from procurement.buisness.workflow.notifier import Notifier
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.buisness.workflow.request_manager import RequestManager
from procurement.buisness.workflow.state_machine import (
    CostComparisonStateMachine,
    RequestStateMachine,
)
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.core.vendor import Vendor
from procurement.data.purchasing.cost_comparison import CostComparison
from procurement.data.purchasing.vendor_quote import VendorQuote
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.cost_comparisons")

EMPTY_QUOTES_MESSAGE = "Please add at least one vendor quote before submitting"


class CostComparisonManager:

    def __init__(self, request_item_id: int):
        self.item = db.session.get(RequestItem, request_item_id)
        if self.item is None:
            raise NotFoundError(f"Request item {request_item_id} not found")
        self.comparison: Optional[CostComparison] = CostComparison.query.filter_by(
            request_item_id=request_item_id
        ).first()

    # ========== Quote handling ==========

    @staticmethod
    def normalize_quotes(vendor_quotes: Any) -> List[Dict[str, Any]]:
        """
        Validate a full quote set.

        Raises:
            ValidationError: malformed quote, non-positive price or vendor quoted twice
            NotFoundError: vendor unknown or inactive
        """
        if vendor_quotes is None:
            return []
        if not isinstance(vendor_quotes, list):
            raise ValidationError("vendor_quotes must be a list")

        normalized = []
        seen = set()
        for position, raw in enumerate(vendor_quotes, start=1):
            if not isinstance(raw, dict):
                raise ValidationError(f"Quote {position} is malformed")
            try:
                vendor_id = int(raw.get('vendor_id'))
            except (TypeError, ValueError):
                raise ValidationError(f"Quote {position}: vendor is required") from None

            if vendor_id in seen:
                raise ValidationError(f"Vendor {vendor_id} is quoted more than once")
            seen.add(vendor_id)

            vendor = db.session.get(Vendor, vendor_id)
            if vendor is None or not vendor.is_active:
                raise NotFoundError(f"Vendor {vendor_id} not found or inactive")

            normalized.append({
                'vendor_id': vendor_id,
                'unit_price': PayloadValidationPolicy.positive_number(
                    raw.get('unit_price'), f"Quote {position}: unit price"),
                'unit': PayloadValidationPolicy.optional_text(raw.get('unit')),
                'discount_percent': PayloadValidationPolicy.percentage(
                    raw.get('discount_percent'), f"Quote {position}: discount"),
                'gst_percent': PayloadValidationPolicy.percentage(
                    raw.get('gst_percent'), f"Quote {position}: GST"),
            })
        return normalized

    def _replace_quotes(self, quotes: List[Dict[str, Any]]) -> None:
        # Old rows must be gone before the new ones hit the (comparison, vendor) unique constraint
        self.comparison.quotes.clear()
        db.session.flush()
        for data in quotes:
            self.comparison.quotes.append(VendorQuote(**data))

    def _check_direct_delivery(self, is_direct_delivery: bool) -> None:
        if is_direct_delivery and InventoryItem.find_by_name(self.item.item_name) is None:
            raise ValidationError(
                f"{self.item.item_name} is not in the inventory master list and cannot be delivered directly"
            )

    def _require_comparison(self) -> CostComparison:
        if self.comparison is None:
            raise ConflictError(f"No cost comparison exists for item {self.item.id}")
        return self.comparison

    def _set_comparison_status(self, new_status: str, actor: Actor) -> None:
        old_status = self.comparison.status
        CostComparisonStateMachine.validate_transition(old_status, new_status)
        self.comparison.status = new_status
        self.comparison.touch(actor.user_id)
        logger.info(f"Cost comparison {self.comparison.id} (item {self.item.id}): {old_status} → {new_status}")

    # ========== Operations ==========

    def upsert(self, actor: Actor, vendor_quotes: Any, is_direct_delivery: bool = False) -> CostComparison:
        """
        Create or replace the full quote set.

        Allowed while the comparison is draft or cc_rejected. An approved item moves
        to ready_for_cc; a rejected item stays cc_rejected until resubmitted.
        """
        actor = Actor.require(actor)
        with unit_of_work("upsert_cost_comparison"):
            if not actor.has_role(PURCHASE_OFFICER):
                raise ForbiddenError("Only purchase officers can edit cost comparisons")

            if self.comparison is not None and self.comparison.status not in CostComparisonStateMachine.EDITABLE_STATES:
                raise ConflictError(
                    f"Cost comparison cannot be edited while it is '{self.comparison.status}'"
                )

            if self.item.status != RequestStateMachine.CC_REJECTED:
                RequestManager.apply_item_transition(self.item, RequestStateMachine.START_COST_COMPARISON, actor)

            quotes = self.normalize_quotes(vendor_quotes)
            self._check_direct_delivery(bool(is_direct_delivery))

            if self.comparison is None:
                self.comparison = CostComparison(
                    request_item_id=self.item.id,
                    status=CostComparisonStateMachine.DRAFT,
                    created_by_id=actor.user_id,
                    updated_by_id=actor.user_id,
                )
                db.session.add(self.comparison)
                logger.info(f"Cost comparison created for item {self.item.id}")

            self.comparison.is_direct_delivery = bool(is_direct_delivery)
            self._replace_quotes(quotes)
            self.comparison.touch(actor.user_id)
            logger.info(f"Cost comparison for item {self.item.id} now has {len(quotes)} quote(s)")
        return self.comparison

    def submit(self, actor: Actor, expected_version: Optional[int] = None) -> CostComparison:
        """ready_for_cc → cc_pending; at least one quote is required"""
        actor = Actor.require(actor)
        with unit_of_work("submit_cost_comparison"):
            RequestStateMachine.validate_transition(
                RequestStateMachine.SUBMIT_COST_COMPARISON, actor, self.item.status)
            if self.comparison is None or not self.comparison.quotes:
                raise ValidationError(EMPTY_QUOTES_MESSAGE)
            self._check_version(expected_version)

            self._set_comparison_status(CostComparisonStateMachine.CC_PENDING, actor)
            self.comparison.submitted_at = datetime.utcnow()
            RequestManager.apply_item_transition(self.item, RequestStateMachine.SUBMIT_COST_COMPARISON, actor)

            AuditTrail.add(
                self.item.request_number, actor, self.item.status,
                WorkflowNarrator.cost_comparison_submitted(self.item.item_name, len(self.comparison.quotes)),
            )
            self._notify_managers("Cost comparison awaiting review")
        return self.comparison

    def approve(self, actor: Actor, selected_vendor_id: Optional[int] = None,
                notes: Optional[str] = None) -> CostComparison:
        """cc_pending → cc_approved; vendor defaults to the lowest per-vendor total"""
        actor = Actor.require(actor)
        with unit_of_work("approve_cost_comparison"):
            RequestStateMachine.validate_transition(
                RequestStateMachine.APPROVE_COST_COMPARISON, actor, self.item.status)
            comparison = self._require_comparison()

            if selected_vendor_id is None:
                lowest = comparison.lowest_quote()
                if lowest is None:
                    raise ValidationError(EMPTY_QUOTES_MESSAGE)
                selected_vendor_id = lowest.vendor_id
            else:
                try:
                    selected_vendor_id = int(selected_vendor_id)
                except (TypeError, ValueError):
                    raise ValidationError("Selected vendor must be in the quotes list") from None
                if selected_vendor_id not in comparison.vendor_ids:
                    raise ValidationError("Selected vendor must be in the quotes list")

            self._set_comparison_status(CostComparisonStateMachine.CC_APPROVED, actor)
            comparison.selected_vendor_id = selected_vendor_id
            comparison.manager_notes = PayloadValidationPolicy.optional_text(notes)
            comparison.approved_by_id = actor.user_id
            comparison.approved_at = datetime.utcnow()
            RequestManager.apply_item_transition(self.item, RequestStateMachine.APPROVE_COST_COMPARISON, actor)

            vendor = db.session.get(Vendor, selected_vendor_id)
            AuditTrail.add(
                self.item.request_number, actor, self.item.status,
                WorkflowNarrator.cost_comparison_approved(
                    self.item.item_name, vendor.company_name, comparison.manager_notes),
            )
            self._notify_author("Cost comparison approved", 'cc_approved')
        return comparison

    def reject(self, actor: Actor, manager_notes: Optional[str]) -> CostComparison:
        """cc_pending → cc_rejected; manager notes are mandatory"""
        actor = Actor.require(actor)
        with unit_of_work("reject_cost_comparison"):
            RequestStateMachine.validate_transition(
                RequestStateMachine.REJECT_COST_COMPARISON, actor, self.item.status)
            notes = PayloadValidationPolicy.require_text(manager_notes, "Rejection reason is required")
            comparison = self._require_comparison()

            self._set_comparison_status(CostComparisonStateMachine.CC_REJECTED, actor)
            comparison.manager_notes = notes
            comparison.rejected_at = datetime.utcnow()
            comparison.selected_vendor_id = None
            RequestManager.apply_item_transition(self.item, RequestStateMachine.REJECT_COST_COMPARISON, actor)

            AuditTrail.add(
                self.item.request_number, actor, self.item.status,
                WorkflowNarrator.cost_comparison_rejected(self.item.item_name, notes),
            )
            self._notify_author("Cost comparison rejected", 'cc_rejected')
        return comparison

    def resubmit(self, actor: Actor, vendor_quotes: Any,
                 is_direct_delivery: Optional[bool] = None) -> CostComparison:
        """cc_rejected → cc_pending with a replacement quote set"""
        actor = Actor.require(actor)
        with unit_of_work("resubmit_cost_comparison"):
            RequestStateMachine.validate_transition(
                RequestStateMachine.RESUBMIT_COST_COMPARISON, actor, self.item.status)
            comparison = self._require_comparison()
            if comparison.status != CostComparisonStateMachine.CC_REJECTED:
                raise ConflictError("Cost comparison is not rejected")

            quotes = self.normalize_quotes(vendor_quotes)
            if not quotes:
                raise ValidationError(EMPTY_QUOTES_MESSAGE)
            if is_direct_delivery is not None:
                self._check_direct_delivery(bool(is_direct_delivery))
                comparison.is_direct_delivery = bool(is_direct_delivery)

            self._replace_quotes(quotes)
            comparison.resubmission_count = (comparison.resubmission_count or 0) + 1
            comparison.submitted_at = datetime.utcnow()
            self._set_comparison_status(CostComparisonStateMachine.CC_PENDING, actor)
            RequestManager.apply_item_transition(self.item, RequestStateMachine.RESUBMIT_COST_COMPARISON, actor)

            AuditTrail.add(
                self.item.request_number, actor, self.item.status,
                WorkflowNarrator.cost_comparison_resubmitted(
                    self.item.item_name, len(quotes), comparison.resubmission_count),
            )
            self._notify_managers("Cost comparison resubmitted")
        return comparison

    # ========== Helpers ==========

    def _check_version(self, expected_version: Optional[int]) -> None:
        if expected_version is not None and self.item.version != expected_version:
            raise ConflictError(
                f"Request item {self.item.id} changed since it was loaded "
                f"(version {self.item.version}, expected {expected_version})"
            )

    def _notify_managers(self, title: str) -> None:
        Notifier.notify_role(
            MANAGER,
            title=title,
            message=f"{self.item.display_number}: {self.item.item_name}",
            type='cc_pending',
            link=f"/api/cost-comparisons/{self.item.id}",
            entity_type='cost_comparison',
            entity_id=self.comparison.id,
        )

    def _notify_author(self, title: str, type: str) -> None:
        if self.comparison.created_by_id:
            Notifier.notify_user(
                self.comparison.created_by_id,
                title=title,
                message=f"{self.item.display_number}: {self.item.item_name}",
                type=type,
                link=f"/api/cost-comparisons/{self.item.id}",
                entity_type='cost_comparison',
                entity_id=self.comparison.id,
            )

    def to_dict(self) -> dict:
        return {
            'request_item': self.item.to_dict(),
            'cost_comparison': self.comparison.to_dict() if self.comparison else None,
        }
