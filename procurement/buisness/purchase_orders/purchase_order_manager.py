from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from procurement import db
from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.audit_trail import AuditTrail
from procurement.buisness.workflow.errors import ConflictError, ForbiddenError, NotFoundError
from procurement.buisness.workflow.narrator import WorkflowNarrator
from procurement.buisness.workflow.notifier import Notifier
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.buisness.workflow.request_manager import RequestManager
from procurement.buisness.workflow.state_machine import PurchaseOrderStateMachine, RequestStateMachine
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.purchase_orders.manager")


@dataclass(frozen=True)
class StatusChange:
    entity_type: str
    entity_id: int
    from_status: str | None
    to_status: str


class PurchaseOrderManager:
    """
    Status changes on an issued purchase order.

    This class is responsible for:
    - validating the PO transition
    - setting the status field on the PO
    - propagating to the request items on its lines
    """

    def __init__(self, purchase_order_id: int):
        self.purchase_order_id = purchase_order_id

    @property
    def purchase_order(self) -> PurchaseOrderHeader:
        po = db.session.get(PurchaseOrderHeader, self.purchase_order_id)
        if po is None:
            raise NotFoundError(f"Purchase order {self.purchase_order_id} not found")
        return po

    @classmethod
    def for_number(cls, po_number: str) -> 'PurchaseOrderManager':
        po = PurchaseOrderHeader.query.filter_by(po_number=po_number).first()
        if po is None:
            raise NotFoundError(f"Purchase order {po_number} not found")
        return cls(po.id)

    def _set_status(self, po: PurchaseOrderHeader, new_status: str, actor: Actor,
                    reason: Optional[str] = None) -> StatusChange:
        old = po.status
        PurchaseOrderStateMachine.validate_transition(old, new_status)
        po.status = new_status
        po.status_reason = reason
        po.touch(actor.user_id)
        logger.info(f"PO {po.po_number}: {old} → {new_status} by user {actor.user_id}",
                    extra={"po_number": po.po_number, "user_id": actor.user_id})
        return StatusChange("purchase_order", po.id, old, new_status)

    def _propagate(self, po: PurchaseOrderHeader, action: str, actor: Actor,
                   change: StatusChange, reason: Optional[str] = None) -> list[StatusChange]:
        """Move every line's request item that can follow the PO; delivered lines stay where they are"""
        changes = [change]
        for line in po.purchase_order_lines:
            item = line.request_item
            if not RequestStateMachine.can_transition(action, actor, item.status):
                continue
            old = item.status
            RequestManager.apply_item_transition(item, action, actor)
            changes.append(StatusChange("request_item", item.id, old, item.status))
            AuditTrail.add(
                item.request_number, actor, item.status,
                WorkflowNarrator.po_status_changed(po.po_number, change.from_status, change.to_status, reason),
            )
        return changes

    @staticmethod
    def _require_role(actor: Actor, role: str, verb: str) -> None:
        if not actor.has_role(role):
            raise ForbiddenError(f"You are not allowed to {verb} purchase orders")

    # ========== Purchase officer ==========

    def mark_ordered(self, actor: Actor) -> PurchaseOrderHeader:
        actor = Actor.require(actor)
        with unit_of_work("mark_po_ordered"):
            self._require_role(actor, PURCHASE_OFFICER, "update")
            po = self.purchase_order
            change = self._set_status(po, PurchaseOrderStateMachine.ORDERED, actor)
            self._propagate(po, RequestStateMachine.MARK_ORDERED, actor, change)
        return self.purchase_order

    def mark_out_for_delivery(self, actor: Actor) -> PurchaseOrderHeader:
        actor = Actor.require(actor)
        with unit_of_work("mark_po_out_for_delivery"):
            self._require_role(actor, PURCHASE_OFFICER, "update")
            po = self.purchase_order
            change = self._set_status(po, PurchaseOrderStateMachine.OUT_FOR_DELIVERY, actor)
            self._propagate(po, RequestStateMachine.DISPATCH, actor, change)
        return self.purchase_order

    def cancel(self, actor: Actor, reason: Optional[str] = None) -> PurchaseOrderHeader:
        """
        Cancel a purchase order and release its items back to ready_for_po.

        Raises:
            ConflictError: If the PO is delivered or any quantity was already received
        """
        actor = Actor.require(actor)
        with unit_of_work("cancel_po"):
            self._require_role(actor, PURCHASE_OFFICER, "cancel")
            po = self.purchase_order
            if po.status == PurchaseOrderStateMachine.CANCELLED:
                raise ConflictError(f"{po.po_number} is already cancelled")
            if po.is_delivered:
                raise ConflictError("Cannot cancel a delivered purchase order")
            if any((line.quantity_delivered or 0.0) > 0 for line in po.purchase_order_lines):
                raise ConflictError(
                    f"Cannot cancel {po.po_number}: deliveries have already been recorded against it"
                )

            reason = PayloadValidationPolicy.optional_text(reason)
            change = self._set_status(po, PurchaseOrderStateMachine.CANCELLED, actor, reason)
            self._propagate(po, RequestStateMachine.RELEASE_PO, actor, change, reason)

            if po.is_direct_delivery:
                self._restore_stock(po)
        return self.purchase_order

    @staticmethod
    def _restore_stock(po: PurchaseOrderHeader) -> None:
        for line in po.purchase_order_lines:
            inventory = InventoryItem.find_by_name(line.item_description)
            if inventory is None:
                logger.warning(f"PO {po.po_number}: {line.item_description} no longer in inventory; stock not restored")
                continue
            inventory.central_stock = (inventory.central_stock or 0.0) + line.quantity
            logger.info(f"Restored {line.quantity:g} {line.unit} of {line.item_description} to central stock")

    # ========== Manager ==========

    def reject(self, actor: Actor, reason: Optional[str]) -> PurchaseOrderHeader:
        """Manager rejects an issued PO; its items move to rejected_po until released"""
        actor = Actor.require(actor)
        with unit_of_work("reject_po"):
            self._require_role(actor, MANAGER, "reject")
            reason = PayloadValidationPolicy.require_text(reason, "Rejection reason is required")
            po = self.purchase_order
            change = self._set_status(po, PurchaseOrderStateMachine.REJECTED_PO, actor, reason)
            self._propagate(po, RequestStateMachine.REJECT_PO, actor, change, reason)

            if po.created_by_id:
                Notifier.notify_user(
                    po.created_by_id,
                    title="Purchase order rejected",
                    message=f"{po.po_number} was rejected: {reason}",
                    type='po_rejected',
                    link=f"/api/purchase-orders/{po.id}",
                    entity_type='purchase_order',
                    entity_id=po.id,
                )
        return self.purchase_order

    def to_dict(self) -> dict:
        return self.purchase_order.to_dict()
