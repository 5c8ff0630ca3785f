from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from flask import current_app

from procurement import db
from procurement.buisness.core.actor import Actor, SITE_ENGINEER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.audit_trail import AuditTrail
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.buisness.workflow.narrator import WorkflowNarrator
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.buisness.workflow.request_manager import RequestManager
from procurement.buisness.workflow.state_machine import PurchaseOrderStateMachine, RequestStateMachine
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.purchasing.delivery import Delivery
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.purchasing.purchase_order_line import PurchaseOrderLine
from procurement.data.requests.request_item import RequestItem
from procurement.data.requests.request_note import RequestNote
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.deliveries.tracker")

# Float quantities are compared at this precision
_QTY_PRECISION = 6


class DeliveryTracker:
    """
    Records delivery confirmations (goods received notes) against request items.

    - each confirmation carries 0 < quantity <= outstanding quantity
    - cumulative < requested leaves the item at partially_processed
    - cumulative == requested marks it delivered and bumps central stock
    - the PO line follows, and the PO is delivered once every line is
    """

    def __init__(self, request_item_id: int):
        self.request_item_id = request_item_id

    @property
    def item(self) -> RequestItem:
        item = db.session.get(RequestItem, self.request_item_id)
        if item is None:
            raise NotFoundError(f"Request item {self.request_item_id} not found")
        return item

    @staticmethod
    def _generate_delivery_number() -> str:
        """DC-YYYYMMDD-NNNN, sequential within the day"""
        prefix = f"DC-{date.today():%Y%m%d}-"
        count = Delivery.query.filter(Delivery.delivery_number.like(f"{prefix}%")).count()
        return f"{prefix}{count + 1:04d}"

    @staticmethod
    def _check_receiver(item: RequestItem, actor: Actor) -> None:
        if not actor.has_role(SITE_ENGINEER):
            raise ForbiddenError("Only site engineers can confirm deliveries")
        if actor.is_admin:
            return
        if item.created_by_id != actor.user_id and not actor.is_assigned_to(item.site_id):
            raise ForbiddenError("You can only confirm deliveries for your own requests or assigned sites")

    @staticmethod
    def _open_line(item: RequestItem) -> Optional[PurchaseOrderLine]:
        """The PO line the item is currently ordered on, if any"""
        return (
            PurchaseOrderLine.query
            .join(PurchaseOrderHeader)
            .filter(
                PurchaseOrderLine.request_item_id == item.id,
                PurchaseOrderHeader.status.notin_(
                    [PurchaseOrderStateMachine.CANCELLED, PurchaseOrderStateMachine.REJECTED_PO]
                ),
            )
            .order_by(PurchaseOrderLine.id.desc())
            .first()
        )

    def confirm_delivery(
        self,
        actor: Actor,
        delivered_quantity: Any,
        *,
        receiver_name: Optional[str] = None,
        delivery_type: Optional[str] = None,
        vehicle_number: Optional[str] = None,
        notes: Optional[str] = None,
        photo_urls: Any = None,
        expected_version: Optional[int] = None,
    ) -> Delivery:
        """
        Confirm receipt of delivered_quantity of the item.

        Raises:
            ValidationError: quantity not positive or above the outstanding quantity
            ConflictError: item not at a deliverable status
        """
        actor = Actor.require(actor)
        with unit_of_work("confirm_delivery"):
            item = self.item
            self._check_receiver(item, actor)
            RequestStateMachine.validate_transition(RequestStateMachine.CONFIRM_PARTIAL_DELIVERY, actor, item.status)

            quantity = PayloadValidationPolicy.positive_number(delivered_quantity, "Delivered quantity")
            if delivery_type is not None and delivery_type not in Delivery.TYPES:
                raise ValidationError(f"Delivery type must be one of: {', '.join(Delivery.TYPES)}")
            photo_urls = PayloadValidationPolicy.photo_urls(photo_urls)

            remaining = round(item.quantity_remaining, _QTY_PRECISION)
            if round(quantity, _QTY_PRECISION) > remaining:
                raise ValidationError(
                    f"Delivered quantity {quantity:g} exceeds the outstanding quantity {remaining:g} {item.unit}"
                )
            if expected_version is not None and item.version != expected_version:
                raise ConflictError(
                    f"Request {item.display_number} changed since it was loaded "
                    f"(version {item.version}, expected {expected_version})"
                )

            line = self._open_line(item)
            was_direct = item.status == RequestStateMachine.DIRECT_PO or (
                line is not None and line.purchase_order.is_direct_delivery
            )
            cumulative = round((item.delivered_quantity or 0.0) + quantity, _QTY_PRECISION)
            is_final = cumulative >= round(item.quantity, _QTY_PRECISION)
            action = (
                RequestStateMachine.CONFIRM_FINAL_DELIVERY if is_final
                else RequestStateMachine.CONFIRM_PARTIAL_DELIVERY
            )

            fields = {'delivered_quantity': cumulative}
            if is_final:
                fields['delivery_marked_at'] = datetime.utcnow()
            RequestManager.apply_item_transition(item, action, actor, **fields)

            delivery = Delivery(
                delivery_number=self._generate_delivery_number(),
                request_item_id=item.id,
                purchase_order_line_id=line.id if line else None,
                quantity=quantity,
                cumulative_quantity=cumulative,
                is_final=is_final,
                receiver_name=PayloadValidationPolicy.optional_text(receiver_name),
                delivery_type=delivery_type,
                vehicle_number=PayloadValidationPolicy.optional_text(vehicle_number),
                notes=PayloadValidationPolicy.optional_text(notes),
                photo_urls=photo_urls,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
            )
            db.session.add(delivery)
            db.session.flush()

            AuditTrail.add(
                item.request_number, actor, item.status,
                WorkflowNarrator.delivery_confirmed(
                    delivery.delivery_number, item.item_name, quantity, item.unit, cumulative, item.quantity,
                ),
                note_type=RequestNote.TYPE_LOG,
            )

            if line is not None:
                self._update_purchase_order(line, quantity, actor)
            if is_final and not was_direct:
                self._increment_stock(item, actor)

            logger.info(
                f"Delivery {delivery.delivery_number}: item {item.id} +{quantity:g} "
                f"({cumulative:g}/{item.quantity:g}) {'final' if is_final else 'partial'}"
            )
        return delivery

    @staticmethod
    def _update_purchase_order(line: PurchaseOrderLine, quantity: float, actor: Actor) -> None:
        line.quantity_delivered = round((line.quantity_delivered or 0.0) + quantity, _QTY_PRECISION)
        line.touch(actor.user_id)
        po = line.purchase_order
        if po.is_fully_delivered and not po.is_delivered:
            PurchaseOrderStateMachine.validate_transition(po.status, PurchaseOrderStateMachine.DELIVERED)
            po.status = PurchaseOrderStateMachine.DELIVERED
            po.actual_delivery_date = date.today()
            po.touch(actor.user_id)
            logger.info(f"PO {po.po_number} fully delivered")

    @staticmethod
    def _increment_stock(item: RequestItem, actor: Actor) -> Optional[InventoryItem]:
        inventory = InventoryItem.find_by_name(item.item_name)
        if inventory is None:
            if not current_app.config.get('AUTO_CREATE_INVENTORY_ON_DELIVERY', False):
                logger.info(f"{item.item_name} is not in inventory; stock update skipped")
                return None
            inventory = InventoryItem(
                item_name=item.item_name,
                description=item.description,
                unit=item.unit,
                central_stock=0.0,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
            )
            db.session.add(inventory)
            logger.info(f"Created inventory item {item.item_name} from delivery")

        inventory.central_stock = (inventory.central_stock or 0.0) + item.quantity
        AuditTrail.add(
            item.request_number, actor, item.status,
            WorkflowNarrator.stock_incremented(item.item_name, item.quantity, inventory.central_stock),
            note_type=RequestNote.TYPE_LOG,
        )
        return inventory

    @staticmethod
    def deliveries_for(request_item_id: int) -> list[Delivery]:
        return (
            Delivery.query
            .filter_by(request_item_id=request_item_id)
            .order_by(Delivery.created_at, Delivery.id)
            .all()
        )
