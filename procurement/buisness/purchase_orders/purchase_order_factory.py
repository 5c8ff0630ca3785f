from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from procurement import db
from procurement.buisness.core.actor import Actor, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.audit_trail import AuditTrail
from procurement.buisness.workflow.errors import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.buisness.workflow.narrator import WorkflowNarrator
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.buisness.workflow.request_manager import RequestManager
from procurement.buisness.workflow.state_machine import (
    CostComparisonStateMachine,
    PurchaseOrderStateMachine,
    RequestStateMachine,
)
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.core.vendor import Vendor
from procurement.data.purchasing.cost_comparison import CostComparison
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.purchasing.purchase_order_line import PurchaseOrderLine
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.purchase_orders.factory")


@dataclass
class LineSelection:
    """One request item resolved to the vendor and price it will be ordered at"""
    item: RequestItem
    vendor: Vendor
    unit_price: float
    is_direct_delivery: bool
    cost_comparison_id: Optional[int] = None

    @property
    def group_key(self) -> tuple:
        return (self.vendor.id, self.item.site_id, self.is_direct_delivery)


class PurchaseOrderFactory:
    """
    Creates purchase orders from request items.

    - items from approved cost comparisons are grouped by chosen vendor (and delivery
      site) into one PO per group
    - items routed with direct_to_po are ordered at an explicit vendor and price
    - direct-delivery items are fulfilled from central stock and land in direct_po
    The whole call is one transaction: any failure leaves no PO and no status change.
    """

    @staticmethod
    def _generate_po_number() -> str:
        """PO-YYYYMM-NNNN, sequential within the month"""
        prefix = f"PO-{date.today():%Y%m}-"
        existing = db.session.query(PurchaseOrderHeader.po_number).filter(
            PurchaseOrderHeader.po_number.like(f"{prefix}%")
        ).all()
        highest = 0
        for (po_number,) in existing:
            suffix = po_number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:04d}"

    @staticmethod
    def _require_purchase_officer(actor: Actor) -> None:
        if not actor.has_role(PURCHASE_OFFICER):
            raise ForbiddenError("Only purchase officers can issue purchase orders")

    @staticmethod
    def _as_id(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise ValidationError(f"{label} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be an integer") from None

    @classmethod
    def _load_items(cls, request_item_ids: list[int]) -> list[RequestItem]:
        if not request_item_ids:
            raise ValidationError("Select at least one request item")
        ids = (cls._as_id(i, "Request item id") for i in request_item_ids)
        unique_ids = list(OrderedDict.fromkeys(ids))
        items = RequestItem.query.filter(RequestItem.id.in_(unique_ids)).all()
        by_id = {item.id: item for item in items}
        missing = [i for i in unique_ids if i not in by_id]
        if missing:
            raise NotFoundError(f"Request item(s) not found: {', '.join(map(str, missing))}")
        return [by_id[i] for i in unique_ids]

    @staticmethod
    def _active_vendor(vendor_id: Any) -> Vendor:
        try:
            vendor = db.session.get(Vendor, int(vendor_id))
        except (TypeError, ValueError):
            raise ValidationError("Vendor is required") from None
        if vendor is None or not vendor.is_active:
            raise NotFoundError(f"Vendor {vendor_id} not found or inactive")
        return vendor

    @staticmethod
    def _header_fields(header_info: Optional[dict]) -> dict:
        header_info = header_info or {}
        fields = {
            'expected_delivery_date': PayloadValidationPolicy.parse_date(
                header_info.get('expected_delivery_date'), "Expected delivery date"),
            'valid_till': PayloadValidationPolicy.parse_date(header_info.get('valid_till'), "Valid till"),
            'gst_tax_rate': PayloadValidationPolicy.percentage(header_info.get('gst_tax_rate'), "GST"),
            'notes': PayloadValidationPolicy.optional_text(header_info.get('notes')),
        }
        return fields

    # ========== Entry points ==========

    @classmethod
    def issue_from_cost_comparisons(
        cls,
        actor: Actor,
        *,
        request_item_ids: list[int],
        vendor_overrides: Optional[dict[int, int]] = None,
        header_info: Optional[dict] = None,
    ) -> list[PurchaseOrderHeader]:
        """
        Issue purchase orders for items whose cost comparison was approved.

        Vendor choice per item: explicit override, else the manager's selection,
        else the lowest quote. An override must be one of the quoted vendors.
        """
        actor = Actor.require(actor)
        vendor_overrides = {
            cls._as_id(k, "Request item id"): cls._as_id(v, "Vendor override")
            for k, v in (vendor_overrides or {}).items()
        }

        with unit_of_work("issue_purchase_orders"):
            cls._require_purchase_officer(actor)
            header = cls._header_fields(header_info)
            selections = []
            for item in cls._load_items(request_item_ids):
                if item.status == RequestStateMachine.CC_APPROVED:
                    RequestManager.apply_item_transition(item, RequestStateMachine.PREPARE_PO, actor)

                comparison = CostComparison.query.filter_by(request_item_id=item.id).first()
                if comparison is None or comparison.status != CostComparisonStateMachine.CC_APPROVED:
                    raise ValidationError(
                        f"{item.item_name} has no approved cost comparison; "
                        f"issue it directly with a vendor and unit price"
                    )

                vendor_id = (
                    vendor_overrides.get(item.id)
                    or comparison.selected_vendor_id
                    or comparison.lowest_quote().vendor_id
                )
                quote = comparison.quote_for(vendor_id)
                if quote is None:
                    raise ValidationError(f"Vendor {vendor_id} has no quote for {item.item_name}")

                selections.append(LineSelection(
                    item=item,
                    vendor=cls._active_vendor(vendor_id),
                    unit_price=quote.unit_price,
                    is_direct_delivery=comparison.is_direct_delivery,
                    cost_comparison_id=comparison.id,
                ))

            purchase_orders = cls._create_purchase_orders(actor, selections, header)
        return purchase_orders

    @classmethod
    def issue_direct(
        cls,
        actor: Actor,
        *,
        request_item_id: int,
        vendor_id: int,
        unit_price: Any,
        header_info: Optional[dict] = None,
    ) -> PurchaseOrderHeader:
        """Issue a purchase order for an item that skipped the cost comparison"""
        actor = Actor.require(actor)
        with unit_of_work("issue_direct_purchase_order"):
            cls._require_purchase_officer(actor)
            header = cls._header_fields(header_info)
            (item,) = cls._load_items([request_item_id])
            selection = LineSelection(
                item=item,
                vendor=cls._active_vendor(vendor_id),
                unit_price=PayloadValidationPolicy.positive_number(unit_price, "Unit price"),
                is_direct_delivery=False,
            )
            (purchase_order,) = cls._create_purchase_orders(actor, [selection], header)
        return purchase_order

    # ========== Construction ==========

    @classmethod
    def _create_purchase_orders(cls, actor: Actor, selections: list[LineSelection],
                                header: dict) -> list[PurchaseOrderHeader]:
        grouped: "OrderedDict[tuple, list[LineSelection]]" = OrderedDict()
        for selection in selections:
            grouped.setdefault(selection.group_key, []).append(selection)

        purchase_orders = []
        for (vendor_id, site_id, is_direct), group in grouped.items():
            status = PurchaseOrderStateMachine.DIRECT_PO if is_direct else PurchaseOrderStateMachine.PENDING_PO
            po = PurchaseOrderHeader(
                po_number=cls._generate_po_number(),
                vendor_id=vendor_id,
                delivery_site_id=site_id,
                is_direct_delivery=is_direct,
                order_date=date.today(),
                status=status,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
                **header,
            )
            db.session.add(po)
            db.session.flush()
            logger.info(f"Created PO header - ID: {po.id}, PO Number: {po.po_number}, Vendor: {vendor_id}")

            for line_number, selection in enumerate(group, start=1):
                cls._add_line(actor, po, line_number, selection)

            po.calculate_total()
            purchase_orders.append(po)
            logger.info(
                f"PO {po.id} ({po.po_number}) created with {len(group)} line(s), "
                f"total {po.total_amount:.2f}, status: {po.status}"
            )
        return purchase_orders

    @classmethod
    def _add_line(cls, actor: Actor, po: PurchaseOrderHeader, line_number: int,
                  selection: LineSelection) -> PurchaseOrderLine:
        item = selection.item
        action = (
            RequestStateMachine.ISSUE_DIRECT_PO if selection.is_direct_delivery
            else RequestStateMachine.ISSUE_PO
        )
        RequestManager.apply_item_transition(item, action, actor)

        if selection.is_direct_delivery:
            cls._draw_from_stock(item)

        line = PurchaseOrderLine(
            purchase_order=po,
            request_item_id=item.id,
            cost_comparison_id=selection.cost_comparison_id,
            item_description=item.item_name,
            quantity=item.quantity,
            unit=item.unit,
            unit_price=selection.unit_price,
            quantity_delivered=0.0,
            line_number=line_number,
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        db.session.add(line)
        db.session.flush()
        logger.debug(f"  PO Line {line_number}: item {item.id}, Qty {line.quantity}, Price {line.unit_price}")

        AuditTrail.add(
            item.request_number, actor, item.status,
            WorkflowNarrator.po_issued(po.po_number, selection.vendor.company_name, item.item_name,
                                       selection.is_direct_delivery),
        )
        return line

    @staticmethod
    def _draw_from_stock(item: RequestItem) -> InventoryItem:
        inventory = InventoryItem.find_by_name(item.item_name)
        if inventory is None:
            raise ValidationError(f"{item.item_name} is not in inventory; it cannot be delivered directly")
        if (inventory.central_stock or 0.0) < item.quantity:
            raise ValidationError(
                f"Insufficient stock for {item.item_name}: {inventory.central_stock:g} available, "
                f"{item.quantity:g} requested"
            )
        inventory.central_stock -= item.quantity
        logger.info(f"Drew {item.quantity:g} {item.unit} of {item.item_name} from central stock")
        return inventory
