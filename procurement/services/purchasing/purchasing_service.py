"""
Purchasing Service

Read-only listings of cost comparisons, purchase orders and deliveries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Query

from procurement.buisness.core.actor import Actor, SITE_ENGINEER
from procurement.data.purchasing.cost_comparison import CostComparison
from procurement.data.purchasing.delivery import Delivery
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.requests.request_item import RequestItem


@dataclass(frozen=True)
class PurchaseOrderFilters:
    status: Optional[str] = None
    vendor_id: Optional[int] = None
    site_id: Optional[int] = None
    po_number: Optional[str] = None


class PurchasingService:

    @staticmethod
    def parse_po_filters(args: Any) -> PurchaseOrderFilters:
        def _get_int(key: str) -> Optional[int]:
            raw = args.get(key)
            if raw in (None, ""):
                return None
            return int(raw) if str(raw).isdigit() else None

        return PurchaseOrderFilters(
            status=args.get("status") or None,
            vendor_id=_get_int("vendor_id"),
            site_id=_get_int("site_id"),
            po_number=(args.get("po_number") or "").strip() or None,
        )

    @staticmethod
    def build_po_query(filters: PurchaseOrderFilters) -> Query:
        query = PurchaseOrderHeader.query
        if filters.status:
            query = query.filter(PurchaseOrderHeader.status == filters.status)
        if filters.vendor_id:
            query = query.filter(PurchaseOrderHeader.vendor_id == filters.vendor_id)
        if filters.site_id:
            query = query.filter(PurchaseOrderHeader.delivery_site_id == filters.site_id)
        if filters.po_number:
            query = query.filter(PurchaseOrderHeader.po_number.ilike(f"%{filters.po_number}%"))
        return query.order_by(PurchaseOrderHeader.created_at.desc(), PurchaseOrderHeader.id.desc())

    @classmethod
    def list_purchase_orders(cls, actor: Actor, filters: Optional[PurchaseOrderFilters] = None) -> list[PurchaseOrderHeader]:
        """Site engineers only see POs delivering to their assigned sites"""
        query = cls.build_po_query(filters or PurchaseOrderFilters())
        if actor.role == SITE_ENGINEER:
            query = query.filter(PurchaseOrderHeader.delivery_site_id.in_(list(actor.assigned_site_ids) or [-1]))
        return query.all()

    @staticmethod
    def list_cost_comparisons(status: Optional[str] = None) -> list[CostComparison]:
        query = CostComparison.query
        if status:
            query = query.filter(CostComparison.status == status)
        return query.order_by(CostComparison.updated_at.desc(), CostComparison.id.desc()).all()

    @staticmethod
    def deliveries_for_request(request_number: str) -> list[Delivery]:
        return (
            Delivery.query
            .join(RequestItem, Delivery.request_item_id == RequestItem.id)
            .filter(RequestItem.request_number == request_number)
            .order_by(Delivery.created_at, Delivery.id)
            .all()
        )
