"""
Dashboard Service

Aggregate counts for the manager overview and per-role work queues.
"""

from typing import Any, Dict, List

from flask import current_app
from sqlalchemy import func

from procurement import db
from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER, SITE_ENGINEER
from procurement.buisness.workflow.state_machine import RequestStateMachine
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.core.site import Site
from procurement.data.core.user_info.user import User
from procurement.data.purchasing.cost_comparison import CostComparison
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.requests.request_item import RequestItem
from procurement.services.requests.request_search_service import RequestSearchService

SM = RequestStateMachine

PENDING_BUCKET = {SM.PENDING}
APPROVED_BUCKET = {SM.APPROVED, SM.READY_FOR_PO}
REJECTED_BUCKET = {SM.REJECTED, SM.CC_REJECTED, SM.REJECTED_PO}

TOP_SITES = 5
RECENT_ACTIVITY = 7

# Work queue per role: statuses that wait on that role
WORK_QUEUES = {
    SITE_ENGINEER: {SM.DRAFT, SM.PENDING_PO, SM.DIRECT_PO, SM.ORDERED, SM.OUT_FOR_DELIVERY,
                    SM.PARTIALLY_PROCESSED, SM.READY_FOR_DELIVERY, SM.DELIVERY_STAGE, SM.DELIVERY_PROCESSING},
    MANAGER: {SM.PENDING, SM.CC_PENDING, SM.PENDING_PO},
    PURCHASE_OFFICER: {SM.APPROVED, SM.RECHECK, SM.READY_FOR_CC, SM.CC_APPROVED, SM.CC_REJECTED,
                       SM.READY_FOR_PO, SM.REJECTED_PO},
}


class DashboardService:

    @staticmethod
    def status_counts(actor: Actor) -> Dict[str, int]:
        query = RequestSearchService.visible_query(actor).with_entities(RequestItem.status, func.count(RequestItem.id))
        return {status: count for status, count in query.group_by(RequestItem.status).all()}

    @staticmethod
    def site_performance(limit: int = TOP_SITES) -> List[Dict[str, Any]]:
        """Sites with the most request items, busiest first"""
        rows = (
            db.session.query(Site.name, func.count(RequestItem.id).label('requests'))
            .join(RequestItem, RequestItem.site_id == Site.id)
            .filter(RequestItem.status != SM.DRAFT)
            .group_by(Site.id, Site.name)
            .order_by(func.count(RequestItem.id).desc(), Site.name)
            .limit(limit)
            .all()
        )
        return [{'name': name, 'requests': count} for name, count in rows]

    @classmethod
    def manager_overview(cls, actor: Actor) -> Dict[str, Any]:
        counts = cls.status_counts(actor)
        total = sum(count for status, count in counts.items() if status != SM.DRAFT)
        pending = sum(counts.get(s, 0) for s in PENDING_BUCKET)
        approved = sum(counts.get(s, 0) for s in APPROVED_BUCKET)
        rejected = sum(counts.get(s, 0) for s in REJECTED_BUCKET)
        threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 20)

        recent = (
            RequestSearchService.visible_query(actor)
            .filter(RequestItem.status != SM.DRAFT)
            .order_by(RequestItem.created_at.desc(), RequestItem.id.desc())
            .limit(RECENT_ACTIVITY)
            .all()
        )

        return {
            'overview': {
                'total_requests': total,
                'pending_requests': pending,
                'approved_requests': approved,
                'rejected_requests': rejected,
                'total_users': User.query.count(),
                'total_inventory_items': InventoryItem.query.filter_by(is_active=True).count(),
                'low_stock_items': InventoryItem.query.filter(
                    InventoryItem.is_active.is_(True), InventoryItem.central_stock < threshold
                ).count(),
                'pending_cost_comparisons': CostComparison.query.filter_by(status='cc_pending').count(),
                'open_purchase_orders': PurchaseOrderHeader.query.filter(
                    PurchaseOrderHeader.status.notin_(['delivered', 'cancelled'])
                ).count(),
            },
            'charts': {
                'status_distribution': [
                    {'name': 'Pending', 'value': pending},
                    {'name': 'Approved', 'value': approved},
                    {'name': 'Rejected', 'value': rejected},
                    {'name': 'Other', 'value': total - (pending + approved + rejected)},
                ],
                'site_performance': cls.site_performance(),
            },
            'recent_activity': [
                dict(item.to_dict(include_audit_fields=False),
                     creator_name=item.created_by.full_name if item.created_by else 'Unknown')
                for item in recent
            ],
        }

    @classmethod
    def work_queue(cls, actor: Actor) -> Dict[str, Any]:
        """Counts of the statuses that currently wait on the actor's role"""
        counts = cls.status_counts(actor)
        queue = WORK_QUEUES.get(actor.role, WORK_QUEUES[MANAGER])
        return {
            'role': actor.role,
            'waiting': {status: counts.get(status, 0) for status in sorted(queue)},
            'total_waiting': sum(counts.get(status, 0) for status in queue),
        }

    @classmethod
    def for_actor(cls, actor: Actor) -> Dict[str, Any]:
        data = {'work_queue': cls.work_queue(actor), 'status_counts': cls.status_counts(actor)}
        if actor.has_role(MANAGER):
            data.update(cls.manager_overview(actor))
        return data
