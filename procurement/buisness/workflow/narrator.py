"""
WorkflowNarrator - audit note composer for request lifecycle events

Every transition produces a consistent machine-written note.
Keeps audit narrative formatting out of transition logic.
"""

from typing import Optional


class WorkflowNarrator:
    """
    Composes audit note text for request lifecycle events.

    All methods return content for a RequestNote row.
    """

    @staticmethod
    def draft_sent(display_number: str, item_count: int) -> str:
        return f"Request {display_number} sent for approval ({item_count} item(s))"

    @staticmethod
    def approved(item_count: int) -> str:
        return f"Approved ({item_count} item(s))"

    @staticmethod
    def rejected(reason: str) -> str:
        return f"Rejected: {reason}"

    @staticmethod
    def routed_direct(direct_action: str) -> str:
        target = "purchase order" if direct_action == 'po' else "delivery"
        return f"Approved for direct {target}"

    @staticmethod
    def details_updated(item_name: str, changes: dict) -> str:
        parts = ", ".join(f"{field}: {old} → {new}" for field, (old, new) in sorted(changes.items()))
        return f"Details updated for {item_name} | {parts}"

    @staticmethod
    def direct_to_po(item_name: str) -> str:
        return f"{item_name}: cost comparison skipped, moved to purchase order"

    @staticmethod
    def cost_comparison_submitted(item_name: str, quote_count: int) -> str:
        return f"Cost comparison submitted for {item_name} with {quote_count} vendor quote(s)"

    @staticmethod
    def cost_comparison_resubmitted(item_name: str, quote_count: int, attempt: int) -> str:
        return (
            f"Cost comparison resubmitted for {item_name} with {quote_count} vendor quote(s) "
            f"(resubmission #{attempt})"
        )

    @staticmethod
    def cost_comparison_approved(item_name: str, vendor_name: str, notes: Optional[str] = None) -> str:
        comment = f"Cost comparison approved for {item_name} | Vendor: {vendor_name}"
        if notes:
            comment += f" | Notes: {notes}"
        return comment

    @staticmethod
    def cost_comparison_rejected(item_name: str, notes: str) -> str:
        return f"Cost comparison rejected for {item_name} | Reason: {notes}"

    @staticmethod
    def po_issued(po_number: str, vendor_name: str, item_name: str, direct: bool) -> str:
        route = "direct from inventory" if direct else "pending vendor dispatch"
        return f"PO {po_number} issued to {vendor_name} for {item_name} ({route})"

    @staticmethod
    def po_status_changed(po_number: str, from_status: str, to_status: str, reason: Optional[str] = None) -> str:
        comment = f"PO {po_number} status changed: {from_status} → {to_status}"
        if reason:
            comment += f" | Reason: {reason}"
        return comment

    @staticmethod
    def delivery_confirmed(delivery_number: str, item_name: str, quantity: float, unit: str,
                           cumulative: float, requested: float) -> str:
        return (
            f"{delivery_number}: received {quantity:g} {unit} of {item_name} "
            f"({cumulative:g}/{requested:g} delivered)"
        )

    @staticmethod
    def stock_incremented(item_name: str, quantity: float, new_stock: float) -> str:
        return f"Inventory stock for {item_name} increased by {quantity:g} (now {new_stock:g})"
