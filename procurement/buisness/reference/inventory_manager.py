from typing import Any, Dict, Iterable, List, Optional

from procurement import db
from procurement.buisness.core.actor import Actor, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.data.core.inventory_item import InventoryItem
from procurement.data.core.vendor import Vendor
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.reference.inventory_manager")


class InventoryManager:
    """
    Central inventory master list maintenance.

    Stock levels also move through purchasing: direct-delivery POs draw stock and
    final deliveries add it back (see DeliveryTracker and PurchaseOrderFactory).
    """

    def __init__(self, inventory_item_id: int):
        self.inventory_item_id = inventory_item_id

    @property
    def inventory_item(self) -> InventoryItem:
        item = db.session.get(InventoryItem, self.inventory_item_id)
        if item is None or not item.is_active:
            raise NotFoundError("Inventory item not found")
        return item

    @staticmethod
    def _require_purchase_officer(actor: Actor, verb: str) -> None:
        if not actor.has_role(PURCHASE_OFFICER):
            raise ForbiddenError(f"Unauthorized: Only Purchase Officers can {verb} inventory items")

    @staticmethod
    def _resolve_vendors(vendor_ids: Iterable[Any]) -> List[Vendor]:
        vendors = []
        for vendor_id in vendor_ids:
            try:
                vendor = db.session.get(Vendor, int(vendor_id))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid vendor id: {vendor_id}") from None
            if vendor is None or not vendor.is_active:
                raise NotFoundError(f"Vendor not found: {vendor_id}")
            if vendor not in vendors:
                vendors.append(vendor)
        return vendors

    @staticmethod
    def _clean(data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
        cleaned = {}
        if 'item_name' in data or not partial:
            cleaned['item_name'] = PayloadValidationPolicy.require_text(data.get('item_name'), "Item name is required")
        for field in ('description', 'hsn_sac_code', 'unit'):
            if field in data:
                cleaned[field] = PayloadValidationPolicy.optional_text(data[field])
        if data.get('central_stock') is not None:
            try:
                stock = float(data['central_stock'])
            except (TypeError, ValueError):
                raise ValidationError("Central stock must be a number") from None
            if stock < 0:
                raise ValidationError("Central stock cannot be negative")
            cleaned['central_stock'] = stock
        return cleaned

    @staticmethod
    def _check_unique_name(item_name: str, exclude_id: Optional[int] = None) -> None:
        existing = InventoryItem.find_by_name(item_name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f'Inventory item "{item_name}" already exists')

    @classmethod
    def create(cls, actor: Actor, data: Dict[str, Any]) -> InventoryItem:
        actor = Actor.require(actor)
        with unit_of_work("create_inventory_item"):
            cls._require_purchase_officer(actor, "create")
            cleaned = cls._clean(data, partial=False)
            cls._check_unique_name(cleaned['item_name'])
            item = InventoryItem(created_by_id=actor.user_id, updated_by_id=actor.user_id, **cleaned)
            item.vendors = cls._resolve_vendors(data.get('vendor_ids') or [])
            db.session.add(item)
            db.session.flush()
            logger.info(f"Created inventory item: {item.item_name} (ID: {item.id}, stock {item.central_stock:g})")
        return item

    def update(self, actor: Actor, data: Dict[str, Any]) -> InventoryItem:
        actor = Actor.require(actor)
        with unit_of_work("update_inventory_item"):
            self._require_purchase_officer(actor, "update")
            item = self.inventory_item
            cleaned = self._clean(data, partial=True)
            if 'item_name' in cleaned:
                self._check_unique_name(cleaned['item_name'], exclude_id=item.id)
            for key, value in cleaned.items():
                setattr(item, key, value)
            if 'vendor_ids' in data:
                item.vendors = self._resolve_vendors(data.get('vendor_ids') or [])
            item.touch(actor.user_id)
            logger.info(f"Updated inventory item {item.id}")
        return item

    def delete(self, actor: Actor) -> InventoryItem:
        """Soft delete"""
        actor = Actor.require(actor)
        with unit_of_work("delete_inventory_item"):
            self._require_purchase_officer(actor, "delete")
            item = self.inventory_item
            item.is_active = False
            item.touch(actor.user_id)
            logger.info(f"Deactivated inventory item {item.item_name}")
        return item

    @classmethod
    def link_vendor(cls, actor: Actor, item_name: str, vendor_id: int) -> InventoryItem:
        """Attach a vendor to the inventory item with this name (no-op when already linked)"""
        actor = Actor.require(actor)
        with unit_of_work("link_vendor"):
            if not actor.has_role(PURCHASE_OFFICER):
                raise ForbiddenError("Unauthorized: Only Purchase Officers can link vendors to items")
            item = InventoryItem.find_by_name(item_name or '')
            if item is None:
                raise NotFoundError("Inventory item not found")
            (vendor,) = cls._resolve_vendors([vendor_id])
            if vendor not in item.vendors:
                item.vendors.append(vendor)
                item.touch(actor.user_id)
                logger.info(f"Linked vendor {vendor.company_name} to {item.item_name}")
        return item
