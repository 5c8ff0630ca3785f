"""
Vendor Manager
Create, update, deactivate and delete vendors (purchase officers only).
"""

import re
from typing import Any, Dict, Optional

from sqlalchemy import func

from procurement import db
from procurement.buisness.core.actor import Actor, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.errors import (
    ForbiddenError,
    NotFoundError,
    UsageConflictError,
    ValidationError,
)
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.data.core.inventory_item import inventory_item_vendors
from procurement.data.core.vendor import Vendor
from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader
from procurement.data.purchasing.vendor_quote import VendorQuote
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.reference.vendor_manager")

GST_PATTERN = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class VendorManager:

    def __init__(self, vendor_id: int):
        self.vendor_id = vendor_id

    @property
    def vendor(self) -> Vendor:
        vendor = db.session.get(Vendor, self.vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor not found")
        return vendor

    @staticmethod
    def _require_purchase_officer(actor: Actor, verb: str) -> None:
        if not actor.has_role(PURCHASE_OFFICER):
            raise ForbiddenError(f"Unauthorized: Only Purchase Officers can {verb} vendors")

    @staticmethod
    def validate_fields(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Validate vendor payload fields.

        GST numbers are upper-cased before the format check; email is trimmed.
        """
        cleaned = {}
        required = {
            'company_name': "Company name is required",
            'email': "Email is required",
            'gst_number': "GST number is required",
            'address': "Address is required",
        }
        for field, message in required.items():
            if field in data or not partial:
                cleaned[field] = PayloadValidationPolicy.require_text(data.get(field), message)

        if 'gst_number' in cleaned:
            cleaned['gst_number'] = cleaned['gst_number'].upper()
            if not GST_PATTERN.match(cleaned['gst_number']):
                raise ValidationError("Invalid GST number format. Expected format: 24AAAAA0000A1Z5")
        if 'email' in cleaned and not EMAIL_PATTERN.match(cleaned['email']):
            raise ValidationError("Invalid email format")

        for field in ('contact_name', 'phone'):
            if field in data:
                cleaned[field] = PayloadValidationPolicy.optional_text(data[field])
        return cleaned

    @staticmethod
    def _warn_on_duplicates(cleaned: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        """Duplicate GST numbers or emails are allowed but logged"""
        for field in ('gst_number', 'email'):
            if field not in cleaned:
                continue
            column = getattr(Vendor, field)
            query = Vendor.query.filter(func.lower(column) == cleaned[field].lower())
            if exclude_id is not None:
                query = query.filter(Vendor.id != exclude_id)
            existing = query.first()
            if existing is not None:
                logger.warning(f"Vendor {field} {cleaned[field]} is already used by vendor {existing.id}")

    def usage(self) -> Dict[str, int]:
        linked_items = db.session.query(func.count()).select_from(inventory_item_vendors).filter(
            inventory_item_vendors.c.vendor_id == self.vendor_id
        ).scalar()
        return {
            'inventory_items': linked_items,
            'quotes': VendorQuote.query.filter_by(vendor_id=self.vendor_id).count(),
            'purchase_orders': PurchaseOrderHeader.query.filter_by(vendor_id=self.vendor_id).count(),
        }

    # ========== Mutations ==========

    @classmethod
    def create(cls, actor: Actor, data: Dict[str, Any]) -> Vendor:
        actor = Actor.require(actor)
        with unit_of_work("create_vendor"):
            cls._require_purchase_officer(actor, "create")
            cleaned = cls.validate_fields(data)
            cls._warn_on_duplicates(cleaned)
            vendor = Vendor(is_active=True, created_by_id=actor.user_id, updated_by_id=actor.user_id, **cleaned)
            db.session.add(vendor)
            db.session.flush()
            logger.info(f"Created vendor: {vendor.company_name} (ID: {vendor.id})")
        return vendor

    def update(self, actor: Actor, data: Dict[str, Any]) -> Vendor:
        actor = Actor.require(actor)
        with unit_of_work("update_vendor"):
            self._require_purchase_officer(actor, "update")
            vendor = self.vendor
            cleaned = self.validate_fields(data, partial=True)
            self._warn_on_duplicates(cleaned, exclude_id=vendor.id)
            for key, value in cleaned.items():
                setattr(vendor, key, value)
            vendor.touch(actor.user_id)
            logger.info(f"Updated vendor {vendor.id}")
        return vendor

    def deactivate(self, actor: Actor) -> Vendor:
        """Soft delete: the vendor stays on existing quotes and POs"""
        actor = Actor.require(actor)
        with unit_of_work("deactivate_vendor"):
            self._require_purchase_officer(actor, "delete")
            vendor = self.vendor
            vendor.is_active = False
            vendor.touch(actor.user_id)
            logger.info(f"Deactivated vendor {vendor.company_name}")
        return vendor

    def delete(self, actor: Actor) -> None:
        """Hard delete, refused while inventory items, quotes or POs reference the vendor"""
        actor = Actor.require(actor)
        with unit_of_work("delete_vendor"):
            self._require_purchase_officer(actor, "delete")
            vendor = self.vendor
            usage = self.usage()
            if usage['inventory_items']:
                raise UsageConflictError(
                    f"Cannot delete vendor: It is linked to {usage['inventory_items']} inventory item(s). "
                    f"Unlink the vendor or deactivate it instead."
                )
            if usage['quotes'] or usage['purchase_orders']:
                raise UsageConflictError(
                    "Cannot delete vendor: It is referenced by cost comparisons or purchase orders. "
                    "Deactivate it instead."
                )
            db.session.delete(vendor)
            logger.info(f"Deleted vendor {vendor.company_name} (ID: {vendor.id})")
