"""
Site Manager
Create, update, deactivate and delete sites.

Sites are referenced by user assignments and request items; deactivation and
deletion are refused while those references exist.
"""

from typing import Any, Dict, Optional

from sqlalchemy import func

from procurement import db
from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UsageConflictError,
    ValidationError,
)
from procurement.buisness.workflow.policies import PayloadValidationPolicy
from procurement.data.core.site import Site
from procurement.data.core.user_info.user import user_sites
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.reference.site_manager")

SITE_TEXT_FIELDS = ('code', 'address', 'description')


class SiteManager:
    """
    Business wrapper around a site.

    Rules:
    - managers and purchase officers create sites, only managers change them
    - names are unique, case-insensitively
    - a site assigned to users cannot be deactivated or deleted
    - a site used by any request cannot be deleted
    """

    def __init__(self, site_id: int):
        self.site_id = site_id

    @property
    def site(self) -> Site:
        site = db.session.get(Site, self.site_id)
        if site is None:
            raise NotFoundError("Site not found")
        return site

    # ========== Usage ==========

    def usage(self) -> Dict[str, Any]:
        assigned = db.session.query(func.count()).select_from(user_sites).filter(
            user_sites.c.site_id == self.site_id
        ).scalar()
        used_in_requests = RequestItem.query.filter_by(site_id=self.site_id).count()
        return {
            'is_in_use': bool(assigned or used_in_requests),
            'assigned_to_users': assigned,
            'used_in_requests': used_in_requests,
        }

    # ========== Helpers ==========

    @staticmethod
    def _check_unique_name(name: str, exclude_id: Optional[int] = None) -> None:
        query = Site.query.filter(func.lower(Site.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Site.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f'Location "{name}" already exists')

    @staticmethod
    def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
        cleaned = {}
        if 'name' in data:
            cleaned['name'] = ' '.join(PayloadValidationPolicy.require_text(data['name'], "Site name is required").split())
        if 'type' in data and data['type'] is not None:
            if data['type'] not in Site.TYPES:
                raise ValidationError(f"Site type must be one of: {', '.join(Site.TYPES)}")
            cleaned['type'] = data['type']
        for field in SITE_TEXT_FIELDS:
            if field in data:
                cleaned[field] = PayloadValidationPolicy.optional_text(data[field])
        return cleaned

    # ========== Mutations ==========

    @classmethod
    def create(cls, actor: Actor, data: Dict[str, Any]) -> Site:
        actor = Actor.require(actor)
        with unit_of_work("create_site"):
            if not actor.has_role(MANAGER, PURCHASE_OFFICER):
                raise ForbiddenError("Only managers and purchase officers can create sites")
            if 'name' not in data:
                raise ValidationError("Site name is required")
            cleaned = cls._clean(data)
            cls._check_unique_name(cleaned['name'])

            site = Site(created_by_id=actor.user_id, updated_by_id=actor.user_id, is_active=True, **cleaned)
            db.session.add(site)
            db.session.flush()
            logger.info(f"Created site: {site.name} (ID: {site.id})")
        return site

    def update(self, actor: Actor, data: Dict[str, Any]) -> Site:
        actor = Actor.require(actor)
        with unit_of_work("update_site"):
            if not actor.has_role(MANAGER):
                raise ForbiddenError("Only managers can update sites")
            site = self.site
            cleaned = self._clean(data)
            if 'name' in cleaned:
                self._check_unique_name(cleaned['name'], exclude_id=site.id)
            for key, value in cleaned.items():
                setattr(site, key, value)
            site.touch(actor.user_id)
            logger.info(f"Updated site {site.id}: {', '.join(sorted(cleaned)) or 'no changes'}")
        return site

    def toggle_active(self, actor: Actor) -> Site:
        actor = Actor.require(actor)
        with unit_of_work("toggle_site"):
            if not actor.has_role(MANAGER):
                raise ForbiddenError("Only managers can toggle site status")
            site = self.site
            if site.is_active:
                assigned = self.usage()['assigned_to_users']
                if assigned:
                    raise UsageConflictError(
                        f"Cannot deactivate site: It is assigned to {assigned} user(s). "
                        f"Please unassign the site first."
                    )
            site.is_active = not site.is_active
            site.touch(actor.user_id)
            logger.info(f"Site {site.name} is now {'active' if site.is_active else 'inactive'}")
        return site

    def delete(self, actor: Actor) -> None:
        actor = Actor.require(actor)
        with unit_of_work("delete_site"):
            if not actor.has_role(MANAGER):
                raise ForbiddenError("Only managers can delete sites")
            site = self.site
            usage = self.usage()
            if usage['assigned_to_users']:
                raise UsageConflictError(
                    f"Cannot delete site: It is assigned to {usage['assigned_to_users']} user(s). "
                    f"Please unassign the site first."
                )
            if usage['used_in_requests']:
                raise UsageConflictError(
                    f"Cannot delete site: It is used in {usage['used_in_requests']} request(s). "
                    f"Sites with associated requests cannot be deleted."
                )
            db.session.delete(site)
            logger.info(f"Deleted site {site.name} (ID: {site.id})")
