"""
Site Assignment Policy

A site engineer may only raise requests for, and confirm deliveries at, active
sites they are assigned to.
"""

from procurement import db
from procurement.buisness.core.actor import Actor, SITE_ENGINEER
from procurement.buisness.workflow.errors import ForbiddenError, NotFoundError
from procurement.data.core.site import Site


class SiteAssignmentPolicy:

    @classmethod
    def resolve_active_site(cls, site_id) -> Site:
        """
        Raises:
            NotFoundError: site does not exist or is inactive
        """
        site = db.session.get(Site, site_id) if site_id is not None else None
        if site is None:
            raise NotFoundError("Site not found")
        if not site.is_active:
            raise NotFoundError(f"Site {site.name} is inactive")
        return site

    @classmethod
    def check(cls, site_id, actor: Actor) -> Site:
        """
        Resolve an active site and require site engineers to be assigned to it.

        Returns:
            Site: the resolved site
        """
        site = cls.resolve_active_site(site_id)
        if actor.role == SITE_ENGINEER and not actor.is_assigned_to(site.id):
            raise ForbiddenError(f"You are not assigned to site {site.name}")
        return site
