"""
Actor - the calling identity as seen by the business layer

Routes resolve the Flask-Login user into an Actor; managers never touch current_user.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from procurement.buisness.workflow.errors import UnauthorizedError


SITE_ENGINEER = 'site_engineer'
MANAGER = 'manager'
PURCHASE_OFFICER = 'purchase_officer'
ADMIN = 'admin'

ALL_ROLES = frozenset({SITE_ENGINEER, MANAGER, PURCHASE_OFFICER, ADMIN})


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str
    assigned_site_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user) -> 'Actor':
        if user is None or not getattr(user, 'is_authenticated', False):
            raise UnauthorizedError("Not authenticated")
        if not user.is_active:
            raise UnauthorizedError("User account is disabled")
        return cls(
            user_id=user.id,
            role=user.role,
            assigned_site_ids=frozenset(site.id for site in user.assigned_sites),
        )

    @staticmethod
    def require(actor: Optional['Actor']) -> 'Actor':
        if actor is None:
            raise UnauthorizedError("Not authenticated")
        return actor

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    def has_role(self, *roles: str) -> bool:
        """Admins pass every role gate"""
        return self.is_admin or self.role in roles

    def is_assigned_to(self, site_id: int) -> bool:
        return site_id in self.assigned_site_ids
