"""
User Manager (Core)
Provides a clean interface for managing user accounts.

Handles:
- User creation with role and site assignment
- User update operations and password changes
- Enabling, disabling and deleting users (manager only)
"""

from typing import Any, Dict, Iterable, List, Optional

from procurement import db
from procurement.buisness.core.actor import Actor, ALL_ROLES, MANAGER
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
from procurement.data.core.user_info.user import User
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.core.user_manager")

MIN_PASSWORD_LENGTH = 8


class UserManager:
    """
    Core manager for user operations.

    Provides a clean interface for:
    - Creating users
    - Updating user information and assigned sites
    - Disabling and enabling users
    - Deleting users that never raised a request
    """

    def __init__(self, user_id: int):
        self.user_id = user_id

    @property
    def user(self) -> User:
        user = db.session.get(User, self.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _require_manager(actor: Actor, verb: str) -> None:
        if not actor.has_role(MANAGER):
            raise ForbiddenError(f"Unauthorized: Only managers can {verb} users")

    @staticmethod
    def _validate_password(password: Any) -> str:
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        return password

    @staticmethod
    def _validate_role(role: Any) -> str:
        if role not in ALL_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(sorted(ALL_ROLES))}")
        return role

    @staticmethod
    def resolve_sites(site_ids: Optional[Iterable[Any]]) -> List[Site]:
        """Only active sites can be assigned"""
        sites = []
        for site_id in site_ids or []:
            try:
                site = db.session.get(Site, int(site_id))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid site id: {site_id}") from None
            if site is None or not site.is_active:
                raise NotFoundError(f"Site {site_id} not found or inactive")
            if site not in sites:
                sites.append(site)
        return sites

    @classmethod
    def create(cls, actor: Optional[Actor], data: Dict[str, Any]) -> User:
        """
        Create a new user.

        Args:
            actor: the manager creating the account; None only when seeding the first manager
            data: username, full_name, password, role, optional phone_number, address, site_ids

        Raises:
            ConflictError: If the username already exists
        """
        with unit_of_work("create_user"):
            if actor is not None:
                cls._require_manager(actor, "create")
            username = PayloadValidationPolicy.require_text(data.get('username'), "Username is required").lower()
            if User.query.filter_by(username=username).first():
                raise ConflictError("Username already exists")

            user = User(
                username=username,
                full_name=PayloadValidationPolicy.require_text(data.get('full_name'), "Full name is required"),
                role=cls._validate_role(data.get('role')),
                phone_number=PayloadValidationPolicy.optional_text(data.get('phone_number')),
                address=PayloadValidationPolicy.optional_text(data.get('address')),
                is_active=True,
            )
            user.set_password(cls._validate_password(data.get('password')))
            user.assigned_sites = cls.resolve_sites(data.get('site_ids'))
            db.session.add(user)
            db.session.flush()
            logger.info(f"Created user: {user.username} (ID: {user.id}, role {user.role})")
        return user

    def update(self, actor: Actor, data: Dict[str, Any]) -> User:
        actor = Actor.require(actor)
        with unit_of_work("update_user"):
            self._require_manager(actor, "update")
            user = self.user
            if 'full_name' in data:
                user.full_name = PayloadValidationPolicy.require_text(data['full_name'], "Full name is required")
            if 'role' in data:
                user.role = self._validate_role(data['role'])
            for field in ('phone_number', 'address'):
                if field in data:
                    setattr(user, field, PayloadValidationPolicy.optional_text(data[field]))
            if 'site_ids' in data:
                user.assigned_sites = self.resolve_sites(data['site_ids'])
            if data.get('password'):
                user.set_password(self._validate_password(data['password']))
            logger.info(f"Updated user: {user.username} (ID: {user.id})")
        return user

    def set_active(self, actor: Actor, is_active: bool) -> User:
        actor = Actor.require(actor)
        with unit_of_work("set_user_active"):
            self._require_manager(actor, "disable" if not is_active else "enable")
            user = self.user
            if not is_active and user.id == actor.user_id:
                raise ValidationError("Cannot disable your own account")
            user.is_active = bool(is_active)
            logger.info(f"User {user.username} is now {'active' if user.is_active else 'disabled'}")
        return user

    def change_password(self, actor: Actor, current_password: str, new_password: str) -> User:
        """Self-service password change"""
        actor = Actor.require(actor)
        with unit_of_work("change_password"):
            if actor.user_id != self.user_id:
                raise ForbiddenError("Unauthorized: You can only update your own profile")
            user = self.user
            if not user.check_password(current_password or ''):
                raise ValidationError("Current password is incorrect")
            user.set_password(self._validate_password(new_password))
            logger.info(f"Password changed for user {user.username}")
        return user

    def delete(self, actor: Actor) -> None:
        actor = Actor.require(actor)
        with unit_of_work("delete_user"):
            self._require_manager(actor, "delete")
            user = self.user
            if user.id == actor.user_id:
                raise ValidationError("You cannot delete yourself")
            if RequestItem.query.filter_by(created_by_id=user.id).count() > 0:
                raise UsageConflictError("Cannot delete user with requests; disable the account instead")
            db.session.delete(user)
            logger.info(f"Deleted user: {user.username} (ID: {user.id})")
