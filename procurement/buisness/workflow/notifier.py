"""
Notifier - in-app notifications written alongside workflow transitions
"""

from typing import List, Optional

from procurement import db
from procurement.buisness.core.actor import Actor
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.errors import NotFoundError
from procurement.data.core.notification import Notification
from procurement.data.core.user_info.user import User
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.workflow.notifier")


class Notifier:

    @staticmethod
    def notify_user(user_id: int, title: str, message: str, type: str,
                    link: Optional[str] = None, entity_type: Optional[str] = None,
                    entity_id: Optional[int] = None) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.session.add(notification)
        return notification

    @staticmethod
    def notify_role(role: str, title: str, message: str, type: str,
                    link: Optional[str] = None, entity_type: Optional[str] = None,
                    entity_id: Optional[int] = None) -> List[Notification]:
        """Notify every active user holding role"""
        recipients = User.query.filter_by(role=role, is_active=True).all()
        notifications = [
            Notifier.notify_user(u.id, title, message, type, link, entity_type, entity_id)
            for u in recipients
        ]
        logger.debug(f"Queued '{type}' notification for {len(notifications)} {role}(s)")
        return notifications

    @staticmethod
    def for_user(user_id: int, unread_only: bool = False) -> List[Notification]:
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    @staticmethod
    def mark_read(actor: Actor, notification_id: int) -> Notification:
        """
        Raises:
            NotFoundError: no such notification for this user
        """
        actor = Actor.require(actor)
        with unit_of_work("mark_notification_read"):
            notification = db.session.get(Notification, notification_id)
            if notification is None or notification.user_id != actor.user_id:
                raise NotFoundError("Notification not found")
            notification.is_read = True
        return notification
