"""
Request Ownership Policy

Drafts belong to the site engineer who created them: only the creator may edit,
send, delete or even see a draft. Site engineers only see their own requests.
"""

from procurement.buisness.core.actor import Actor, SITE_ENGINEER
from procurement.buisness.workflow.errors import ForbiddenError


class RequestOwnershipPolicy:

    @classmethod
    def check(cls, group, actor: Actor, verb: str = "modify") -> None:
        """
        Raises:
            ForbiddenError: actor did not create the request
        """
        if group.creator_id != actor.user_id:
            raise ForbiddenError(f"Only the creator of request {group.display_number} can {verb} it")

    @classmethod
    def check_visible(cls, group, actor: Actor) -> None:
        """
        Raises:
            ForbiddenError: the request is someone else's draft, or a site engineer's request
                            belonging to another user
        """
        if group.creator_id == actor.user_id:
            return
        if group.is_draft or actor.role == SITE_ENGINEER:
            raise ForbiddenError(f"You do not have access to request {group.display_number}")
