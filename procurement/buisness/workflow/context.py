"""
RequestContext - Domain Facade for the request aggregate

Acts as the aggregate controller and provides an intention-revealing interface
for request operations. Each operation runs the RequestManager mutation inside
one unit of work, then rebuilds the group from the committed state.
"""

from typing import Any, Dict, List, Optional

from procurement.buisness.core.actor import Actor
from procurement.buisness.core.unit_of_work import unit_of_work
from procurement.buisness.workflow.request_group import RequestGroup
from procurement.buisness.workflow.request_manager import RequestManager
from procurement.buisness.workflow.state_machine import RequestStateMachine
from procurement.data.requests.request_note import RequestNote


class RequestContext:
    """
    Domain Facade for a request group.

    Pattern: Domain Facade / Aggregate Controller
    """

    def __init__(self, request_number: str):
        self.request_number = RequestGroup.normalize_number(request_number)
        self._build()

    def _build(self) -> None:
        """(Re)load the group and its manager from the session"""
        self.group = RequestGroup.load(self.request_number)
        self.request_manager = RequestManager(self)

    @classmethod
    def load(cls, request_number: str) -> 'RequestContext':
        return cls(request_number)

    @classmethod
    def for_item(cls, item_id: int) -> 'RequestContext':
        group = RequestGroup.for_item(item_id)
        return cls(group.request_number)

    # ========== Read Model Helpers ==========

    @property
    def items(self):
        return self.group.items

    @property
    def status(self) -> Optional[str]:
        return self.group.status

    @property
    def notes(self) -> List[RequestNote]:
        return (
            RequestNote.query
            .filter_by(request_number=self.request_number)
            .order_by(RequestNote.created_at.desc(), RequestNote.id.desc())
            .all()
        )

    def allowed_actions(self, actor: Actor) -> Dict[int, List[str]]:
        """item id -> actions the actor could take right now"""
        return {
            item.id: RequestStateMachine.allowed_actions(actor, item.status)
            for item in self.group.items
        }

    # ========== Draft Lifecycle ==========

    @classmethod
    def create_draft(cls, actor: Actor, site_id: int, items: Any, required_by: Any = None,
                     notes: Optional[str] = None, is_urgent: bool = False) -> 'RequestContext':
        with unit_of_work("create_draft"):
            request_number = RequestManager.create_draft(
                Actor.require(actor), site_id, items,
                required_by=required_by, notes=notes, is_urgent=is_urgent,
            )
        return cls(request_number)

    def update_draft(self, actor: Actor, site_id: int, items: Any, required_by: Any = None,
                     notes: Optional[str] = None, is_urgent: bool = False) -> 'RequestContext':
        with unit_of_work("update_draft"):
            self.request_manager.update_draft(
                Actor.require(actor), site_id, items,
                required_by=required_by, notes=notes, is_urgent=is_urgent,
            )
        self._build()
        return self

    def send(self, actor: Actor, order_note: Optional[str] = None,
             expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("send_draft"):
            new_number = self.request_manager.send(Actor.require(actor), order_note, expected_version)
        self.request_number = new_number
        self._build()
        return self

    def delete(self, actor: Actor) -> int:
        with unit_of_work("delete_draft"):
            removed = self.request_manager.delete(Actor.require(actor))
        return removed

    # ========== Manager Decision ==========

    def approve(self, actor: Actor, expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("approve_request"):
            self.request_manager.approve(Actor.require(actor), expected_version)
        self._build()
        return self

    def reject(self, actor: Actor, reason: Optional[str],
               expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("reject_request"):
            self.request_manager.reject(Actor.require(actor), reason, expected_version)
        self._build()
        return self

    def route_direct(self, actor: Actor, direct_action: str,
                     expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("route_direct"):
            self.request_manager.route_direct(Actor.require(actor), direct_action, expected_version)
        self._build()
        return self

    # ========== Item Level ==========

    def update_details(self, actor: Actor, item_id: int, changes: Dict[str, Any],
                       expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("update_details"):
            self.request_manager.update_details(Actor.require(actor), item_id, changes, expected_version)
        self._build()
        return self

    def direct_to_po(self, actor: Actor, item_id: int,
                     expected_version: Optional[int] = None) -> 'RequestContext':
        with unit_of_work("direct_to_po"):
            self.request_manager.direct_to_po(Actor.require(actor), item_id, expected_version)
        self._build()
        return self

    # ========== Notes ==========

    def add_note(self, actor: Actor, content: str) -> RequestNote:
        with unit_of_work("add_note"):
            note = self.request_manager.add_note(Actor.require(actor), content)
        return note

    def to_dict(self, actor: Optional[Actor] = None) -> dict:
        data = self.group.to_dict()
        if actor is not None:
            data['allowed_actions'] = {str(k): v for k, v in self.allowed_actions(actor).items()}
        return data
