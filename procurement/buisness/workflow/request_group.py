"""
RequestGroup - read model over the RequestItem rows sharing one request number

Request-level actions (send, approve, reject) go through a RequestGroup; once items
diverge past approval they are handled individually as RequestItem rows.
"""

from typing import List, Optional

from procurement import db
from procurement.buisness.workflow.errors import NotFoundError
from procurement.data.requests.request_item import RequestItem


class RequestGroup:

    def __init__(self, request_number: str, items: List[RequestItem]):
        if not items:
            raise NotFoundError(f"Request {request_number} not found")
        self.request_number = request_number
        self.items = sorted(items, key=lambda i: (i.item_order, i.id or 0))

    @classmethod
    def load(cls, request_number: str) -> 'RequestGroup':
        request_number = cls.normalize_number(request_number)
        items = RequestItem.query.filter_by(request_number=request_number).all()
        return cls(request_number, items)

    @classmethod
    def for_item(cls, item_id: int) -> 'RequestGroup':
        item = db.session.get(RequestItem, item_id)
        if item is None:
            raise NotFoundError(f"Request item {item_id} not found")
        return cls.load(item.request_number)

    @staticmethod
    def normalize_number(request_number: str) -> str:
        """Accept display numbers ("REQ-001") as well as stored numbers ("001")"""
        request_number = (request_number or '').strip()
        if request_number.upper().startswith('REQ-'):
            return request_number[4:]
        return request_number

    @property
    def first(self) -> RequestItem:
        return self.items[0]

    @property
    def creator_id(self) -> Optional[int]:
        return self.first.created_by_id

    @property
    def site_id(self) -> int:
        return self.first.site_id

    @property
    def statuses(self) -> List[str]:
        return [item.status for item in self.items]

    @property
    def is_uniform(self) -> bool:
        return len(set(self.statuses)) == 1

    @property
    def status(self) -> Optional[str]:
        """Shared status while the group is uniform, None once items have diverged"""
        return self.first.status if self.is_uniform else None

    @property
    def is_draft(self) -> bool:
        return self.status == 'draft'

    @property
    def display_number(self) -> str:
        return self.first.display_number

    def item(self, item_id: int) -> RequestItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise NotFoundError(f"Request item {item_id} is not part of request {self.display_number}")

    def to_dict(self) -> dict:
        return {
            'request_number': self.request_number,
            'display_number': self.display_number,
            'status': self.status,
            'is_uniform': self.is_uniform,
            'creator_id': self.creator_id,
            'site_id': self.site_id,
            'site_name': self.first.site.name if self.first.site else None,
            'is_urgent': any(item.is_urgent for item in self.items),
            'created_at': self.first.created_at.isoformat() if self.first.created_at else None,
            'items': [item.to_dict() for item in self.items],
        }
