"""
Audit Log Service

Read access to the append-only RequestNote trail: the notes of one request and
the delivery (GRN) log across requests.
"""

from typing import List, Optional

from flask import current_app
from sqlalchemy import select

from procurement.buisness.core.actor import Actor, SITE_ENGINEER
from procurement.buisness.workflow.request_group import RequestGroup
from procurement.data.requests.request_item import RequestItem
from procurement.data.requests.request_note import RequestNote

DEFAULT_GRN_LOG_LIMIT = 500


class AuditLogService:

    @staticmethod
    def get_notes(request_number: str, note_type: Optional[str] = None) -> List[RequestNote]:
        """All notes of a request, newest first"""
        query = RequestNote.query.filter_by(request_number=RequestGroup.normalize_number(request_number))
        if note_type:
            query = query.filter_by(type=note_type)
        return query.order_by(RequestNote.created_at.desc(), RequestNote.id.desc()).all()

    @staticmethod
    def get_all_grn_logs(actor: Actor, limit: Optional[int] = None) -> List[RequestNote]:
        """
        Delivery log entries across requests, newest first.

        Site engineers only see logs of requests they created.
        """
        if limit is None:
            limit = current_app.config.get('GRN_LOG_LIMIT', DEFAULT_GRN_LOG_LIMIT)
        query = RequestNote.query.filter_by(type=RequestNote.TYPE_LOG)
        if actor.role == SITE_ENGINEER:
            own_numbers = (
                select(RequestItem.request_number)
                .where(RequestItem.created_by_id == actor.user_id)
                .distinct()
            )
            query = query.filter(RequestNote.request_number.in_(own_numbers))
        return query.order_by(RequestNote.created_at.desc(), RequestNote.id.desc()).limit(limit).all()
