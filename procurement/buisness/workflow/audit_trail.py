"""
AuditTrail - writes append-only RequestNote rows for a request group

Notes are added to the current session; the caller's unit of work commits them
together with the transition they describe.
"""

from typing import List, Optional

from procurement import db
from procurement.buisness.core.actor import Actor
from procurement.buisness.workflow.errors import ValidationError
from procurement.data.requests.request_note import RequestNote
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.workflow.audit_trail")

MAX_NOTE_LENGTH = 2000


class AuditTrail:

    @staticmethod
    def add(request_number: str, actor: Actor, status: str, content: str,
            note_type: str = RequestNote.TYPE_NOTE) -> RequestNote:
        content = (content or '').strip()
        if not content:
            raise ValidationError("Note content cannot be empty")
        if len(content) > MAX_NOTE_LENGTH:
            raise ValidationError(f"Note content cannot exceed {MAX_NOTE_LENGTH} characters")

        note = RequestNote(
            request_number=request_number,
            user_id=actor.user_id,
            role=actor.role,
            status=status,
            type=note_type,
            content=content,
        )
        db.session.add(note)
        logger.debug(f"Audit note queued for {request_number} [{note_type}/{status}]",
                     extra={"request_number": request_number, "user_id": actor.user_id})
        return note

    @staticmethod
    def add_unless_repeated(request_number: str, actor: Actor, status: str, content: str) -> Optional[RequestNote]:
        """Add a note unless it repeats the latest note of the request verbatim"""
        latest = AuditTrail.latest(request_number)
        if latest is not None and latest.content == (content or '').strip():
            logger.debug(f"Skipped repeated note for {request_number}")
            return None
        return AuditTrail.add(request_number, actor, status, content)

    @staticmethod
    def latest(request_number: str) -> Optional[RequestNote]:
        return (
            RequestNote.query
            .filter_by(request_number=request_number)
            .order_by(RequestNote.created_at.desc(), RequestNote.id.desc())
            .first()
        )

    @staticmethod
    def copy_notes(from_number: str, to_number: str) -> List[RequestNote]:
        """
        Copy every note of from_number onto to_number.

        Originals stay in place; notes are never moved or rewritten.
        """
        originals = (
            RequestNote.query
            .filter_by(request_number=from_number)
            .order_by(RequestNote.created_at, RequestNote.id)
            .all()
        )
        copies = []
        for note in originals:
            copy = RequestNote(
                request_number=to_number,
                user_id=note.user_id,
                role=note.role,
                status=note.status,
                type=note.type,
                content=note.content,
                created_at=note.created_at,
            )
            db.session.add(copy)
            copies.append(copy)
        if copies:
            logger.info(f"Copied {len(copies)} note(s) from {from_number} to {to_number}")
        return copies
