from datetime import datetime

from sqlalchemy import event

from procurement import db
from procurement.buisness.core.data_insertion_mixin import DataInsertionMixin
from procurement.buisness.workflow.errors import ImmutableRecordError


class RequestNote(DataInsertionMixin, db.Model):
    """
    Append-only audit entry for a request group.

    type is 'note' for human or transition notes and 'log' for delivery (GRN) logs.
    Rows are never updated or deleted; the ORM listeners below enforce it.
    """
    __tablename__ = 'request_notes'

    TYPE_NOTE = 'note'
    TYPE_LOG = 'log'

    id = db.Column(db.Integer, primary_key=True)
    request_number = db.Column(db.String(20), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    type = db.Column(db.String(10), nullable=False, default=TYPE_NOTE)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship('User')

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['user_name'] = self.user.full_name if self.user else None
        return data

    def __repr__(self):
        return f'<RequestNote {self.request_number} [{self.type}/{self.status}]>'


@event.listens_for(RequestNote, 'before_update')
def _reject_note_update(mapper, connection, target):
    raise ImmutableRecordError(
        f"Audit note {target.id} for request {target.request_number} cannot be modified"
    )


@event.listens_for(RequestNote, 'before_delete')
def _reject_note_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"Audit note {target.id} for request {target.request_number} cannot be deleted"
    )
