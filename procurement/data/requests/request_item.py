from procurement import db
from procurement.data.core.user_created_base import UserCreatedBase


class RequestItem(UserCreatedBase):
    """
    One material line within a logical request.

    Items sharing request_number form a request group. `version` is the
    optimistic-lock counter: SQLAlchemy adds it to every UPDATE's WHERE clause
    and bumps it, so a write based on a stale read fails with StaleDataError.
    """
    __tablename__ = 'request_items'

    request_number = db.Column(db.String(20), nullable=False, index=True)
    item_order = db.Column(db.Integer, nullable=False, default=1)

    # Item details
    item_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    specs_brand = db.Column(db.String(200), nullable=True)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(30), nullable=False)
    required_by = db.Column(db.Date, nullable=True)
    is_urgent = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    photo_urls = db.Column(db.JSON, nullable=False, default=list)

    site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False)
    status = db.Column(db.String(30), nullable=False, default='draft', index=True)

    # Manager decision
    approved_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    direct_action = db.Column(db.String(20), nullable=True)  # po / delivery

    # Delivery progress
    delivered_quantity = db.Column(db.Float, nullable=False, default=0.0)
    delivery_marked_at = db.Column(db.DateTime, nullable=True)

    version = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {'version_id_col': version}

    # Relationships
    site = db.relationship('Site')
    approved_by = db.relationship('User', foreign_keys=[approved_by_id])

    @property
    def is_draft(self) -> bool:
        return self.status == 'draft'

    @property
    def is_pending(self) -> bool:
        return self.status == 'pending'

    @property
    def is_delivered(self) -> bool:
        return self.status == 'delivered'

    @property
    def display_number(self) -> str:
        """Request number as shown to users ("REQ-001"); drafts keep their DRAFT- prefix"""
        if self.request_number.startswith('DRAFT-'):
            return self.request_number
        return f"REQ-{self.request_number}"

    @property
    def quantity_remaining(self) -> float:
        return max((self.quantity or 0.0) - (self.delivered_quantity or 0.0), 0.0)

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['display_number'] = self.display_number
        data['site_name'] = self.site.name if self.site else None
        data['quantity_remaining'] = self.quantity_remaining
        return data

    def __repr__(self):
        return f'<RequestItem {self.request_number}#{self.item_order} {self.item_name} [{self.status}]>'
