from procurement import db
from procurement.data.core.user_created_base import UserCreatedBase


class CostComparison(UserCreatedBase):
    """Vendor quote comparison for a single request item (at most one per item)"""
    __tablename__ = 'cost_comparisons'

    request_item_id = db.Column(db.Integer, db.ForeignKey('request_items.id'), nullable=False, unique=True)
    status = db.Column(db.String(20), nullable=False, default='draft')
    is_direct_delivery = db.Column(db.Boolean, default=False, nullable=False)

    # Manager review
    selected_vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True)
    manager_notes = db.Column(db.Text, nullable=True)
    approved_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    submitted_at = db.Column(db.DateTime, nullable=True)
    resubmission_count = db.Column(db.Integer, nullable=False, default=0)

    # Relationships
    request_item = db.relationship('RequestItem')
    selected_vendor = db.relationship('Vendor', foreign_keys=[selected_vendor_id])
    quotes = db.relationship(
        'VendorQuote',
        back_populates='cost_comparison',
        cascade='all, delete-orphan',
        order_by='VendorQuote.id',
    )

    @property
    def vendor_ids(self) -> list:
        return [q.vendor_id for q in self.quotes]

    def quote_for(self, vendor_id: int):
        return next((q for q in self.quotes if q.vendor_id == vendor_id), None)

    def vendor_totals(self) -> list:
        """
        Per-vendor totals for the parent request's quantity, cheapest first.

        Returns:
            list[dict]: {vendor_id, unit_price, total}
        """
        quantity = self.request_item.quantity if self.request_item else 0.0
        totals = [
            {'vendor_id': q.vendor_id, 'unit_price': q.unit_price, 'total': q.total_for(quantity)}
            for q in self.quotes
        ]
        return sorted(totals, key=lambda t: (t['total'], t['vendor_id']))

    def lowest_quote(self):
        if not self.quotes:
            return None
        quantity = self.request_item.quantity
        return min(self.quotes, key=lambda q: (q.total_for(quantity), q.vendor_id))

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['vendor_quotes'] = [q.to_dict(include_audit_fields=False) for q in self.quotes]
        data['vendor_totals'] = self.vendor_totals()
        return data

    def __repr__(self):
        return f'<CostComparison item={self.request_item_id} [{self.status}] quotes={len(self.quotes)}>'
