from procurement import db
from procurement.data.core.user_created_base import UserCreatedBase


class PurchaseOrderLine(UserCreatedBase):
    """Individual request item ordered on a purchase order"""
    __tablename__ = 'purchase_order_lines'

    # Foreign Keys
    purchase_order_id = db.Column(db.Integer, db.ForeignKey('purchase_orders.id'), nullable=False)
    request_item_id = db.Column(db.Integer, db.ForeignKey('request_items.id'), nullable=False)
    cost_comparison_id = db.Column(db.Integer, db.ForeignKey('cost_comparisons.id'), nullable=True)

    # Quantities and Costs
    item_description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(30), nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    quantity_delivered = db.Column(db.Float, nullable=False, default=0.0)

    line_number = db.Column(db.Integer, nullable=False)

    # Relationships
    purchase_order = db.relationship('PurchaseOrderHeader', back_populates='purchase_order_lines')
    request_item = db.relationship('RequestItem')

    def __repr__(self):
        return f'<PurchaseOrderLine {self.id}: item {self.request_item_id}, Qty {self.quantity}>'

    @property
    def line_total(self) -> float:
        """
        Calculate the total cost for this line item.

        Returns:
            float: quantity * unit_price
        """
        return round((self.quantity or 0.0) * (self.unit_price or 0.0), 2)

    @property
    def quantity_remaining(self) -> float:
        return max((self.quantity or 0.0) - (self.quantity_delivered or 0.0), 0.0)

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['line_total'] = self.line_total
        data['quantity_remaining'] = self.quantity_remaining
        return data
