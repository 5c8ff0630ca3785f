from procurement import db
from procurement.data.core.user_created_base import UserCreatedBase


class Delivery(UserCreatedBase):
    """One delivery confirmation (delivery challan) against a request item"""
    __tablename__ = 'deliveries'

    TYPES = ('private', 'public', 'vendor')

    delivery_number = db.Column(db.String(30), unique=True, nullable=False)
    request_item_id = db.Column(db.Integer, db.ForeignKey('request_items.id'), nullable=False, index=True)
    purchase_order_line_id = db.Column(db.Integer, db.ForeignKey('purchase_order_lines.id'), nullable=True)

    quantity = db.Column(db.Float, nullable=False)
    cumulative_quantity = db.Column(db.Float, nullable=False)
    is_final = db.Column(db.Boolean, default=False, nullable=False)

    receiver_name = db.Column(db.String(120), nullable=True)
    delivery_type = db.Column(db.String(20), nullable=True)
    vehicle_number = db.Column(db.String(30), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    photo_urls = db.Column(db.JSON, nullable=False, default=list)

    request_item = db.relationship('RequestItem')
    purchase_order_line = db.relationship('PurchaseOrderLine')

    def __repr__(self):
        return f'<Delivery {self.delivery_number}: item {self.request_item_id} +{self.quantity}>'
