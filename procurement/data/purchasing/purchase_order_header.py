from procurement import db
from procurement.data.core.user_created_base import UserCreatedBase
from datetime import date


class PurchaseOrderHeader(UserCreatedBase):
    """Purchase order header - one vendor, one delivery site, one or more request item lines"""
    __tablename__ = 'purchase_orders'

    # Basic Fields
    po_number = db.Column(db.String(30), unique=True, nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=False)
    delivery_site_id = db.Column(db.Integer, db.ForeignKey('sites.id'), nullable=False)
    is_direct_delivery = db.Column(db.Boolean, default=False, nullable=False)

    # Dates
    order_date = db.Column(db.Date, nullable=False, default=date.today)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    actual_delivery_date = db.Column(db.Date, nullable=True)
    valid_till = db.Column(db.Date, nullable=True)

    # Status and Costs
    status = db.Column(db.String(20), nullable=False, default='pending_po')
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    gst_tax_rate = db.Column(db.Float, nullable=True)

    # Additional Info
    notes = db.Column(db.Text, nullable=True)
    status_reason = db.Column(db.Text, nullable=True)

    # Relationships
    vendor = db.relationship('Vendor')
    delivery_site = db.relationship('Site')
    purchase_order_lines = db.relationship(
        'PurchaseOrderLine',
        back_populates='purchase_order',
        cascade='all, delete-orphan',
        order_by='PurchaseOrderLine.line_number',
    )

    def __repr__(self):
        return f'<PurchaseOrderHeader {self.po_number}: vendor {self.vendor_id} [{self.status}]>'

    # Properties
    @property
    def is_cancelled(self):
        return self.status == 'cancelled'

    @property
    def is_delivered(self):
        return self.status == 'delivered'

    @property
    def lines_count(self):
        return len(self.purchase_order_lines)

    @property
    def is_fully_delivered(self):
        return all(line.quantity_remaining <= 0 for line in self.purchase_order_lines)

    @property
    def tax_amount(self):
        """GST on top of total_amount; never folded into total_amount"""
        return round(self.total_amount * (self.gst_tax_rate or 0.0) / 100.0, 2)

    @property
    def grand_total(self):
        return round(self.total_amount + self.tax_amount, 2)

    # Methods
    def calculate_total(self):
        """total_amount = sum of line_total (unit_price x quantity)"""
        self.total_amount = round(sum(line.line_total for line in self.purchase_order_lines), 2)
        return self.total_amount

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['vendor_name'] = self.vendor.company_name if self.vendor else None
        data['delivery_site_name'] = self.delivery_site.name if self.delivery_site else None
        data['tax_amount'] = self.tax_amount
        data['grand_total'] = self.grand_total
        data['items'] = [line.to_dict(include_audit_fields=False) for line in self.purchase_order_lines]
        return data
