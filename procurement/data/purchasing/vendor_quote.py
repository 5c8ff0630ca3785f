from procurement import db
from procurement.buisness.core.data_insertion_mixin import DataInsertionMixin


class VendorQuote(DataInsertionMixin, db.Model):
    __tablename__ = 'vendor_quotes'
    __table_args__ = (
        db.UniqueConstraint('cost_comparison_id', 'vendor_id', name='uq_vendor_quote_vendor'),
    )

    id = db.Column(db.Integer, primary_key=True)
    cost_comparison_id = db.Column(db.Integer, db.ForeignKey('cost_comparisons.id'), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(30), nullable=True)
    discount_percent = db.Column(db.Float, nullable=True)
    gst_percent = db.Column(db.Float, nullable=True)

    cost_comparison = db.relationship('CostComparison', back_populates='quotes')
    vendor = db.relationship('Vendor')

    def total_for(self, quantity: float) -> float:
        """
        unit_price x quantity, less any discount, plus any GST.

        Returns:
            float: rounded to 2 decimals
        """
        total = (self.unit_price or 0.0) * (quantity or 0.0)
        if self.discount_percent:
            total -= total * self.discount_percent / 100.0
        if self.gst_percent:
            total += total * self.gst_percent / 100.0
        return round(total, 2)

    def __repr__(self):
        return f'<VendorQuote vendor={self.vendor_id} @ {self.unit_price}>'
