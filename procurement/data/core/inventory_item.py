from sqlalchemy import func

from procurement.data.core.user_created_base import UserCreatedBase
from procurement import db


inventory_item_vendors = db.Table(
    'inventory_item_vendors',
    db.Column('inventory_item_id', db.Integer, db.ForeignKey('inventory_items.id'), primary_key=True),
    db.Column('vendor_id', db.Integer, db.ForeignKey('vendors.id'), primary_key=True),
)


class InventoryItem(UserCreatedBase):
    """Central inventory master list; stock is adjusted by deliveries and direct POs"""
    __tablename__ = 'inventory_items'

    item_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    hsn_sac_code = db.Column(db.String(20), nullable=True)
    unit = db.Column(db.String(30), nullable=True)
    central_stock = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    vendors = db.relationship('Vendor', secondary=inventory_item_vendors, order_by='Vendor.company_name')

    @classmethod
    def find_by_name(cls, item_name: str):
        """Case-insensitive lookup among active inventory items"""
        return cls.query.filter(
            func.lower(cls.item_name) == item_name.strip().lower(),
            cls.is_active.is_(True),
        ).first()

    def to_dict(self, include_audit_fields=True):
        data = super().to_dict(include_audit_fields=include_audit_fields)
        data['vendor_ids'] = [v.id for v in self.vendors]
        return data

    def __repr__(self):
        return f'<InventoryItem {self.item_name}: {self.central_stock}>'
