from procurement.data.core.user_created_base import UserCreatedBase
from procurement import db


class Vendor(UserCreatedBase):
    __tablename__ = 'vendors'

    company_name = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    gst_number = db.Column(db.String(15), nullable=False)
    address = db.Column(db.Text, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f'<Vendor {self.company_name}>'
