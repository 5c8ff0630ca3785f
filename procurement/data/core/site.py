from procurement.data.core.user_created_base import UserCreatedBase
from procurement import db


class Site(UserCreatedBase):
    __tablename__ = 'sites'

    TYPES = ('site', 'inventory', 'other')

    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(30), nullable=True)
    address = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), nullable=False, default='site')
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f'<Site {self.name}>'
