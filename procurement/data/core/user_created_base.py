from procurement import db
from datetime import datetime
from sqlalchemy.orm import declared_attr
from procurement.buisness.core.data_insertion_mixin import DataInsertionMixin


class UserCreatedBase(db.Model, DataInsertionMixin):
    """Abstract base class for all user-created entities with audit trail"""

    __abstract__ = True

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower() + 's'

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Relationships (no backrefs)
    @declared_attr
    def created_by(cls):
        return db.relationship('User', foreign_keys=[cls.created_by_id])

    @declared_attr
    def updated_by(cls):
        return db.relationship('User', foreign_keys=[cls.updated_by_id])

    def touch(self, user_id: int) -> None:
        """Stamp the audit fields for a mutation by user_id"""
        self.updated_by_id = user_id
        self.updated_at = datetime.utcnow()
