"""
Column-driven serialization shared by every procurement model
Seed data and API payloads go through from_dict; responses come out of to_dict.
"""

from datetime import date, datetime
from sqlalchemy import inspect

from procurement import db


AUDIT_FIELDS = ('created_at', 'created_by_id', 'updated_at', 'updated_by_id')
# Never taken from an incoming payload
PROTECTED_FIELDS = frozenset({'id', 'version', 'created_at', 'updated_at'})


def _json_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class DataInsertionMixin:
    """
    from_dict / find_or_create_from_dict for inserts, to_dict for responses.
    Keys that are not mapped columns are dropped silently.
    """

    # Columns never exposed through to_dict()
    SERIALIZE_EXCLUDE: tuple = ()

    @classmethod
    def _column_keys(cls):
        return [column.key for column in inspect(cls).columns]

    @classmethod
    def from_dict(cls, data_dict, user_id=None):
        """
        Build an unsaved instance from a payload.

        A 'password' key is routed through set_password() on models that have one;
        user_id stamps created_by_id / updated_by_id where the model tracks them.
        """
        accepted = set(cls._column_keys()) - PROTECTED_FIELDS
        instance = cls(**{key: value for key, value in data_dict.items() if key in accepted})

        password = data_dict.get('password')
        if password is not None and hasattr(instance, 'set_password'):
            instance.set_password(password)

        if user_id is not None and hasattr(instance, 'created_by_id'):
            instance.created_by_id = instance.created_by_id or user_id
            instance.updated_by_id = user_id

        return instance

    @classmethod
    def find_or_create_from_dict(cls, data_dict, user_id=None, lookup_fields=None):
        """Return (instance, created); existing rows are matched on lookup_fields and left untouched"""
        criteria = {field: data_dict[field] for field in lookup_fields or () if field in data_dict}
        existing = cls.query.filter_by(**criteria).first() if criteria else None
        if existing is not None:
            return existing, False

        instance = cls.from_dict(data_dict, user_id=user_id)
        db.session.add(instance)
        db.session.flush()
        return instance, True

    def to_dict(self, include_audit_fields=True):
        hidden = set(self.SERIALIZE_EXCLUDE)
        if not include_audit_fields:
            hidden.update(AUDIT_FIELDS)
        return {
            key: _json_value(getattr(self, key))
            for key in self._column_keys()
            if key not in hidden
        }
