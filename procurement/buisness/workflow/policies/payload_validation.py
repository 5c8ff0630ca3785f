"""
Payload Validation Policy

Normalizes and validates the JSON payloads that drive workflow transitions.
Every failure raises ValidationError with a message fit to show the user verbatim.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from procurement.buisness.workflow.errors import ValidationError


ITEM_TEXT_FIELDS = ('description', 'specs_brand', 'notes')


class PayloadValidationPolicy:
    """
    Rules:
    1. Text that is required must be non-blank after trimming
    2. Quantities and prices must be numbers greater than zero
    3. Percentages must lie between 0 and 100
    4. Dates are ISO formatted (YYYY-MM-DD)
    5. A request carries at least one item
    """

    @classmethod
    def require_text(cls, value: Any, message: str) -> str:
        text = value.strip() if isinstance(value, str) else ''
        if not text:
            raise ValidationError(message)
        return text

    @classmethod
    def optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError("Expected a text value")
        return value.strip() or None

    @classmethod
    def positive_number(cls, value: Any, label: str) -> float:
        if isinstance(value, bool):
            raise ValidationError(f"{label} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be a number") from None
        if number <= 0:
            raise ValidationError(f"{label} must be greater than 0")
        return number

    @classmethod
    def percentage(cls, value: Any, label: str) -> Optional[float]:
        if value is None or value == '':
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be a number") from None
        if number < 0 or number > 100:
            raise ValidationError(f"{label} must be between 0 and 100")
        return number

    @classmethod
    def parse_date(cls, value: Any, label: str) -> Optional[date]:
        if value is None or value == '':
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            raise ValidationError(f"{label} must be a date in YYYY-MM-DD format") from None

    @classmethod
    def validate_items(cls, items: Any, default_required_by: Optional[date] = None,
                       default_is_urgent: bool = False) -> List[Dict[str, Any]]:
        """
        Validate the item list of a create or update draft payload.

        Returns:
            list[dict]: normalized item dicts, in payload order
        """
        if not isinstance(items, list) or not items:
            raise ValidationError("At least one item is required")

        normalized = []
        for position, raw in enumerate(items, start=1):
            if not isinstance(raw, dict):
                raise ValidationError(f"Item {position} is malformed")
            item = {
                'item_name': cls.require_text(raw.get('item_name'), f"Item {position}: item name is required"),
                'quantity': cls.positive_number(raw.get('quantity'), f"Item {position}: quantity"),
                'unit': cls.require_text(raw.get('unit'), f"Item {position}: unit is required"),
                'required_by': cls.parse_date(raw.get('required_by'), f"Item {position}: required by")
                or default_required_by,
                'is_urgent': bool(raw.get('is_urgent', default_is_urgent)),
                'photo_urls': cls.photo_urls(raw.get('photo_urls')),
            }
            for field in ITEM_TEXT_FIELDS:
                item[field] = cls.optional_text(raw.get(field))
            normalized.append(item)
        return normalized

    @classmethod
    def photo_urls(cls, value: Any) -> List[str]:
        """Already-uploaded file URLs; the upload itself happens before the call"""
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
            raise ValidationError("photo_urls must be a list of URLs")
        return [v.strip() for v in value]
