"""
Shared helpers for the JSON API blueprints
"""

from flask import request
from flask_login import current_user

from procurement.buisness.core.actor import Actor
from procurement.buisness.workflow.errors import ValidationError
from procurement.utils.logging_sanitizer import sanitize_dict


def current_actor() -> Actor:
    """The logged-in user as the business layer sees it"""
    return Actor.from_user(current_user)


def json_payload(logger=None, label=None) -> dict:
    """
    Parse the JSON body of the current request.

    Raises:
        ValidationError: body is present but not a JSON object
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    if logger is not None:
        logger.debug(f"{label or request.endpoint} payload: {sanitize_dict(payload)}")
    return payload


def optional_int(value, label):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an integer") from None
