"""
Test the logging sanitizer utility.
Credentials must never reach the procurement logs; long notes and photo URL lists are shortened.
"""

from procurement.buisness.workflow.errors import ValidationError
from procurement.utils.logging_sanitizer import (
    MAX_TEXT_LENGTH,
    SENSITIVE_FIELDS,
    sanitize_dict,
    sanitize_exception_message,
    sanitize_list,
)


def test_sanitize_dict():
    """Test dictionary sanitization"""
    test_data = {
        'username': 'site_engineer',
        'password': 'secret123',
        'site_id': 3,
    }
    result = sanitize_dict(test_data)
    assert result['username'] == 'site_engineer', "Username should not be redacted"
    assert result['password'] == '[REDACTED]', "Password should be redacted"
    assert result['site_id'] == 3, "Site id should not be redacted"
    assert test_data['password'] == 'secret123', "Input should not be modified"

    # Case insensitivity
    result = sanitize_dict({'Password': 'a', 'NEW_PASSWORD': 'b', 'Current_Password': 'c'})
    assert set(result.values()) == {'[REDACTED]'}, "Sensitive keys are matched case-insensitively"

    # Nested dictionaries
    result = sanitize_dict({'user': {'username': 'manager', 'password': 'secret123'}})
    assert result['user']['username'] == 'manager', "Nested username should not be redacted"
    assert result['user']['password'] == '[REDACTED]', "Nested password should be redacted"


def test_empty_payload_passes_through():
    assert sanitize_dict({}) == {}
    assert sanitize_dict(None) is None


def test_request_payload_lists():
    """Item and quote lists are sanitized element by element; URL lists only keep a count"""
    payload = {
        'items': [
            {'item_name': 'Cement', 'quantity': 100, 'photo_urls': ['/u/1.jpg', '/u/2.jpg']},
        ],
        'vendor_quotes': [{'vendor_id': 1, 'unit_price': 50, 'token': 'abc'}],
        'photo_urls': ['/u/3.jpg'],
    }
    result = sanitize_dict(payload)
    assert result['items'][0]['item_name'] == 'Cement'
    assert result['items'][0]['photo_urls'] == '[2 item(s)]'
    assert result['vendor_quotes'][0]['token'] == '[REDACTED]'
    assert result['photo_urls'] == '[1 item(s)]'

    assert sanitize_list([1, {'password': 'x'}]) == [1, {'password': '[REDACTED]'}]
    assert sanitize_list(['a', 'b', 'c'], summarize=True) == '[3 item(s)]'


def test_long_notes_are_truncated():
    reason = 'x' * (MAX_TEXT_LENGTH + 30)
    result = sanitize_dict({'rejection_reason': reason, 'item_name': 'y' * 200})
    assert result['rejection_reason'].startswith('x' * MAX_TEXT_LENGTH)
    assert result['rejection_reason'].endswith('[30 more chars]')
    assert result['item_name'] == 'y' * 200, "Only free-text fields are truncated"


def test_all_sensitive_fields():
    """Verify all sensitive fields are properly configured"""
    test_data = {field: f"sensitive_{field}_value" for field in SENSITIVE_FIELDS}
    result = sanitize_dict(test_data)
    for field in SENSITIVE_FIELDS:
        assert result[field] == '[REDACTED]', f"Field '{field}' should be redacted"


def test_sanitize_exception_message():
    assert sanitize_exception_message(ValidationError("Quantity must be greater than 0")) == \
        "Quantity must be greater than 0"
    assert sanitize_exception_message(ValueError("bad password for manager")) == \
        "ValueError: [Message contains sensitive data]"
