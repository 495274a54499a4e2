# backend/chatbrain/utils.py
import uuid

# what a front end sends when the id it meant to pass was never set
MISSING_ID_VALUES = ("", "undefined", "null", "none")


def is_missing_id(value) -> bool:
    if value is None:
        return True
    return str(value).strip().lower() in MISSING_ID_VALUES


def parse_uuid(value):
    """Return a UUID for value, or None when it is missing or malformed."""
    if is_missing_id(value):
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None
