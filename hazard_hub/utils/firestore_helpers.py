"""
Firestore query helpers.

Wraps the keyword ``filter=`` API so call sites stay short and the positional
where() deprecation warning never fires.
"""

from datetime import datetime, timezone

from google.cloud.firestore_v1.base_query import FieldFilter


def where_filter(query, field_path: str, op_string: str, value):
    """
    Usage:
        query = where_filter(collection, "email", "==", "a@b.org")
        query = where_filter(query, "status", "==", "New")
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))


def to_datetime(value):
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Firestore returns DatetimeWithNanoseconds (a datetime subclass); older
    documents may carry naive datetimes or ISO strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if hasattr(value, "to_datetime") and not isinstance(value, datetime):
        value = value.to_datetime()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
