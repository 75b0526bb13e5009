"""
Small helpers shared by the service layer.
"""

from app.errors import NotFoundError, ValidationError
from app.extensions import db


def get_or_raise(model, object_id, label=None):
    """Load a row by primary key or raise NotFoundError("<Label> not found")."""
    label = label or model.__name__
    obj = db.session.get(model, object_id) if object_id is not None else None
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def parse_amount(value, field='Amount', allow_zero=False):
    """Coerce a client-supplied amount to float and check its sign."""
    if value is None or value == '':
        raise ValidationError(f"{field} is required")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0")
    return amount


def require_fields(data, fields, message=None):
    """Raise ValidationError when any of fields is missing or blank in data."""
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(message or f"Missing required fields: {', '.join(missing)}")


def filter_by_date(query, column, start=None, end=None):
    if start:
        query = query.filter(column >= start)
    if end:
        query = query.filter(column <= end)
    return query
