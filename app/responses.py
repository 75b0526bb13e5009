from datetime import datetime

from flask import jsonify, request

from app.errors import ValidationError


def send_success(message, data=None, status_code=200):
    """Wrap a payload in the standard success envelope."""
    return jsonify({
        'success': True,
        'message': message,
        'data': data,
    }), status_code


def get_json_body():
    return request.get_json(silent=True) or {}


def parse_date(value, field='date'):
    """Parse an ISO date or datetime string. Empty values give None."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def date_range_args():
    """Read optional startDate / endDate query parameters."""
    start = parse_date(request.args.get('startDate') or request.args.get('start_date'), 'startDate')
    end = parse_date(request.args.get('endDate') or request.args.get('end_date'), 'endDate')
    return start, end


def with_dates(data, *fields):
    """Return a copy of data with the named ISO date fields parsed."""
    data = dict(data)
    for field in fields:
        if field in data:
            data[field] = parse_date(data[field], field)
    return data
