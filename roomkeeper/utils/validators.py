from flask import request

from roomkeeper.utils.errors import ValidationError
from roomkeeper.utils.timeutil import to_minutes, parse_date

def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("No input data provided.", 'invalid_body')
    return data

def require(data, *fields):
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.", 'missing_field',
                              {'fields': missing})

def optional_int(data, field, default=None):
    value = data.get(field)
    if value in (None, ''):
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.", 'invalid_field')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer.", 'invalid_field')

def optional_bool(data, field, default=False):
    """JSON booleans, or the strings 'true' / 'false'."""
    value = data.get(field)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise ValidationError(f"{field} must be true or false.", 'invalid_field')

def optional_time(data, field):
    value = data.get(field)
    return to_minutes(value) if value else None

def optional_date(data, field):
    value = data.get(field)
    return parse_date(value) if value else None

def interval(data):
    """``date``, ``start_time`` and ``end_time`` of a request as (date, start, end)."""
    require(data, 'date', 'start_time', 'end_time')
    return parse_date(data['date']), to_minutes(data['start_time']), to_minutes(data['end_time'])
