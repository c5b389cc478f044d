from datetime import date, datetime
from decimal import Decimal

HIDDEN_FIELDS = {'password_hash'}


def camel(key):
    head, *rest = key.split('_')
    return head + ''.join(part.title() for part in rest)


def _flag(key, value):
    # MySQL BOOLEAN columns come back as 0/1
    if key.startswith('is_') and isinstance(value, int):
        return bool(value)
    return value


def to_json(value):
    """Render DB rows (and nested lists/dicts of them) as JSON-ready data."""
    if isinstance(value, dict):
        return {camel(k): _flag(k, to_json(v)) for k, v in value.items() if k not in HIDDEN_FIELDS}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
