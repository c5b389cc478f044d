"""
Request payload validation.

Each ``*_payload`` function takes the decoded JSON body and returns a dict of
clean, snake_case values ready to be bound into SQL, or raises
``ValidationError`` which the app turns into a 400 response.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from flask import request

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")
CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 255
MAX_AMOUNT = Decimal('9999999999.99')

BUDGET_PERIODS = ('weekly', 'monthly', 'quarterly', 'yearly', 'custom')
ROLES = ('user', 'admin')


class ValidationError(ValueError):
    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_text(value, field, required=True, max_length=MAX_NAME_LENGTH):
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required", field)
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field)
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field)
    return value


def parse_amount(value, field='amount', allow_zero=False):
    if value is None or value == '' or isinstance(value, bool):
        raise ValidationError(f"{field} is required", field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(
            f"{field} must be {'zero or more' if allow_zero else 'greater than zero'}", field)
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large", field)
    return amount.quantize(Decimal('0.01'))


def parse_date(value, field='date', required=True):
    """Accept ``YYYY-MM-DD`` or an ISO-8601 datetime string."""
    if value is None or value == '':
        if required:
            raise ValidationError(f"{field} is required", field)
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a date string", field)
    text = value.strip()
    try:
        if 'T' in text:
            return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)", field)


def parse_id(value, field, required=True):
    if value is None or value == '':
        if required:
            raise ValidationError(f"{field} is required", field)
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", field)
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer", field)
    if ident <= 0 or str(ident) != str(value).strip():
        raise ValidationError(f"{field} must be a positive integer", field)
    return ident


def registration_payload(data):
    username = parse_text(data.get('username'), 'username', max_length=50)
    if not USERNAME_RE.match(username):
        raise ValidationError(
            "username must be 3-50 letters, digits, dots, dashes or underscores", 'username')
    password = data.get('password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters", 'password')
    email = parse_text(data.get('email'), 'email', max_length=255).lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("email is not a valid address", 'email')
    return {
        'username': username,
        'password': password,
        'name': parse_text(data.get('name'), 'name'),
        'email': email,
    }


def settings_payload(data):
    clean = {}
    if 'currency' in data:
        currency = parse_text(data.get('currency'), 'currency', max_length=3)
        if not CURRENCY_RE.match(currency):
            raise ValidationError("currency must be a three-letter code", 'currency')
        clean['currency'] = currency.upper()
    if 'name' in data:
        clean['name'] = parse_text(data.get('name'), 'name')
    if not clean:
        raise ValidationError("Nothing to update")
    return clean


def category_payload(data):
    return {
        'name': parse_text(data.get('name'), 'name'),
        'description': parse_text(data.get('description'), 'description',
                                  required=False, max_length=1000),
    }


def subcategory_payload(data):
    payload = category_payload(data)
    payload['category_id'] = parse_id(data.get('categoryId'), 'categoryId')
    return payload


def _entry_payload(data):
    return {
        'amount': parse_amount(data.get('amount')),
        'description': parse_text(data.get('description'), 'description',
                                  max_length=MAX_DESCRIPTION_LENGTH),
        'date': parse_date(data.get('date')),
        'category_id': parse_id(data.get('categoryId'), 'categoryId', required=False),
        'subcategory_id': parse_id(data.get('subcategoryId'), 'subcategoryId', required=False),
        'notes': parse_text(data.get('notes'), 'notes', required=False, max_length=2000),
    }


def expense_payload(data):
    payload = _entry_payload(data)
    payload['merchant'] = parse_text(data.get('merchant'), 'merchant', required=False)
    # Older clients send the category by name
    payload['category_name'] = parse_text(
        data.get('categoryName', data.get('category')), 'category', required=False)
    if payload['category_id'] is None and payload['category_name'] is None:
        raise ValidationError("Category is required", 'categoryId')
    return payload


def income_payload(data):
    payload = _entry_payload(data)
    payload['source'] = parse_text(data.get('source'), 'source', required=False)
    payload['category_name'] = parse_text(data.get('categoryName'), 'categoryName', required=False)
    if payload['category_id'] is None and payload['category_name'] is None:
        raise ValidationError("Please provide a category name.", 'categoryName')
    return payload


def budget_payload(data):
    payload = {
        'name': parse_text(data.get('name'), 'name'),
        'amount': parse_amount(data.get('amount'), allow_zero=True),
        'start_date': parse_date(data.get('startDate'), 'startDate'),
        'end_date': parse_date(data.get('endDate'), 'endDate'),
        'period': data.get('period') or 'monthly',
        'notes': parse_text(data.get('notes'), 'notes', required=False, max_length=2000),
    }
    if payload['period'] not in BUDGET_PERIODS:
        raise ValidationError(f"period must be one of {', '.join(BUDGET_PERIODS)}", 'period')
    if payload['end_date'] < payload['start_date']:
        raise ValidationError("endDate must not be before startDate", 'endDate')
    return payload


def category_ids(data):
    ids = data.get('categoryIds') or []
    if not isinstance(ids, list):
        raise ValidationError("categoryIds must be a list", 'categoryIds')
    return [parse_id(value, 'categoryIds') for value in ids]


def allocation_payload(data, budget_id=None):
    return {
        'budget_id': budget_id if budget_id is not None else parse_id(data.get('budgetId'), 'budgetId'),
        'category_id': parse_id(data.get('categoryId'), 'categoryId'),
        'subcategory_id': parse_id(data.get('subcategoryId'), 'subcategoryId', required=False),
        'amount': parse_amount(data.get('amount', 0), allow_zero=True),
    }


def role_payload(data):
    role = data.get('role')
    if role not in ROLES:
        raise ValidationError("Invalid role", 'role')
    return role


def date_range_args(args, required=True):
    if required and not (args.get('startDate') and args.get('endDate')):
        raise ValidationError("Start date and end date are required")
    start = parse_date(args.get('startDate'), 'startDate', required=False)
    end = parse_date(args.get('endDate'), 'endDate', required=False)
    if start and end and end < start:
        raise ValidationError("endDate must not be before startDate", 'endDate')
    return start, end
