"""
Field validators.

Every validator has the signature ``(value, form_data) -> True | str``:
``True`` means valid, a string is the message shown under the field.
"""
import re
from datetime import date, datetime

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

PERIOD_ORDER_MESSAGE = 'Конец периода должен быть больше или равен началу периода'


def is_valid_email(value):
    if not isinstance(value, str) or not value.strip():
        return False
    return bool(EMAIL_RE.match(value.strip()))


def parse_date(value):
    """ISO date (YYYY-MM-DD or YYYY-MM) to a date; None when it doesn't parse."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    for fmt in ('%Y-%m-%d', '%Y-%m'):
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def not_before(start_field, message=PERIOD_ORDER_MESSAGE):
    """Value must be a date on or after the date in `start_field`."""
    def validate(value, form_data=None):
        start_raw = (form_data or {}).get(start_field)
        if not value or not start_raw:
            return True
        end, start = parse_date(value), parse_date(start_raw)
        if end is None or start is None:
            return True
        return True if end >= start else message
    return validate


def non_blank(value, form_data=None):
    return isinstance(value, str) and bool(value.strip())


def valid_date(value, form_data=None):
    return True if parse_date(value) is not None else 'Некорректная дата'
