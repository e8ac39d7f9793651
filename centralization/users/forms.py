"""Parsing and validation of the create/edit user form."""
import re

from centralization.reports.validators import is_valid_email
from centralization.schemas import ROLES

_SPLIT_RE = re.compile(r'[\n,;]+')


def split_values(raw):
    """Textarea/comma separated input to a list of trimmed, de-duplicated values."""
    values = []
    for part in _SPLIT_RE.split(raw or ''):
        part = part.strip()
        if part and part not in values:
            values.append(part)
    return values


def is_valid_phone(phone):
    digits = re.sub(r'\D', '', phone or '')
    return 10 <= len(digits) <= 15


def assignable_roles(viewer_role):
    """Moderators may only create and edit plain users."""
    if viewer_role == 'admin':
        return list(ROLES)
    return ['user']


def _flag(form, name):
    return form.get(name) in ('on', 'true', '1', 'yes')


def int_list(values):
    result = []
    for value in values:
        try:
            result.append(int(value))
        except (TypeError, ValueError):
            continue
    return result


def parse_user_form(form, viewer_role, creating=True):
    """Build the backend payload from a submitted form.

    Returns ``(payload, errors)``; ``errors`` maps field names to messages.
    """
    errors = {}

    full_name = (form.get('full_name') or '').strip()
    username = (form.get('username') or '').strip()
    password = form.get('password') or ''
    role = form.get('role') or 'user'

    if not full_name:
        errors['full_name'] = 'Укажите ФИО'
    if not username:
        errors['username'] = 'Укажите логин'
    if password and len(password) < 6:
        errors['password'] = 'Пароль должен содержать не менее 6 символов'
    if role not in assignable_roles(viewer_role):
        errors['role'] = 'Недопустимая роль'

    emails = split_values(form.get('emails'))
    bad_emails = [e for e in emails if not is_valid_email(e)]
    if bad_emails:
        errors['emails'] = 'Некорректный формат email адреса: ' + ', '.join(bad_emails)

    phones = split_values(form.get('phones'))
    bad_phones = [p for p in phones if not is_valid_phone(p)]
    if bad_phones:
        errors['phones'] = 'Некорректный формат телефона: ' + ', '.join(bad_phones)

    getlist = getattr(form, 'getlist', None)
    organizations = getlist('available_organizations') if getlist else form.get('available_organizations', [])

    payload = {
        'full_name': full_name,
        'username': username,
        'role': role,
        'emails': emails,
        'phones': phones,
        'position': (form.get('position') or '').strip() or None,
        'department': (form.get('department') or '').strip() or None,
        'comment': (form.get('comment') or '').strip() or None,
        'require_password_change': _flag(form, 'require_password_change'),
        'disable_password_change': _flag(form, 'disable_password_change'),
        'show_in_selection': _flag(form, 'show_in_selection'),
        'available_organizations': int_list(organizations or []),
    }
    if password:
        payload['password'] = password
    if creating:
        payload.update({'accessible_users': [], 'social_links': {}, 'custom_fields': {}, 'tags': []})
    else:
        payload['is_active'] = _flag(form, 'is_active')
        payload['blocked_reason'] = (form.get('blocked_reason') or '').strip() or None
        if _flag(form, 'reset_password'):
            payload['reset_password'] = True

    return payload, errors
