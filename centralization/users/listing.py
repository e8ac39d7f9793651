"""
Users page list logic: visibility, search, filters, sorting, pagination.

Everything here works on an already fetched list of ``schemas.User``.
Filters run in a fixed order and always compose (AND):
role visibility -> search -> role filter -> status filter -> quick filter,
then a stable sort and the page slice.
"""
import math
from collections import namedtuple
from datetime import datetime, timedelta, timezone

PER_PAGE_CHOICES = (10, 20, 50, 100)
DEFAULT_PER_PAGE = 20

BOOLEAN_FIELDS = {'is_online', 'is_active', 'require_password_change', 'show_in_selection',
                  'disable_password_change', 'is_first_login'}
DATE_FIELDS = {'created_at', 'updated_at', 'last_seen'}
SORT_FIELDS = {'full_name', 'username', 'role', 'email', 'department', 'position', 'id'} | BOOLEAN_FIELDS | DATE_FIELDS

NEW_USER_DAYS = 7
INACTIVE_DAYS = 30

UserPage = namedtuple('UserPage', ['items', 'total', 'page', 'per_page', 'total_pages'])


def _aware(value):
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _epoch_millis(value):
    value = _aware(value)
    return int(value.timestamp() * 1000) if value else None


def _is_new(user, now):
    created = _aware(user.created_at)
    return created is not None and created > now - timedelta(days=NEW_USER_DAYS)


def _is_inactive(user, now):
    seen = _aware(user.last_seen)
    return seen is not None and seen < now - timedelta(days=INACTIVE_DAYS)


QUICK_FILTERS = {
    'online': ('Только онлайн', lambda u, now: u.is_online),
    'new': ('Новые (за неделю)', _is_new),
    'inactive': ('Неактивные (30+ дней)', _is_inactive),
    'password_change': ('Требуют смены пароля', lambda u, now: u.require_password_change),
}


class UserListQuery:
    """Search/filter/sort/page state of the Users page."""

    def __init__(self, search='', role_filter=None, status_filter=None, quick_filter=None,
                 sort_by='created_at', sort_desc=True, page=1, per_page=DEFAULT_PER_PAGE):
        self.search = (search or '').strip()
        self.role_filter = role_filter or None
        self.status_filter = status_filter if status_filter in ('online', 'offline') else None
        self.quick_filter = quick_filter if quick_filter in QUICK_FILTERS else None
        self.sort_by = sort_by if sort_by in SORT_FIELDS else 'created_at'
        self.sort_desc = bool(sort_desc)
        self.page = max(_to_int(page, 1), 1)
        per_page = _to_int(per_page, DEFAULT_PER_PAGE)
        self.per_page = per_page if per_page in PER_PAGE_CHOICES else DEFAULT_PER_PAGE

    @classmethod
    def from_args(cls, args, default_per_page=DEFAULT_PER_PAGE):
        return cls(
            search=args.get('q', ''),
            role_filter=args.get('role'),
            status_filter=args.get('status'),
            quick_filter=args.get('quick'),
            sort_by=args.get('sort', 'created_at'),
            sort_desc=args.get('order', 'desc') != 'asc',
            page=args.get('page', 1),
            per_page=args.get('per_page', default_per_page),
        )

    def with_filters(self, **changes):
        """Copy with changed filters; the page goes back to 1."""
        params = self.to_args()
        params.update(changes)
        params['page'] = 1
        return UserListQuery(**params)

    def to_args(self):
        return {
            'search': self.search,
            'role_filter': self.role_filter,
            'status_filter': self.status_filter,
            'quick_filter': self.quick_filter,
            'sort_by': self.sort_by,
            'sort_desc': self.sort_desc,
            'page': self.page,
            'per_page': self.per_page,
        }

    def url_args(self, **overrides):
        """Query-string form for building links in templates."""
        args = {
            'q': self.search or None,
            'role': self.role_filter,
            'status': self.status_filter,
            'quick': self.quick_filter,
            'sort': self.sort_by,
            'order': 'desc' if self.sort_desc else 'asc',
            'page': self.page,
            'per_page': self.per_page,
        }
        args.update(overrides)
        return {k: v for k, v in args.items() if v is not None}


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def visible_to(users, viewer_role):
    """Moderators only ever see plain users."""
    if viewer_role == 'moderator':
        return [u for u in users if u.role == 'user']
    return list(users)


def matches_search(user, search):
    if not search:
        return True
    needle = search.casefold()
    haystack = [user.full_name or '', user.username or '']
    haystack.extend(user.all_emails)
    haystack.extend(user.all_phones)
    return any(needle in value.casefold() for value in haystack)


def filter_users(users, query, now=None):
    now = now or datetime.now(timezone.utc)
    result = [u for u in users if matches_search(u, query.search)]
    if query.role_filter:
        result = [u for u in result if u.role == query.role_filter]
    if query.status_filter:
        online = query.status_filter == 'online'
        result = [u for u in result if bool(u.is_online) == online]
    if query.quick_filter:
        predicate = QUICK_FILTERS[query.quick_filter][1]
        result = [u for u in result if predicate(u, now)]
    return result


def _sort_value(user, field):
    if field == 'email':
        emails = user.all_emails
        return emails[0] if emails else None
    return getattr(user, field, None)


def sort_users(users, sort_by, sort_desc=False):
    """Stable sort; users without a value for the field always go last."""
    present, missing = [], []
    for user in users:
        (missing if _sort_value(user, sort_by) is None else present).append(user)

    if sort_by in BOOLEAN_FIELDS:
        key = lambda u: bool(_sort_value(u, sort_by))
    elif sort_by in DATE_FIELDS:
        key = lambda u: _epoch_millis(_sort_value(u, sort_by))
    else:
        def key(u):
            value = _sort_value(u, sort_by)
            if isinstance(value, (int, float)):
                return value
            return str(value).casefold()

    return sorted(present, key=key, reverse=sort_desc) + missing


def paginate(users, page, per_page):
    total = len(users)
    total_pages = max(math.ceil(total / per_page), 1)
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return UserPage(users[start:start + per_page], total, page, per_page, total_pages)


def apply_query(users, query, viewer_role=None, now=None):
    visible = visible_to(users, viewer_role)
    filtered = filter_users(visible, query, now=now)
    ordered = sort_users(filtered, query.sort_by, query.sort_desc)
    return paginate(ordered, query.page, query.per_page)


def online_count(users):
    return sum(1 for u in users if u.is_online)


def role_counts(users):
    counts = {}
    for user in users:
        counts[user.role] = counts.get(user.role, 0) + 1
    return counts


def quick_filter_counts(users, now=None):
    now = now or datetime.now(timezone.utc)
    return {name: sum(1 for u in users if predicate(u, now))
            for name, (label, predicate) in QUICK_FILTERS.items()}
