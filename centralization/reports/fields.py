"""
Declarative report form schema: fields, steps and whole-report configs.

Field behaviour is looked up by type tag in FIELD_TYPES instead of being
spread over if/else chains, so a new input kind is one table entry plus a
template macro.
"""
from collections import namedtuple
from datetime import date

FieldType = namedtuple('FieldType', ['widget', 'parse', 'is_empty'])


def _blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def _text(raw):
    return raw.strip() if isinstance(raw, str) else raw


def _number(raw):
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, (int, float)):
        return raw
    try:
        value = float(raw.replace(',', '.'))
    except ValueError:
        # Kept as typed so the validator can report it
        return raw
    return int(value) if value.is_integer() else value


def _checkbox(raw):
    if isinstance(raw, bool):
        return raw
    return raw in ('on', 'true', '1', 'yes')


def _date(raw):
    if isinstance(raw, date):
        return raw.isoformat()
    return _text(raw)


FIELD_TYPES = {
    'text': FieldType('text', _text, _blank),
    'email': FieldType('email', _text, _blank),
    'textarea': FieldType('textarea', _text, _blank),
    'search': FieldType('search', _text, _blank),
    'date': FieldType('date', _date, _blank),
    'month': FieldType('month', _text, _blank),
    'select': FieldType('select', _text, _blank),
    'radio': FieldType('radio', _text, _blank),
    'number': FieldType('number', _number, _blank),
    'checkbox': FieldType('checkbox', _checkbox, lambda v: v is not True),
}


class FieldConfig:
    """One input control of a parameter step."""

    def __init__(self, name, label, type='text', required=False, validation=None, options=None,
                 placeholder=None, description=None, default=None):
        if type not in FIELD_TYPES:
            raise ValueError(f'Unknown field type: {type}')
        self.name = name
        self.label = label
        self.type = type
        self.required = required
        self.validation = validation
        self.options = [o if isinstance(o, dict) else {'value': o, 'label': o} for o in (options or [])]
        self.placeholder = placeholder
        self.description = description
        self.default = default

    @property
    def kind(self):
        return FIELD_TYPES[self.type]

    def parse(self, raw):
        return self.kind.parse(raw)

    def is_empty(self, value):
        return self.kind.is_empty(value)

    def option_label(self, value):
        for option in self.options:
            if option['value'] == value:
                return option['label']
        return value

    def __repr__(self):
        return f'<FieldConfig {self.name}:{self.type}>'


class StepConfig:

    def __init__(self, id, title, description='', fields=None):
        self.id = id
        self.title = title
        self.description = description
        self.fields = list(fields or [])


class ReportModalConfig:

    def __init__(self, id, title, description, icon, color_scheme, steps):
        self.id = id
        self.title = title
        self.description = description
        self.icon = icon
        self.color_scheme = color_scheme
        self.steps = list(steps)

    @property
    def fields(self):
        return [f for step in self.steps for f in step.fields]

    @property
    def field_names(self):
        return [f.name for f in self.fields]

    def defaults(self):
        return {f.name: f.default for f in self.fields if f.default is not None}

    def __repr__(self):
        return f'<ReportModalConfig {self.id}>'
