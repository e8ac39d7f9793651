"""
Report request wizard.

The wizard walks a fixed sequence of steps::

    report selection -> organizations -> parameter step(s) -> email -> confirmation

The parameter steps come from the active report's config. Forward
navigation is gated on the current step being valid. Validation problems
end up in ``wizard.errors`` (field name -> message) and are never raised.
The wizard is a plain object: routes keep it in the session between
requests via ``to_dict()`` / ``from_dict()``.
"""
import logging
from collections import namedtuple

from centralization.reports.configs import get_report_config
from centralization.reports.validators import is_valid_email

logger = logging.getLogger(__name__)

REPORT_SELECTION = 'report_selection'
ORGANIZATIONS = 'organizations'
PARAMS = 'params'
EMAIL = 'email'
CONFIRMATION = 'confirmation'

# Keys that belong to the wizard itself rather than to a report's schema
BASE_KEYS = ('reportType', 'organizationIds', 'emailNotification', 'recipients')

DEFAULT_START_STEP = 1
SUBMIT_ERROR = 'Ошибка при создании запроса'

WizardStep = namedtuple('WizardStep', ['kind', 'label', 'config'])


def initial_form_data(report_type, config=None):
    data = {
        'reportType': report_type,
        'organizationIds': [],
        'emailNotification': False,
        'recipients': [],
    }
    if config is not None:
        data.update(config.defaults())
    return data


def _resolve(report_type):
    config = get_report_config(report_type)
    if config is None:
        raise KeyError(report_type)
    return config


class ReportWizard:

    def __init__(self, report_type, start_step=DEFAULT_START_STEP, allow_report_change=False):
        self.initial_report_type = report_type
        self.config = _resolve(report_type)
        self.start_step = start_step
        self.allow_report_change = allow_report_change
        self.form_data = initial_form_data(report_type, self.config)
        self.errors = {}
        self.is_open = True
        self.current_step = 0
        self.reset_steps()

    # ------------------------------------------------------------------
    # Step layout
    # ------------------------------------------------------------------

    @property
    def report_type(self):
        return self.form_data['reportType']

    @property
    def steps(self):
        steps = [
            WizardStep(REPORT_SELECTION, 'Выбор отчета', None),
            WizardStep(ORGANIZATIONS, 'Организации', None),
        ]
        steps.extend(WizardStep(PARAMS, s.title, s) for s in self.config.steps)
        steps.append(WizardStep(EMAIL, 'Email уведомления', None))
        steps.append(WizardStep(CONFIRMATION, 'Подтверждение', None))
        return steps

    @property
    def total_steps(self):
        return len(self.config.steps) + 4

    @property
    def step_labels(self):
        return [s.label for s in self.steps]

    @property
    def current(self):
        return self.steps[self.current_step]

    @property
    def is_first_step(self):
        return self.current_step == 0

    @property
    def is_last_step(self):
        return self.current_step == self.total_steps - 1

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_step(self):
        """Advance one step if the current one validates. Returns True when it moved."""
        if self.is_last_step or not self.validate_current_step():
            return False
        self.current_step += 1
        return True

    def prev_step(self):
        self.current_step = max(self.current_step - 1, 0)

    def go_to_step(self, step):
        if 0 <= step < self.total_steps:
            self.current_step = step
            return True
        return False

    def reset_steps(self):
        self.current_step = 0
        self.go_to_step(self.start_step)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_always(self, step):
        return {}

    def _validate_organizations(self, step):
        if not self.form_data.get('organizationIds'):
            return {'organizations': 'Выберите хотя бы одну организацию'}
        return {}

    def _validate_params(self, step):
        errors = {}
        for field in step.config.fields:
            value = self.form_data.get(field.name)
            empty = field.is_empty(value)
            if field.required and empty:
                errors[field.name] = f'Поле "{field.label}" обязательно для заполнения'
            if not empty and field.validation is not None:
                result = field.validation(value, self.form_data)
                if result is not True:
                    errors[field.name] = (result if isinstance(result, str) and result
                                          else f'Поле "{field.label}" заполнено некорректно')
        return errors

    def _validate_email(self, step):
        if not self.form_data.get('emailNotification'):
            return {}
        recipients = self.form_data.get('recipients') or []
        if not recipients:
            return {'recipients': 'Добавьте хотя бы один email адрес'}
        if not any(is_valid_email(r) for r in recipients):
            return {'recipients': 'Некорректный формат email адреса'}
        return {}

    _STEP_VALIDATORS = {
        REPORT_SELECTION: _validate_always,
        ORGANIZATIONS: _validate_organizations,
        PARAMS: _validate_params,
        EMAIL: _validate_email,
        CONFIRMATION: _validate_always,
    }

    def validate_current_step(self):
        step = self.current
        self.errors = self._STEP_VALIDATORS[step.kind](self, step)
        return not self.errors

    # ------------------------------------------------------------------
    # Form data
    # ------------------------------------------------------------------

    def _error_key(self, name):
        if name == 'organizationIds':
            return 'organizations'
        if name in ('emailNotification', 'recipients'):
            return 'recipients'
        return name

    def update_field(self, name, value):
        self.form_data[name] = value
        self.errors.pop(self._error_key(name), None)

    def update_fields(self, values):
        for name, value in values.items():
            self.update_field(name, value)

    def update_params(self, raw_values, step=None):
        """Store raw form input for the fields of a parameter step, parsed by field type."""
        step = step or self.current
        if step.kind != PARAMS:
            return
        for field in step.config.fields:
            self.update_field(field.name, field.parse(raw_values.get(field.name)))

    def add_recipient(self, email):
        """Add a recipient address; returns an error message or None."""
        email = (email or '').strip()
        if not is_valid_email(email):
            return 'Некорректный формат email адреса'
        recipients = list(self.form_data.get('recipients') or [])
        if email in recipients:
            return 'Этот email уже добавлен'
        recipients.append(email)
        self.update_field('recipients', recipients)
        return None

    def remove_recipient(self, email):
        self.update_field('recipients', [r for r in self.form_data.get('recipients') or [] if r != email])

    def change_report_type(self, report_type):
        """Swap in another report on the selection step.

        Parameter values of the previous report are dropped; organizations
        and email settings are kept.
        """
        if not self.allow_report_change or self.current.kind != REPORT_SELECTION:
            return False
        if report_type == self.report_type:
            return True
        config = _resolve(report_type)
        kept = {k: self.form_data[k] for k in BASE_KEYS if k in self.form_data}
        kept['reportType'] = report_type
        self.config = config
        self.form_data = dict(config.defaults(), **kept)
        self.errors = {}
        logger.debug("Wizard switched to report %s", report_type)
        return True

    def reset(self):
        """Back to the state the wizard was opened with."""
        self.config = _resolve(self.initial_report_type)
        self.form_data = initial_form_data(self.initial_report_type, self.config)
        self.errors = {}
        self.reset_steps()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submission_payload(self):
        payload = {'organizationIds': list(self.form_data.get('organizationIds') or [])}
        for name in self.config.field_names:
            if name in self.form_data:
                payload[name] = self.form_data[name]
        payload['emailNotification'] = bool(self.form_data.get('emailNotification'))
        payload['recipients'] = list(self.form_data.get('recipients') or [])
        return payload

    def handle_submit(self, callback):
        """Hand the form data to `callback` from the last step.

        An exception from the callback becomes ``errors['submit']`` and the
        wizard stays open. On success the wizard closes and resets.
        """
        if not self.is_last_step or not self.validate_current_step():
            return False
        try:
            callback(dict(self.form_data))
        except Exception as exc:
            logger.warning("Report request submission failed: %s", exc)
            self.errors = {'submit': str(exc) or SUBMIT_ERROR}
            return False
        self.reset()
        self.is_open = False
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self):
        return {
            'initial_report_type': self.initial_report_type,
            'start_step': self.start_step,
            'allow_report_change': self.allow_report_change,
            'current_step': self.current_step,
            'form_data': dict(self.form_data),
            'errors': dict(self.errors),
            'is_open': self.is_open,
        }

    @classmethod
    def from_dict(cls, data):
        wizard = cls(data['initial_report_type'], start_step=data.get('start_step', DEFAULT_START_STEP),
                     allow_report_change=data.get('allow_report_change', False))
        form_data = data.get('form_data') or {}
        wizard.config = _resolve(form_data.get('reportType', wizard.initial_report_type))
        wizard.form_data = dict(form_data) or wizard.form_data
        wizard.errors = dict(data.get('errors') or {})
        wizard.is_open = data.get('is_open', True)
        wizard.current_step = min(max(int(data.get('current_step', 0)), 0), wizard.total_steps - 1)
        return wizard
