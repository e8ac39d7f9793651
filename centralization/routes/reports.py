"""Report routes - report catalogue, request wizard and request history."""
import logging
from flask import Blueprint, render_template, redirect, url_for, session, request, flash, abort
from flask_babel import gettext as _
from sqlalchemy.exc import SQLAlchemyError
from centralization.api import ApiError, UnauthorizedError, organizations_api
from centralization.models import db, ReportRequest, STATUSES
from centralization.reports import wizard as steps
from centralization.reports.configs import all_report_configs, get_report_config
from centralization.reports.wizard import ReportWizard
from centralization.routes.auth import login_required, current_user
from centralization.users.forms import int_list

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__)

WIZARD_KEY = 'report_wizard'

STEP_TEMPLATES = {
    steps.REPORT_SELECTION: 'reports/steps/report_selection.html',
    steps.ORGANIZATIONS: 'reports/steps/organizations.html',
    steps.PARAMS: 'reports/steps/params.html',
    steps.EMAIL: 'reports/steps/email.html',
    steps.CONFIRMATION: 'reports/steps/confirmation.html',
}


def _load_wizard():
    data = session.get(WIZARD_KEY)
    if not data:
        return None
    try:
        return ReportWizard.from_dict(data)
    except (KeyError, TypeError, ValueError):
        logger.warning("Dropping unreadable wizard state")
        session.pop(WIZARD_KEY, None)
        return None


def _save_wizard(wizard):
    session[WIZARD_KEY] = wizard.to_dict()


def _organizations():
    """Organizations for the selection step; None when the backend fails."""
    try:
        return organizations_api().get_all()
    except UnauthorizedError:
        raise
    except ApiError as exc:
        logger.warning("Could not load organizations: %s", exc.message)
        return None


def _apply_step_input(wizard, form):
    """Copy what the current step's form posted into the wizard."""
    kind = wizard.current.kind
    if kind == steps.REPORT_SELECTION:
        report_type = form.get('report_type')
        if report_type and report_type != wizard.report_type:
            if get_report_config(report_type) is None:
                abort(404)
            wizard.change_report_type(report_type)
    elif kind == steps.ORGANIZATIONS:
        wizard.update_field('organizationIds', int_list(form.getlist('organization_ids')))
    elif kind == steps.PARAMS:
        wizard.update_params(form)
    elif kind == steps.EMAIL:
        wizard.update_field('emailNotification', form.get('email_notification') in ('on', 'true', '1'))
        if 'recipients' in form:
            wizard.update_field('recipients', [r for r in form.getlist('recipients') if r])


def _enqueue_request(user):
    def submit(form_data):
        report_request = ReportRequest.from_form_data(form_data, user)
        try:
            db.session.add(report_request)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Could not store report request: %s", exc)
            raise RuntimeError(_('Не удалось поставить запрос в очередь. Попробуйте позже.')) from exc
        logger.info("Report request %s (%s) queued by %s", report_request.id, report_request.report_type,
                    user.username)
    return submit


# ==================== CATALOGUE ====================

@reports_bp.route('/reports')
@login_required
def report_list():
    return render_template('reports/list.html', reports=all_report_configs())


@reports_bp.route('/reports/new')
@login_required
def wizard_start_any():
    """Open the wizard on the report selection step."""
    report_type = request.args.get('report_type')
    if get_report_config(report_type) is None:
        report_type = all_report_configs()[0].id
    _save_wizard(ReportWizard(report_type, start_step=0, allow_report_change=True))
    return redirect(url_for('reports.wizard'))


@reports_bp.route('/reports/<report_type>/new')
@login_required
def wizard_start(report_type):
    """Open the wizard for a fixed report, skipping report selection."""
    if get_report_config(report_type) is None:
        abort(404)
    _save_wizard(ReportWizard(report_type))
    return redirect(url_for('reports.wizard'))


# ==================== WIZARD ====================

@reports_bp.route('/reports/wizard', methods=['GET'])
@login_required
def wizard():
    wizard = _load_wizard()
    if wizard is None:
        flash(_('Выберите отчёт для формирования запроса.'), 'info')
        return redirect(url_for('reports.report_list'))

    context = dict(wizard=wizard, step=wizard.current, step_template=STEP_TEMPLATES[wizard.current.kind])
    if wizard.current.kind == steps.REPORT_SELECTION:
        context['reports'] = all_report_configs()
    elif wizard.current.kind == steps.ORGANIZATIONS:
        organizations = _organizations()
        context['organizations_failed'] = organizations is None
        organizations = organizations or []
        org_query = request.args.get('org_q', '').strip()
        if org_query:
            needle = org_query.casefold()
            organizations = [o for o in organizations
                             if needle in o.name.casefold() or needle in (o.code or '').casefold()]
        context.update(organizations=organizations, org_query=org_query)
    elif wizard.current.kind == steps.CONFIRMATION:
        organizations = _organizations() or []
        names = {o.id: o.name for o in organizations}
        context['selected_organizations'] = [names.get(i, f'#{i}') for i in wizard.form_data['organizationIds']]

    return render_template('reports/wizard.html', **context)


@reports_bp.route('/reports/wizard', methods=['POST'])
@login_required
def wizard_post():
    wizard = _load_wizard()
    if wizard is None:
        return redirect(url_for('reports.report_list'))

    action = request.form.get('action', 'next')
    _apply_step_input(wizard, request.form)

    if action == 'next':
        wizard.next_step()
    elif action == 'prev':
        wizard.prev_step()
    elif action == 'select_report':
        pass
    elif action == 'add_recipient':
        error = wizard.add_recipient(request.form.get('new_recipient'))
        if error:
            wizard.errors['recipients'] = error
    elif action.startswith('remove_recipient:'):
        wizard.remove_recipient(action.split(':', 1)[1])
    elif action == 'submit':
        title = wizard.config.title
        if wizard.handle_submit(_enqueue_request(current_user())):
            session.pop(WIZARD_KEY, None)
            flash(_('Запрос на формирование отчета "%(title)s" помещен в очередь выполнения. '
                    'Отчет будет отправлен по email при готовности.', title=title), 'success')
            return redirect(url_for('reports.request_list'))
    else:
        abort(400)

    _save_wizard(wizard)
    return redirect(url_for('reports.wizard'))


@reports_bp.route('/reports/wizard/cancel', methods=['POST'])
@login_required
def wizard_cancel():
    session.pop(WIZARD_KEY, None)
    return redirect(url_for('reports.report_list'))


# ==================== HISTORY ====================

@reports_bp.route('/reports/requests')
@login_required
def request_list():
    user = current_user()
    query = ReportRequest.query
    if user.role != 'admin':
        query = query.filter_by(user_id=user.id)
    status = request.args.get('status')
    if status not in STATUSES:
        status = None
    if status:
        query = query.filter_by(status=status)
    requests = query.order_by(ReportRequest.created_at.desc()).all()
    titles = {c.id: c.title for c in all_report_configs()}
    return render_template('reports/requests.html', requests=requests, titles=titles, status=status,
                           statuses=STATUSES)
