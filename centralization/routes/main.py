"""Main routes - Dashboard, language switching."""
from flask import Blueprint, render_template, request, redirect, make_response, current_app
from centralization.models import ReportRequest
from centralization.reports.configs import all_report_configs
from centralization.routes.auth import login_required, current_user

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
@login_required
def index():
    user = current_user()
    stats = {
        'reports': len(all_report_configs()),
        'pending': ReportRequest.query.filter_by(user_id=user.id, status='pending').count(),
        'requested': ReportRequest.query.filter_by(user_id=user.id).count(),
    }
    return render_template('index.html', reports=all_report_configs(), stats=stats)


@main_bp.route('/set_language/<lang>')
def set_language(lang):
    if lang not in current_app.config['LANGUAGES']:
        lang = current_app.config['BABEL_DEFAULT_LOCALE']
    resp = make_response(redirect(request.referrer or '/'))
    resp.set_cookie('babel_translation', lang)
    return resp
