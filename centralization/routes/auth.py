"""Authentication routes and decorators."""
from functools import wraps
from flask import Blueprint, redirect, url_for, session, request, render_template, flash, abort, g
from flask_babel import gettext as _
from centralization.api import ApiError, UnauthorizedError, auth_api

auth_bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6
MIN_RESET_PASSWORD_LENGTH = 8


def current_user():
    """Cached backend user of this session, or None."""
    if 'current_user' not in g:
        g.current_user = auth_api().get_current_user()
    return g.current_user


def check_new_password(new_password, confirm_password, min_length=MIN_PASSWORD_LENGTH):
    """Return an error message, or None when the new password is acceptable."""
    if not new_password:
        return _('Введите новый пароль')
    if len(new_password) < min_length:
        return _('Пароль должен содержать не менее %(n)s символов', n=min_length)
    if new_password != confirm_password:
        return _('Пароли не совпадают')
    return None


# ==================== RBAC Decorators (MUST be defined before routes that use them) ====================

def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not auth_api().is_authenticated() or current_user() is None:
            return redirect(url_for('auth.login', next=request.full_path))
        return f(*args, **kwargs)
    return decorated_function


def role_required(roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = current_user()
            if user is None:
                return redirect(url_for('auth.login', next=request.full_path))
            if user.role not in roles:
                abort(403)  # Forbidden
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def staff_required(f):
    return role_required(['admin', 'moderator'])(f)


@auth_bp.app_context_processor
def inject_user():
    return dict(current_user=current_user())


# ==================== Routes ====================

@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    reason = request.args.get('reason')
    if request.method == 'POST':
        username = request.form.get('username', '').strip()
        password = request.form.get('password', '')

        if not username or not password:
            flash(_('Введите логин и пароль.'), 'error')
            return render_template('auth/login.html', username=username, reason=reason), 400

        try:
            response = auth_api().login(username, password)
        except ApiError as exc:
            flash(exc.message, 'error')
            return render_template('auth/login.html', username=username, reason=reason), 401

        if response.require_password_change or response.user.require_password_change:
            flash(_('Необходимо сменить пароль.'), 'warning')
            return redirect(url_for('auth.change_password'))

        next_url = request.args.get('next')
        if not next_url or not next_url.startswith('/') or next_url.startswith(('//', '/\\')):
            next_url = url_for('main.index')
        return redirect(next_url)

    return render_template('auth/login.html', reason=reason)


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    auth_api().logout()
    session.pop('report_wizard', None)
    return redirect(url_for('auth.login'))


@auth_bp.route('/change-password', methods=['GET', 'POST'])
@login_required
def change_password():
    user = current_user()
    first_login = user.is_first_login or user.require_password_change

    if user.disable_password_change:
        flash(_('Смена пароля для вашей учётной записи отключена.'), 'error')
        return redirect(url_for('main.index'))

    if request.method == 'POST':
        old_password = request.form.get('old_password', '')
        new_password = request.form.get('new_password', '')
        confirm_password = request.form.get('confirm_password', '')

        error = None
        if not first_login and not old_password:
            error = _('Введите текущий пароль')
        else:
            error = check_new_password(new_password, confirm_password)

        if error is None:
            try:
                auth_api().change_password(new_password, confirm_password, old_password=old_password or None)
            except UnauthorizedError:
                raise
            except ApiError as exc:
                error = exc.message
            else:
                flash(_('Пароль успешно изменён.'), 'success')
                return redirect(url_for('main.index'))

        flash(error, 'error')
        return render_template('auth/change_password.html', first_login=first_login), 400

    return render_template('auth/change_password.html', first_login=first_login)


@auth_bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    if request.method == 'POST':
        username_or_email = request.form.get('username_or_email', '').strip()
        if not username_or_email:
            flash(_('Введите логин или email.'), 'error')
            return render_template('auth/forgot_password.html'), 400
        try:
            auth_api().forgot_password(username_or_email)
        except ApiError as exc:
            flash(exc.message, 'error')
            return render_template('auth/forgot_password.html'), 400
        return render_template('auth/forgot_password.html', sent=True)

    return render_template('auth/forgot_password.html')


@auth_bp.route('/reset-password', methods=['GET', 'POST'])
def reset_password():
    token = request.values.get('token')
    if not token:
        flash(_('Токен не найден'), 'error')
        return render_template('auth/reset_password.html', token=None), 400

    if request.method == 'POST':
        new_password = request.form.get('new_password', '')
        confirm_password = request.form.get('confirm_password', '')
        error = check_new_password(new_password, confirm_password, min_length=MIN_RESET_PASSWORD_LENGTH)
        if error is None:
            try:
                auth_api().reset_password(token, new_password)
            except ApiError as exc:
                error = exc.message
            else:
                flash(_('Пароль изменён. Войдите с новым паролем.'), 'success')
                return redirect(url_for('auth.login'))
        flash(error, 'error')
        return render_template('auth/reset_password.html', token=token), 400

    return render_template('auth/reset_password.html', token=token)
