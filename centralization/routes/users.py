"""User management routes - list, create, edit, delete, avatar."""
import logging
from flask import Blueprint, render_template, redirect, url_for, request, flash, abort, current_app
from flask_babel import gettext as _
from centralization.api import ApiError, UnauthorizedError, organizations_api, users_api
from centralization.routes.auth import staff_required, current_user
from centralization.schemas import ROLE_LABELS
from centralization.users.forms import assignable_roles, parse_user_form
from centralization.users.listing import (
    PER_PAGE_CHOICES, QUICK_FILTERS, UserListQuery, apply_query, online_count, quick_filter_counts,
    role_counts, visible_to,
)

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)

ALLOWED_AVATAR_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


def _organizations():
    """Organization choices for the form; empty when the backend can't list them."""
    try:
        return organizations_api().get_all()
    except UnauthorizedError:
        raise
    except ApiError as exc:
        logger.warning("Could not load organizations: %s", exc.message)
        flash(_('Не удалось загрузить список организаций.'), 'warning')
        return []


def _get_manageable_user(user_id):
    """Fetch a user the current viewer is allowed to see, or abort.

    Backend failures other than 404 are flashed and send the viewer back to the list.
    """
    try:
        user = users_api().get_by_id(user_id)
    except UnauthorizedError:
        raise
    except ApiError as exc:
        if exc.status_code == 404:
            abort(404)
        logger.warning("Could not load user %s: %s", user_id, exc.message)
        flash(exc.message, 'error')
        abort(redirect(url_for('users.users_list')))
    if not visible_to([user], current_user().role):
        abort(403)
    return user


def _form_context(**extra):
    viewer = current_user()
    context = dict(
        roles=assignable_roles(viewer.role),
        role_labels=ROLE_LABELS,
        organizations=_organizations(),
    )
    context.update(extra)
    return context


# ==================== LIST ====================

@users_bp.route('/users')
@staff_required
def users_list():
    """Searchable, filterable, sortable list of users."""
    viewer = current_user()
    query = UserListQuery.from_args(request.args, current_app.config['USERS_PER_PAGE'])

    try:
        users = users_api().get_all()
        load_error = None
    except UnauthorizedError:
        raise
    except ApiError as exc:
        logger.warning("Could not load users: %s", exc.message)
        users, load_error = [], exc.message

    visible = visible_to(users, viewer.role)
    page = apply_query(users, query, viewer_role=viewer.role)

    return render_template(
        'users/list.html',
        page=page,
        query=query,
        load_error=load_error,
        total_users=len(visible),
        online=online_count(visible),
        roles=role_counts(visible),
        quick_filters={name: label for name, (label, _predicate) in QUICK_FILTERS.items()},
        quick_counts=quick_filter_counts(visible),
        role_labels=ROLE_LABELS,
        per_page_choices=PER_PAGE_CHOICES,
    )


# ==================== CREATE ====================

@users_bp.route('/users/new', methods=['GET', 'POST'])
@staff_required
def user_create():
    """Show the create form / create a user."""
    if request.method == 'POST':
        payload, errors = parse_user_form(request.form, current_user().role, creating=True)
        if not errors:
            try:
                user = users_api().create(payload)
            except UnauthorizedError:
                raise
            except ApiError as exc:
                flash(exc.message, 'error')
            else:
                flash(_('Пользователь %(name)s создан.', name=user.username), 'success')
                return redirect(url_for('users.user_detail', user_id=user.id))
        return render_template('users/form.html', **_form_context(user=None, form=request.form,
                                                                 errors=errors)), 400

    return render_template('users/form.html', **_form_context(user=None, form={}, errors={}))


# ==================== DETAIL / EDIT ====================

@users_bp.route('/users/<int:user_id>')
@staff_required
def user_detail(user_id):
    """View user details."""
    user = _get_manageable_user(user_id)
    return render_template('users/detail.html', user=user, role_labels=ROLE_LABELS)


@users_bp.route('/users/<int:user_id>/edit', methods=['GET', 'POST'])
@staff_required
def user_edit(user_id):
    """Edit user form / update user."""
    user = _get_manageable_user(user_id)
    viewer = current_user()

    if request.method == 'POST':
        payload, errors = parse_user_form(request.form, viewer.role, creating=False)

        # Nobody changes their own role or blocks themselves
        if user.id == viewer.id:
            payload['role'] = user.role
            payload['is_active'] = True
            errors.pop('role', None)

        if not errors:
            try:
                updated = users_api().update(user.id, payload)
            except UnauthorizedError:
                raise
            except ApiError as exc:
                flash(exc.message, 'error')
            else:
                flash(_('Пользователь обновлён.'), 'success')
                return redirect(url_for('users.user_detail', user_id=updated.id))
        return render_template('users/form.html', **_form_context(user=user, form=request.form,
                                                                 errors=errors)), 400

    return render_template('users/form.html', **_form_context(user=user, form={}, errors={}))


# ==================== DELETE ====================

@users_bp.route('/users/<int:user_id>/delete', methods=['POST'])
@staff_required
def user_delete(user_id):
    """Delete a user."""
    user = _get_manageable_user(user_id)

    # Prevent deleting yourself
    if user.id == current_user().id:
        flash(_('Нельзя удалить самого себя.'), 'error')
        return redirect(url_for('users.user_detail', user_id=user.id))

    try:
        users_api().delete(user.id)
    except UnauthorizedError:
        raise
    except ApiError as exc:
        flash(exc.message, 'error')
        return redirect(url_for('users.user_detail', user_id=user.id))

    flash(_('Пользователь %(name)s удалён.', name=user.username), 'success')
    return redirect(url_for('users.users_list'))


# ==================== AVATAR ====================

@users_bp.route('/users/<int:user_id>/avatar', methods=['POST'])
@staff_required
def avatar_upload(user_id):
    user = _get_manageable_user(user_id)
    upload = request.files.get('avatar')

    if upload is None or not upload.filename:
        flash(_('Выберите файл.'), 'error')
        return redirect(url_for('users.user_detail', user_id=user.id))

    extension = upload.filename.rsplit('.', 1)[-1].lower() if '.' in upload.filename else ''
    if extension not in ALLOWED_AVATAR_EXTENSIONS:
        flash(_('Недопустимый формат изображения.'), 'error')
        return redirect(url_for('users.user_detail', user_id=user.id))

    try:
        users_api().upload_avatar(user.id, upload.filename, upload.stream, upload.mimetype)
    except UnauthorizedError:
        raise
    except ApiError as exc:
        flash(exc.message, 'error')
    else:
        flash(_('Аватар обновлён.'), 'success')
    return redirect(url_for('users.user_detail', user_id=user.id))


@users_bp.route('/users/<int:user_id>/avatar/delete', methods=['POST'])
@staff_required
def avatar_delete(user_id):
    user = _get_manageable_user(user_id)
    try:
        users_api().delete_avatar(user.id)
    except UnauthorizedError:
        raise
    except ApiError as exc:
        flash(exc.message, 'error')
    else:
        flash(_('Аватар удалён.'), 'success')
    return redirect(url_for('users.user_detail', user_id=user.id))
