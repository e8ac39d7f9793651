"""API package - per-request accessors for the backend clients."""
from flask import current_app, g

from centralization.api.auth import AuthApi
from centralization.api.client import ApiClient, ApiError, UnauthorizedError
from centralization.api.organizations import OrganizationsApi
from centralization.api.users import UsersApi
from centralization.session_store import FlaskSessionStore

__all__ = ['ApiClient', 'ApiError', 'UnauthorizedError', 'AuthApi', 'UsersApi', 'OrganizationsApi',
           'get_client', 'auth_api', 'users_api', 'organizations_api']


def get_client():
    """ApiClient bound to the current request's session, created once per request."""
    if 'api_client' not in g:
        g.api_client = ApiClient(
            current_app.config['API_URL'],
            FlaskSessionStore(),
            timeout=current_app.config.get('API_TIMEOUT'),
            http=current_app.config.get('API_HTTP_SESSION'),
        )
    return g.api_client


def auth_api():
    return AuthApi(get_client())


def users_api():
    return UsersApi(get_client())


def organizations_api():
    return OrganizationsApi(get_client())
