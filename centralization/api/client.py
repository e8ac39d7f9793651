"""
Base REST client for the reporting backend.

Attaches the bearer token from the session store, converts error responses
into exceptions and wipes local credentials on 401.
"""
import logging

import requests

from centralization.session_store import TOKEN_KEY

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class ApiError(Exception):
    """Non-2xx response or transport failure. `message` is safe to show to users."""

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class UnauthorizedError(ApiError):
    """401 from the backend. The local session has already been cleared."""

    def __init__(self, message='Unauthorized', reason=None, force_logout=False):
        super().__init__(message, status_code=401)
        self.reason = reason
        self.force_logout = force_logout


def build_query_params(params):
    """Drop None and empty-string values, stringify booleans the way the backend expects."""
    query = {}
    for key, value in (params or {}).items():
        if value is None or value == '':
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        query[key] = value
    return query


class ApiClient:

    def __init__(self, base_url, store, timeout=DEFAULT_TIMEOUT, http=None):
        self.base_url = base_url.rstrip('/')
        self.store = store
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self, include_auth=True, json_body=True):
        headers = {'Accept': 'application/json'}
        if json_body:
            headers['Content-Type'] = 'application/json'
        if include_auth:
            token = self.store.get(TOKEN_KEY)
            if token:
                headers['Authorization'] = f'Bearer {token}'
        return headers

    @staticmethod
    def _json(response, default=None):
        try:
            return response.json()
        except ValueError:
            return default

    def _handle_response(self, response):
        if response.status_code == 401:
            data = self._json(response, {})
            if not isinstance(data, dict):
                data = {}
            self.store.clear()
            message = data.get('error') or 'Unauthorized'
            if data.get('force_logout'):
                reason = data.get('reason') or 'Session expired'
                logger.warning("Forced logout: %s", reason)
                raise UnauthorizedError(message, reason=reason, force_logout=True)
            raise UnauthorizedError(message)

        if not response.ok:
            data = self._json(response, {'error': 'Unknown error'})
            if not isinstance(data, dict):
                data = {'error': 'Unknown error'}
            message = data.get('error') or f'HTTP {response.status_code}'
            logger.warning("API error %s: %s", response.status_code, message)
            raise ApiError(message, status_code=response.status_code, details=data.get('details'))

        if response.status_code == 204:
            return {}
        return self._json(response, {})

    def request(self, method, endpoint, data=None, params=None, include_auth=True, files=None):
        url = f'{self.base_url}{endpoint}'
        kwargs = {
            'headers': self._headers(include_auth, json_body=files is None),
            'timeout': self.timeout,
        }
        if params:
            kwargs['params'] = build_query_params(params)
        if files is not None:
            kwargs['files'] = files
        elif data is not None:
            kwargs['json'] = data

        logger.debug("API %s %s", method, url)
        try:
            response = self.http.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.error("API %s %s failed: %s", method, url, exc)
            raise ApiError(str(exc)) from exc
        return self._handle_response(response)

    def get(self, endpoint, params=None):
        return self.request('GET', endpoint, params=params)

    def post(self, endpoint, data=None, include_auth=True):
        return self.request('POST', endpoint, data=data, include_auth=include_auth)

    def put(self, endpoint, data):
        return self.request('PUT', endpoint, data=data)

    def delete(self, endpoint):
        return self.request('DELETE', endpoint)

    def upload(self, endpoint, files):
        """Multipart POST; `files` is passed straight to requests."""
        if not self.store.get(TOKEN_KEY):
            raise ApiError('No authentication token found. Please log in again.')
        return self.request('POST', endpoint, files=files)
