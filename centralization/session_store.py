"""
Session stores - where the auth token and cached user live.

The API client and the auth module only talk to the small get/set/clear
interface below, so the same code runs against the Flask cookie session in
the web app and against a plain dict in tests or scripts.
"""
from flask import session

TOKEN_KEY = 'token'
USER_KEY = 'user'
AUTH_KEYS = (TOKEN_KEY, USER_KEY)


class SessionStore:
    """Interface for persistent per-client state."""

    def get(self, key, default=None):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def clear(self, key=None):
        """Remove one key, or the auth keys when no key is given."""
        raise NotImplementedError


class MemorySessionStore(SessionStore):

    def __init__(self, initial=None):
        self._data = dict(initial or {})

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value

    def clear(self, key=None):
        keys = (key,) if key else AUTH_KEYS
        for k in keys:
            self._data.pop(k, None)


class FlaskSessionStore(SessionStore):
    """Stores values in the signed Flask session cookie of the current request."""

    def get(self, key, default=None):
        return session.get(key, default)

    def set(self, key, value):
        session[key] = value

    def clear(self, key=None):
        keys = (key,) if key else AUTH_KEYS
        for k in keys:
            session.pop(k, None)
