"""Authentication endpoints and the locally cached session."""
import logging

from pydantic import ValidationError

from centralization.api.client import ApiError
from centralization.schemas import LoginResponse, User
from centralization.session_store import TOKEN_KEY, USER_KEY

logger = logging.getLogger(__name__)


class AuthApi:

    def __init__(self, client):
        self.client = client
        self.store = client.store

    def _remember_user(self, user):
        self.store.set(USER_KEY, user.model_dump_json())

    def login(self, username, password):
        data = self.client.post('/auth/login', {'username': username, 'password': password}, include_auth=False)
        response = LoginResponse.model_validate(data)
        self.store.set(TOKEN_KEY, response.token)
        self._remember_user(response.user)
        logger.info("User %s logged in", response.user.username)
        return response

    def me(self):
        data = self.client.get('/auth/me')
        user = User.model_validate(data.get('user', data))
        self._remember_user(user)
        return user

    def change_password(self, new_password, confirm_password, old_password=None):
        payload = {'new_password': new_password, 'confirm_password': confirm_password}
        if old_password:
            payload['old_password'] = old_password
        self.client.post('/auth/change-password', payload)
        return self.me()

    def logout(self):
        """Tell the backend; local credentials are dropped no matter what."""
        try:
            self.client.post('/auth/logout')
        except ApiError as exc:
            logger.error("Logout error: %s", exc.message)
        finally:
            self.store.clear()

    def forgot_password(self, username_or_email):
        return self.client.post('/auth/forgot-password', {'username_or_email': username_or_email},
                                include_auth=False)

    def reset_password(self, token, new_password):
        return self.client.post('/auth/reset-password', {'token': token, 'new_password': new_password},
                                include_auth=False)

    def is_authenticated(self):
        return bool(self.store.get(TOKEN_KEY))

    def get_current_user(self):
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed cached user")
            return None

    def get_token(self):
        return self.store.get(TOKEN_KEY)
