"""
Users endpoints: CRUD, paginated listing and avatar management.
"""
import logging

from centralization.schemas import User, UserList

logger = logging.getLogger(__name__)


class UsersApi:

    def __init__(self, client):
        self.client = client

    def get_all(self):
        """Full user list as used by the Users page (client-side filtering)."""
        data = self.client.get('/users')
        users = data.get('users') if isinstance(data, dict) else None
        if users is None and isinstance(data, dict):
            users = data.get('items')
        if not isinstance(users, list):
            logger.warning("Unexpected /users response format: %r", data)
            return []
        return [User.model_validate(u) for u in users]

    def get_users(self, page=None, page_size=None, sort_by=None, sort_desc=None):
        params = {'page': page, 'page_size': page_size, 'sort_by': sort_by, 'sort_desc': sort_desc}
        return UserList.model_validate(self.client.get('/users', params=params))

    def get_by_id(self, user_id):
        data = self.client.get(f'/users/{user_id}')
        return User.model_validate(data.get('user', data))

    def create(self, payload):
        data = self.client.post('/users', payload)
        return User.model_validate(data.get('user', data))

    def update(self, user_id, payload):
        logger.debug("Updating user %s with %s", user_id, sorted(payload))
        data = self.client.put(f'/users/{user_id}', payload)
        return User.model_validate(data.get('user', data))

    def delete(self, user_id):
        self.client.delete(f'/users/{user_id}')

    def upload_avatar(self, user_id, filename, stream, mimetype=None):
        data = self.client.upload(f'/users/{user_id}/avatar',
                                  files={'avatar': (filename, stream, mimetype or 'application/octet-stream')})
        logger.info("Avatar uploaded for user %s", user_id)
        return data.get('avatar_url')

    def delete_avatar(self, user_id):
        self.client.delete(f'/users/{user_id}/avatar')
