"""Organizations endpoints (read-only)."""
from centralization.schemas import Organization


class OrganizationsApi:

    def __init__(self, client):
        self.client = client

    def get_all(self):
        data = self.client.get('/organizations')
        if isinstance(data, dict):
            data = data.get('organizations') or []
        return [Organization.model_validate(o) for o in data]

    def get_by_id(self, org_id):
        data = self.client.get(f'/organizations/{org_id}')
        return Organization.model_validate(data.get('organization', data))
