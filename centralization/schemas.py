"""Typed views over the JSON returned by the reporting backend."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

ROLES = ('admin', 'moderator', 'user')

ROLE_LABELS = {
    'admin': 'Администратор',
    'moderator': 'Модератор',
    'user': 'Пользователь',
}


class Organization(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: int
    name: str
    code: Optional[str] = None
    description: Optional[str] = None


class User(BaseModel):
    # Unknown backend fields survive a store/restore round trip
    model_config = ConfigDict(extra='allow')

    id: int
    username: str
    full_name: str = ''
    role: str = 'user'
    email: Optional[str] = None
    phone: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    position: Optional[str] = None
    department: Optional[str] = None
    avatar_url: Optional[str] = None
    comment: Optional[str] = None

    is_active: bool = True
    blocked_reason: Optional[str] = None
    is_first_login: bool = False
    require_password_change: bool = False
    disable_password_change: bool = False
    show_in_selection: bool = True
    is_online: bool = False

    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    available_organizations: List[int] = Field(default_factory=list)
    accessible_users: List[int] = Field(default_factory=list)

    @property
    def all_emails(self):
        emails = list(self.emails)
        if self.email and self.email not in emails:
            emails.insert(0, self.email)
        return emails

    @property
    def all_phones(self):
        phones = list(self.phones)
        if self.phone and self.phone not in phones:
            phones.insert(0, self.phone)
        return phones

    @property
    def role_label(self):
        return ROLE_LABELS.get(self.role, self.role)


class LoginResponse(BaseModel):
    token: str
    user: User
    require_password_change: bool = False


class UserList(BaseModel):
    """Paginated `/users` response."""
    items: List[User] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20
    total_pages: int = 0
