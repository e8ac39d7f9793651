"""Tests for the backend REST client and the auth/users/organizations wrappers."""

import io
import json

import pytest
import requests

from centralization.api import ApiClient, ApiError, AuthApi, OrganizationsApi, UnauthorizedError, UsersApi
from centralization.api.client import build_query_params
from centralization.schemas import User
from centralization.session_store import TOKEN_KEY, USER_KEY, MemorySessionStore

from conftest import API_URL, PLAIN_USER, FakeHttp


@pytest.fixture
def store():
    return MemorySessionStore({TOKEN_KEY: "secret"})


@pytest.fixture
def api(http, store):
    return ApiClient(API_URL, store, http=http)


class TestApiClient:
    def test_bearer_token_is_attached(self, api, http) -> None:
        http.add("GET", "/ping", {"ok": True})
        assert api.get("/ping") == {"ok": True}
        assert http.last("GET", "/ping")["headers"]["Authorization"] == "Bearer secret"

    def test_anonymous_request_has_no_token(self, api, http) -> None:
        http.add("POST", "/auth/login", {"token": "t", "user": PLAIN_USER})
        api.post("/auth/login", {"username": "u"}, include_auth=False)
        call = http.last("POST", "/auth/login")
        assert "Authorization" not in call["headers"]
        assert call["json"] == {"username": "u"}

    def test_query_params_drop_empty_values(self, api, http) -> None:
        http.add("GET", "/users", {"items": []})
        api.get("/users", params={"page": 1, "sort_by": None, "q": "", "sort_desc": True})
        assert http.last("GET", "/users")["params"] == {"page": 1, "sort_desc": "true"}

    def test_build_query_params(self) -> None:
        assert build_query_params(None) == {}
        assert build_query_params({"flag": False, "n": 0}) == {"flag": "false", "n": 0}

    def test_error_body_becomes_api_error(self, api, http) -> None:
        http.add("POST", "/users", {"error": "Логин занят", "details": {"field": "username"}}, status=409)
        with pytest.raises(ApiError) as excinfo:
            api.post("/users", {})
        assert excinfo.value.message == "Логин занят"
        assert excinfo.value.status_code == 409
        assert excinfo.value.details == {"field": "username"}

    def test_error_without_body(self, api, http) -> None:
        http.add("GET", "/boom", None, status=500)
        with pytest.raises(ApiError) as excinfo:
            api.get("/boom")
        assert excinfo.value.message == "Unknown error"

    def test_error_without_message_uses_status(self, api, http) -> None:
        http.add("GET", "/boom", {"details": "x"}, status=502)
        with pytest.raises(ApiError, match="HTTP 502"):
            api.get("/boom")

    def test_no_content(self, api, http) -> None:
        http.add("DELETE", "/users/3", None, status=204)
        assert api.delete("/users/3") == {}

    def test_transport_failure(self, api, http) -> None:
        http.fail("GET", "/ping", requests.ConnectionError("connection refused"))
        with pytest.raises(ApiError, match="connection refused"):
            api.get("/ping")

    def test_401_clears_the_session(self, api, http, store) -> None:
        store.set(USER_KEY, "{}")
        http.add("GET", "/auth/me", {"error": "Unauthorized"}, status=401)
        with pytest.raises(UnauthorizedError) as excinfo:
            api.get("/auth/me")
        assert not excinfo.value.force_logout
        assert store.get(TOKEN_KEY) is None
        assert store.get(USER_KEY) is None

    def test_forced_logout_carries_reason(self, api, http, store) -> None:
        http.add("GET", "/users", {"force_logout": True, "reason": "Пароль изменён"}, status=401)
        with pytest.raises(UnauthorizedError) as excinfo:
            api.get("/users")
        assert excinfo.value.force_logout
        assert excinfo.value.reason == "Пароль изменён"
        assert store.get(TOKEN_KEY) is None

    def test_forced_logout_default_reason(self, api, http) -> None:
        http.add("GET", "/users", {"force_logout": True}, status=401)
        with pytest.raises(UnauthorizedError) as excinfo:
            api.get("/users")
        assert excinfo.value.reason == "Session expired"

    def test_upload_requires_token(self, http) -> None:
        api = ApiClient(API_URL, MemorySessionStore(), http=http)
        with pytest.raises(ApiError):
            api.upload("/users/3/avatar", files={})
        assert http.calls == []


class TestAuthApi:
    def test_login_stores_token_and_user(self, http) -> None:
        store = MemorySessionStore()
        http.add("POST", "/auth/login", {"token": "abc", "user": PLAIN_USER, "require_password_change": True})
        auth = AuthApi(ApiClient(API_URL, store, http=http))

        response = auth.login("ivanov", "pw")

        assert response.require_password_change
        assert auth.is_authenticated()
        assert auth.get_token() == "abc"
        assert auth.get_current_user().username == "ivanov"

    def test_cached_user_round_trip_keeps_every_field(self, http) -> None:
        store = MemorySessionStore()
        user = dict(PLAIN_USER, tags=["финансы"], is_online=True)
        http.add("POST", "/auth/login", {"token": "abc", "user": user})
        auth = AuthApi(ApiClient(API_URL, store, http=http))
        auth.login("ivanov", "pw")

        restored = auth.get_current_user()
        assert restored == User.model_validate(user)
        assert json.loads(store.get(USER_KEY))["tags"] == ["финансы"]

    def test_malformed_cached_user_is_ignored(self) -> None:
        auth = AuthApi(ApiClient(API_URL, MemorySessionStore({USER_KEY: "{not json"}), http=FakeHttp()))
        assert auth.get_current_user() is None

    def test_me_refreshes_cache(self, api, http, store) -> None:
        http.add("GET", "/auth/me", {"user": dict(PLAIN_USER, full_name="Иванов И.")})
        assert AuthApi(api).me().full_name == "Иванов И."
        assert "Иванов И." in store.get(USER_KEY)

    def test_change_password_sends_old_password_only_when_given(self, api, http) -> None:
        http.add("POST", "/auth/change-password", {"message": "ok"})
        http.add("GET", "/auth/me", {"user": PLAIN_USER})
        auth = AuthApi(api)

        auth.change_password("newpass", "newpass")
        assert http.last("POST", "/auth/change-password")["json"] == {
            "new_password": "newpass", "confirm_password": "newpass"}

        auth.change_password("newpass", "newpass", old_password="old")
        assert http.last("POST", "/auth/change-password")["json"]["old_password"] == "old"

    def test_logout_clears_even_when_backend_fails(self, api, http, store) -> None:
        http.add("POST", "/auth/logout", {"error": "down"}, status=503)
        AuthApi(api).logout()
        assert store.get(TOKEN_KEY) is None

    def test_password_reset_calls_are_anonymous(self, api, http) -> None:
        http.add("POST", "/auth/forgot-password", {"message": "sent"})
        http.add("POST", "/auth/reset-password", {"message": "done"})
        auth = AuthApi(api)
        auth.forgot_password("ivanov")
        auth.reset_password("tok", "longpassword")
        assert "Authorization" not in http.last("POST", "/auth/forgot-password")["headers"]
        assert http.last("POST", "/auth/reset-password")["json"] == {"token": "tok", "new_password": "longpassword"}


class TestUsersApi:
    @pytest.mark.parametrize("key", ["users", "items"])
    def test_get_all_accepts_both_list_keys(self, api, http, key) -> None:
        http.add("GET", "/users", {key: [PLAIN_USER]})
        assert [u.id for u in UsersApi(api).get_all()] == [3]

    def test_get_all_unexpected_format(self, api, http) -> None:
        http.add("GET", "/users", {"data": "?"})
        assert UsersApi(api).get_all() == []

    def test_get_users_paginated(self, api, http) -> None:
        http.add("GET", "/users", {"items": [PLAIN_USER], "total": 41, "page": 2, "page_size": 20,
                                   "total_pages": 3})
        result = UsersApi(api).get_users(page=2, page_size=20, sort_by="username", sort_desc=False)
        assert result.total == 41
        assert result.items[0].username == "ivanov"
        assert http.last("GET", "/users")["params"] == {"page": 2, "page_size": 20, "sort_by": "username",
                                                       "sort_desc": "false"}

    def test_crud(self, api, http) -> None:
        users = UsersApi(api)
        http.add("GET", "/users/3", {"user": PLAIN_USER})
        http.add("POST", "/users", {"user": PLAIN_USER})
        http.add("PUT", "/users/3", lambda kwargs: {"user": dict(PLAIN_USER, **kwargs["json"])})
        http.add("DELETE", "/users/3", None, status=204)

        assert users.get_by_id(3).full_name == "Иванов Иван"
        assert users.create({"username": "ivanov"}).id == 3
        assert users.update(3, {"position": "Бухгалтер"}).position == "Бухгалтер"
        users.delete(3)
        assert http.last("DELETE", "/users/3") is not None

    def test_avatar_upload_is_multipart(self, api, http) -> None:
        http.add("POST", "/users/3/avatar", {"avatar_url": "/media/3.png"})
        url = UsersApi(api).upload_avatar(3, "me.png", io.BytesIO(b"png"), "image/png")
        call = http.last("POST", "/users/3/avatar")
        assert url == "/media/3.png"
        assert call["files"]["avatar"][0] == "me.png"
        assert "Content-Type" not in call["headers"]


class TestOrganizationsApi:
    @pytest.mark.parametrize("payload", [
        [{"id": 1, "name": "Акимат"}],
        {"organizations": [{"id": 1, "name": "Акимат"}]},
    ])
    def test_get_all_shapes(self, api, http, payload) -> None:
        http.add("GET", "/organizations", payload)
        assert [o.name for o in OrganizationsApi(api).get_all()] == ["Акимат"]

    def test_get_by_id(self, api, http) -> None:
        http.add("GET", "/organizations/1", {"organization": {"id": 1, "name": "Акимат", "code": "AK"}})
        assert OrganizationsApi(api).get_by_id(1).code == "AK"
