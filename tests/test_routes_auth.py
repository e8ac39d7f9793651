"""Tests for login/logout, password routes and the forced logout handler."""

import json

from conftest import ADMIN, PLAIN_USER, sign_in


def flashes(client):
    with client.session_transaction() as sess:
        return [message for _, message in sess.get("_flashes", [])]


class TestLogin:
    def test_pages_require_login(self, client) -> None:
        resp = client.get("/")
        assert resp.status_code == 302
        assert resp.headers["Location"].startswith("/login")

    def test_login_page_renders(self, client) -> None:
        resp = client.get("/login")
        assert resp.status_code == 200
        assert "Вход в систему" in resp.get_data(as_text=True)

    def test_empty_credentials(self, client, http) -> None:
        resp = client.post("/login", data={"username": " ", "password": ""})
        assert resp.status_code == 400
        assert http.calls == []

    def test_successful_login(self, client, http) -> None:
        http.add("POST", "/auth/login", {"token": "tok", "user": PLAIN_USER})

        resp = client.post("/login", data={"username": "ivanov", "password": "secret"})

        assert resp.status_code == 302
        assert resp.headers["Location"] == "/"
        assert http.last("POST", "/auth/login")["json"] == {"username": "ivanov", "password": "secret"}
        with client.session_transaction() as sess:
            assert sess["token"] == "tok"
            assert json.loads(sess["user"])["username"] == "ivanov"

    def test_login_follows_local_next_only(self, client, http) -> None:
        http.add("POST", "/auth/login", {"token": "tok", "user": PLAIN_USER})
        resp = client.post("/login?next=/reports", data={"username": "ivanov", "password": "x"})
        assert resp.headers["Location"] == "/reports"

        resp = client.post("/login?next=//evil.example", data={"username": "ivanov", "password": "x"})
        assert resp.headers["Location"] == "/"

        resp = client.post("/login", query_string={"next": "/\\evil.example"},
                           data={"username": "ivanov", "password": "x"})
        assert resp.headers["Location"] == "/"

    def test_login_with_required_password_change(self, client, http) -> None:
        http.add("POST", "/auth/login", {"token": "tok", "user": PLAIN_USER, "require_password_change": True})
        resp = client.post("/login", data={"username": "ivanov", "password": "x"})
        assert resp.headers["Location"] == "/change-password"

    def test_bad_credentials_show_backend_message(self, client, http) -> None:
        http.add("POST", "/auth/login", {"error": "Неверный логин или пароль"}, status=401)
        resp = client.post("/login", data={"username": "ivanov", "password": "wrong"})
        assert resp.status_code == 401
        assert "Неверный логин или пароль" in resp.get_data(as_text=True)

    def test_logout_clears_session(self, user_client, http) -> None:
        http.add("POST", "/auth/logout", {"message": "ok"})
        resp = user_client.post("/logout")
        assert resp.headers["Location"] == "/login"
        with user_client.session_transaction() as sess:
            assert "token" not in sess
            assert "user" not in sess


class TestForcedLogout:
    def test_backend_401_redirects_to_login_with_reason(self, admin_client, http) -> None:
        http.add("GET", "/users", {"force_logout": True, "reason": "Учётная запись заблокирована"}, status=401)

        resp = admin_client.get("/users")

        assert resp.status_code == 302
        assert resp.headers["Location"].startswith("/login?reason=")
        with admin_client.session_transaction() as sess:
            assert "token" not in sess
            assert "report_wizard" not in sess

    def test_plain_401_redirects_without_reason(self, admin_client, http) -> None:
        http.add("GET", "/users", {"error": "Unauthorized"}, status=401)
        resp = admin_client.get("/users")
        assert resp.headers["Location"] == "/login"

    def test_reason_is_shown_on_login_page(self, client) -> None:
        resp = client.get("/login", query_string={"reason": "Сессия истекла"})
        assert "Сессия истекла" in resp.get_data(as_text=True)


class TestChangePassword:
    def test_requires_current_password(self, user_client, http) -> None:
        resp = user_client.post("/change-password", data={"new_password": "newpass", "confirm_password": "newpass"})
        assert resp.status_code == 400
        assert http.last("POST", "/auth/change-password") is None

    def test_mismatch(self, user_client) -> None:
        resp = user_client.post("/change-password", data={
            "old_password": "old", "new_password": "newpass", "confirm_password": "other"})
        assert resp.status_code == 400
        assert "Пароли не совпадают" in resp.get_data(as_text=True)

    def test_first_login_skips_current_password(self, client, http) -> None:
        sign_in(client, dict(PLAIN_USER, is_first_login=True))
        http.add("POST", "/auth/change-password", {"message": "ok"})
        http.add("GET", "/auth/me", {"user": PLAIN_USER})

        resp = client.post("/change-password", data={"new_password": "newpass", "confirm_password": "newpass"})

        assert resp.headers["Location"] == "/"
        assert "old_password" not in http.last("POST", "/auth/change-password")["json"]

    def test_disabled_password_change(self, client) -> None:
        sign_in(client, dict(ADMIN, disable_password_change=True))
        resp = client.get("/change-password")
        assert resp.headers["Location"] == "/"
        assert "Смена пароля для вашей учётной записи отключена." in flashes(client)

    def test_backend_error_is_flashed(self, user_client, http) -> None:
        http.add("POST", "/auth/change-password", {"error": "Неверный текущий пароль"}, status=400)
        resp = user_client.post("/change-password", data={
            "old_password": "bad", "new_password": "newpass", "confirm_password": "newpass"})
        assert resp.status_code == 400
        assert "Неверный текущий пароль" in resp.get_data(as_text=True)


class TestPasswordRecovery:
    def test_forgot_password(self, client, http) -> None:
        http.add("POST", "/auth/forgot-password", {"message": "sent"})
        resp = client.post("/forgot-password", data={"username_or_email": "ivanov"})
        assert resp.status_code == 200
        assert "Проверьте ваш email" in resp.get_data(as_text=True)

    def test_reset_without_token(self, client) -> None:
        assert client.get("/reset-password").status_code == 400

    def test_reset_needs_eight_characters(self, client, http) -> None:
        resp = client.post("/reset-password", data={"token": "t", "new_password": "short12",
                                                    "confirm_password": "short12"})
        assert resp.status_code == 400
        assert http.calls == []

    def test_reset(self, client, http) -> None:
        http.add("POST", "/auth/reset-password", {"message": "ok"})
        resp = client.post("/reset-password", data={"token": "t", "new_password": "longpassword",
                                                    "confirm_password": "longpassword"})
        assert resp.headers["Location"] == "/login"


class TestMain:
    def test_index_lists_reports(self, user_client) -> None:
        resp = user_client.get("/")
        body = resp.get_data(as_text=True)
        assert resp.status_code == 200
        assert "Сводная ведомость остатков ОС" in body
        assert "Иванов Иван" in body

    def test_set_language(self, client) -> None:
        resp = client.get("/set_language/en")
        assert "babel_translation=en" in resp.headers["Set-Cookie"]
        resp = client.get("/set_language/de")
        assert "babel_translation=ru" in resp.headers["Set-Cookie"]


def test_cli_report_configs(app) -> None:
    result = app.test_cli_runner().invoke(args=["report-configs"])
    assert result.exit_code == 0
    assert "os_balance" in result.output
    assert "startPeriod:date*" in result.output


def test_cli_init_db(app) -> None:
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert "Initialized the database." in result.output
