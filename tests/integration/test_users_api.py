"""
Integration tests for the bundled users/auth API, dispatched in-process.
"""

import pytest

from elephina.dispatcher import DispatchState

from conftest import bearer, make_ctx


VALID_USER = {"username": "alice", "email": "alice@example.com", "password": "secret1"}


def call(app, method, path, body=None, headers=None):
    """Dispatch through App.handle() and return (status, json, response)."""
    response = app.handle(make_ctx(method, path, body=body, headers=headers))
    return response.status, response.json, response


def register(app, **overrides):
    user = dict(VALID_USER, **overrides)
    status, body, _ = call(app, "POST", "/auth/register", user)
    assert status == 201, body
    return body["data"]


def login(app, email="alice@example.com", password="secret1"):
    status, body, _ = call(app, "POST", "/auth/login", {"email": email, "password": password})
    assert status == 200, body
    return {"Authorization": f"Bearer {body['data']['token']}"}


class TestHome:
    """GET / and GET /api."""

    @pytest.mark.parametrize("path", ["/", "/api", "/api/"])
    def test_index(self, app, path):
        status, body, _ = call(app, "GET", path)
        assert status == 200
        assert body == {"data": {"status": "API is running"}, "message": "Welcome to the Elephina API!"}

    def test_unknown_route(self, app):
        status, body, _ = call(app, "GET", "/nonexistent")
        assert status == 404
        assert body == {"error": "Route not found"}

    def test_wrong_method(self, app, auth_headers):
        status, body, response = call(app, "PATCH", "/users/1", {"username": "x"}, auth_headers)
        assert status == 405
        assert response.get_header("Allow") == "DELETE, GET, PUT"

    def test_access_log_request_id(self, app):
        _, _, response = call(app, "GET", "/")
        assert len(response.get_header("X-Request-ID")) == 8


class TestCreateUser:
    """POST /users."""

    def test_created(self, app):
        status, body, _ = call(app, "POST", "/users", VALID_USER)

        assert status == 201
        assert body["message"] == "User created successfully."
        assert body["data"]["username"] == "alice"
        assert body["data"]["email"] == "alice@example.com"
        assert "password" not in body["data"]
        assert isinstance(body["data"]["userId"], int)

    def test_validation_failure(self, app):
        status, body, _ = call(
            app, "POST", "/users", {"username": "ab", "email": "not-an-email", "password": "x"}
        )

        assert status == 422
        assert body["error"] == "Validation failed."
        assert set(body["validation"]) == {"username", "email", "password"}
        assert body["validation"]["username"] == ["The username field must be at least 3 characters."]

    def test_empty_body(self, app):
        status, body, _ = call(app, "POST", "/users", {})
        assert status == 422
        assert set(body["validation"]) == {"username", "email", "password"}

    def test_duplicate_email(self, app):
        call(app, "POST", "/users", VALID_USER)
        status, body, _ = call(app, "POST", "/users", dict(VALID_USER, username="alice2"))

        assert status == 409
        assert body == {"error": "This email address is already in use."}

    def test_password_is_hashed(self, app):
        call(app, "POST", "/users", VALID_USER)
        row = app.db.fetch_one("SELECT password FROM users WHERE email = ?", ("alice@example.com",))
        assert row["password"] != "secret1"
        assert row["password"].startswith("pbkdf2_sha256$")


class TestProtectedRoutes:
    """Routes behind AuthMiddleware."""

    @pytest.mark.parametrize("method, path", [
        ("GET", "/users"),
        ("GET", "/users/1"),
        ("PUT", "/users/1"),
        ("DELETE", "/users/1"),
        ("POST", "/auth/logout"),
    ])
    def test_requires_token(self, app, method, path):
        status, body, _ = call(app, method, path)
        assert status == 401
        assert body == {"error": "Unauthorized: authentication token missing."}

    def test_rejected_before_handler(self, app):
        """A 401 on DELETE leaves the user in place."""
        user = register(app)
        status, _, _ = call(app, "DELETE", f"/users/{user['userId']}",
                            headers={"Authorization": "Bearer forged.token.value"})
        assert status == 401
        assert app.db.fetch_one("SELECT * FROM users WHERE userId = ?", (user["userId"],)) is not None


class TestUserCrud:
    """GET/PUT/DELETE /users/:id with a valid token."""

    def test_list(self, app, auth_headers):
        register(app)
        register(app, username="bob", email="bob@example.com")

        status, body, _ = call(app, "GET", "/users", headers=auth_headers)
        assert status == 200
        assert body["message"] == "Users retrieved successfully."
        assert [u["username"] for u in body["data"]] == ["alice", "bob"]
        assert all("password" not in u for u in body["data"])

    def test_get_one(self, app, auth_headers):
        user = register(app)
        status, body, _ = call(app, "GET", f"/users/{user['userId']}", headers=auth_headers)
        assert status == 200
        assert body["data"]["email"] == "alice@example.com"

    def test_get_missing(self, app, auth_headers):
        status, body, _ = call(app, "GET", "/users/999", headers=auth_headers)
        assert status == 404
        assert body == {"error": "User not found."}

    @pytest.mark.parametrize("user_id", ["abc", "-1", "1.5", "²", "٣", "99999999999999999999999"])
    def test_invalid_id(self, app, auth_headers, user_id):
        status, body, _ = call(app, "GET", f"/users/{user_id}", headers=auth_headers)
        assert status == 400
        assert body == {"error": "User ID must be a valid number."}

    def test_largest_id_is_not_found(self, app, auth_headers):
        status, body, _ = call(app, "GET", "/users/9223372036854775807", headers=auth_headers)
        assert status == 404
        assert body == {"error": "User not found."}

    def test_update(self, app):
        user = register(app)
        headers = login(app)

        status, body, _ = call(app, "PUT", f"/users/{user['userId']}", {"username": "alicia"}, headers)
        assert status == 200
        assert body["message"] == "User updated successfully."
        assert body["data"]["username"] == "alicia"
        assert body["data"]["email"] == "alice@example.com"

    def test_update_password_allows_new_login(self, app):
        user = register(app)
        headers = login(app)

        status, _, _ = call(app, "PUT", f"/users/{user['userId']}", {"password": "newpass1"}, headers)
        assert status == 200
        login(app, password="newpass1")

    def test_update_ignores_unknown_fields(self, app, auth_headers):
        user = register(app)
        status, body, _ = call(app, "PUT", f"/users/{user['userId']}", {"is_admin": True}, auth_headers)
        assert status == 400
        assert body == {"error": "No data provided for update."}

    def test_update_validation(self, app, auth_headers):
        user = register(app)
        status, body, _ = call(app, "PUT", f"/users/{user['userId']}", {"email": "broken"}, auth_headers)
        assert status == 422
        assert set(body["validation"]) == {"email"}

    def test_update_missing_user(self, app, auth_headers):
        status, body, _ = call(app, "PUT", "/users/999", {"username": "ghost"}, auth_headers)
        assert status == 404

    def test_update_email_taken(self, app, auth_headers):
        alice = register(app)
        register(app, username="bob", email="bob@example.com")

        status, body, _ = call(
            app, "PUT", f"/users/{alice['userId']}", {"email": "bob@example.com"}, auth_headers
        )
        assert status == 409
        assert body == {"error": "This email address is already used by another account."}

    def test_update_same_email_allowed(self, app, auth_headers):
        alice = register(app)
        status, _, _ = call(
            app, "PUT", f"/users/{alice['userId']}", {"email": "alice@example.com"}, auth_headers
        )
        assert status == 200

    def test_delete(self, app, auth_headers):
        user = register(app)
        path = f"/users/{user['userId']}"

        status, body, _ = call(app, "DELETE", path, headers=auth_headers)
        assert status == 200
        assert body == {"data": [], "message": "User deleted successfully."}

        status, _, _ = call(app, "GET", path, headers=auth_headers)
        assert status == 404
        status, _, _ = call(app, "DELETE", path, headers=auth_headers)
        assert status == 404


class TestAuth:
    """POST /auth/register, /auth/login, /auth/logout."""

    def test_register(self, app):
        status, body, _ = call(app, "POST", "/auth/register", VALID_USER)
        assert status == 201
        assert body["message"] == "Registration successful."
        assert "password" not in body["data"]

    def test_register_duplicate(self, app):
        register(app)
        status, body, _ = call(app, "POST", "/auth/register", VALID_USER)
        assert status == 409

    def test_login(self, app, config):
        user = register(app)
        status, body, _ = call(app, "POST", "/auth/login",
                               {"email": "alice@example.com", "password": "secret1"})

        assert status == 200
        assert body["message"] == "Login successful."
        assert body["data"]["user"]["userId"] == user["userId"]
        assert "password" not in body["data"]["user"]
        assert body["data"]["expires_in"] == config.jwt_expiration
        assert body["data"]["token"].count(".") == 2

    @pytest.mark.parametrize("credentials", [
        {"email": "alice@example.com", "password": "wrong-password"},
        {"email": "nobody@example.com", "password": "secret1"},
    ])
    def test_login_invalid_credentials(self, app, credentials):
        register(app)
        status, body, _ = call(app, "POST", "/auth/login", credentials)
        assert status == 401
        assert body == {"error": "Invalid credentials."}

    def test_login_validation(self, app):
        status, body, _ = call(app, "POST", "/auth/login", {"email": "nope"})
        assert status == 422
        assert set(body["validation"]) == {"email", "password"}

    def test_login_token_opens_protected_routes(self, app):
        register(app)
        headers = login(app)
        status, _, _ = call(app, "GET", "/users", headers=headers)
        assert status == 200

    def test_token_from_other_secret_rejected(self, app):
        status, _, _ = call(app, "GET", "/users", headers=bearer(secret="someone-else"))
        assert status == 401

    def test_logout(self, app, auth_headers):
        status, body, _ = call(app, "POST", "/auth/logout", headers=auth_headers)
        assert status == 200
        assert body == {"data": [], "message": "Logout successful."}


class TestAppApi:
    """Registering custom routes on the bundled App."""

    def test_decorator_route(self, app):
        @app.get("/ping/:name")
        def ping(ctx, response):
            response.success({"pong": ctx.param("name")}).send()

        status, body, _ = call(app, "GET", "/ping/bob")
        assert status == 200
        assert body["data"] == {"pong": "bob"}

    def test_dispatch_exposes_state(self, app):
        result = app.dispatch(make_ctx("GET", "/users"))
        assert result.state is DispatchState.REJECTED
        assert result.status == 401

    def test_handler_crash_is_500(self, app):
        app.post("/crash", lambda ctx, response: 1 / 0)
        status, body, _ = call(app, "POST", "/crash", {})
        assert status == 500
        assert body == {"error": "Internal Server Error"}

    def test_extra_headers_survive_crash(self, app):
        def crash(ctx, response):
            response.success({"partial": True})
            raise RuntimeError("boom")

        app.post("/crash", crash)
        response = app.handle(make_ctx("POST", "/crash", {}), headers={"Connection": "close"})

        assert response.status == 500
        assert response.get_header("Connection") == "close"
        assert len(response.get_header("X-Request-ID")) == 8
