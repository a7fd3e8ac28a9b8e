"""
Tests for the error envelope, the health check and the promote-user command.
"""
from api import create_app


def _boom_app(tmp_path, **overrides):
    app = create_app("testing", {"DATABASE_URL": f"sqlite:///{tmp_path / 'boom.db'}", **overrides})

    @app.get("/api/v1/boom")
    def boom():
        raise RuntimeError("kaboom")

    return app


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        resp = client.get("/api/v1/nothing-here")
        assert resp.status_code == 404
        assert resp.get_json() == {"success": False, "error": "NOT_FOUND", "message": "Resource not found"}

    def test_method_not_allowed(self, client):
        resp = client.delete("/api/v1/health")
        assert resp.status_code == 405
        assert resp.get_json()["error"] == "METHOD_NOT_ALLOWED"

    def test_unexpected_error_has_details_outside_production(self, tmp_path):
        app = _boom_app(tmp_path)
        resp = app.test_client().get("/api/v1/boom")
        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"] == "INTERNAL_ERROR"
        assert body["message"] == "An error occurred while processing your request."
        assert body["details"]["type"] == "RuntimeError"
        assert body["details"]["message"] == "kaboom"
        app.extensions["storage"].dispose()

    def test_unexpected_error_hides_details_in_production(self, tmp_path):
        app = _boom_app(tmp_path, APP_ENV="production")
        body = app.test_client().get("/api/v1/boom").get_json()
        assert body["error"] == "INTERNAL_ERROR"
        assert "details" not in body
        assert "kaboom" not in str(body)
        app.extensions["storage"].dispose()


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "database": "ok", "version": "1.0.0"}


class TestPromoteUser:
    def test_promote(self, app, user_tokens):
        result = app.test_cli_runner().invoke(args=["promote-user", "A@B.com", "--role", "admin"])
        assert result.exit_code == 0
        assert "a@b.com: user, admin" in result.output

    def test_unknown_email(self, app):
        result = app.test_cli_runner().invoke(args=["promote-user", "ghost@b.com"])
        assert result.exit_code != 0
        assert "No user with email" in result.output

    def test_unknown_role(self, app, user_tokens):
        result = app.test_cli_runner().invoke(args=["promote-user", "a@b.com", "--role", "root"])
        assert result.exit_code != 0
