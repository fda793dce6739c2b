"""Tests for request context middleware."""

import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from orderflow.api.errors import setup_exception_handlers
from orderflow.api.middleware import setup_middleware
from tests.api.conftest import BRANCH_HEADERS, MANAGER_HEADERS


def make_app() -> FastAPI:
    """Minimal app exposing the log context seen by a handler."""
    app = FastAPI()
    setup_middleware(app)
    setup_exception_handlers(app)

    @app.get("/context")
    async def context() -> dict:
        return structlog.contextvars.get_contextvars()

    return app


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    def test_identity_is_bound_to_log_context(self) -> None:
        """Handlers log with the caller's identity next to the request ID."""
        client = TestClient(make_app())
        response = client.get("/context", headers={**BRANCH_HEADERS, "X-Request-ID": "req-9"})

        assert response.status_code == 200
        assert response.json() == {
            "request_id": "req-9",
            "user_id": "usr-1",
            "user_role": "BRANCH_USER",
            "branch_id": "branch-1",
        }
        assert response.headers["X-Request-ID"] == "req-9"

    def test_missing_headers_are_not_bound(self) -> None:
        """Only identity headers that were sent end up in the context."""
        client = TestClient(make_app())
        response = client.get("/context", headers=MANAGER_HEADERS)

        context = response.json()
        assert context["user_id"] == "mgr-1"
        assert context["user_role"] == "MANAGER"
        assert "branch_id" not in context
        assert context["request_id"] == response.headers["X-Request-ID"]

    def test_anonymous_request_gets_request_id(self) -> None:
        """A generated request ID is bound even without identity."""
        client = TestClient(make_app())
        response = client.get("/context")

        assert list(response.json()) == ["request_id"]
