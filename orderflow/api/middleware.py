"""API middleware for the order service.

Provides:
- Request ID correlation
- Caller identity in the log context

Unhandled exceptions are turned into the error envelope by
``generic_exception_handler`` in ``orderflow.api.errors``.
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

# Identity headers set by the upstream authenticator, and the log keys they bind to
IDENTITY_HEADERS = {
    "X-User-Id": "user_id",
    "X-User-Role": "user_role",
    "X-Branch-Id": "branch_id",
}


# ============================================================================
# Request Context Middleware
# ============================================================================


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to bind per-request log context.

    Generates or extracts a request ID and adds it to:
    - Request state for access in handlers
    - Response headers for client correlation
    - Log context for tracing

    The caller's identity headers are bound to the log context as well, so
    every order transition logged by the service names who asked for it.
    Identity is only logged here; ``get_actor`` is what validates it.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request with correlation ID and caller identity.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with request ID header.
        """
        # Get or generate request ID
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id

        context = {"request_id": request_id}
        for header, key in IDENTITY_HEADERS.items():
            value = request.headers.get(header)
            if value:
                context[key] = value
        structlog.contextvars.bind_contextvars(**context)

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )

            # Clear log context
            structlog.contextvars.unbind_contextvars(*context)

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = outermost, so it
    runs first on the way in).

    Args:
        app: FastAPI application instance.
    """
    # Request context wraps every route
    app.add_middleware(RequestContextMiddleware)
