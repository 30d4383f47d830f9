"""Request context middleware for correlation and access logging."""

import re
import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.core.logging import bind_request_context, get_logger, reset_request_context

RequestResponseEndpoint = Callable[[Request], Awaitable[Response]]

logger = get_logger(__name__)

# /api/works/{id}, /api/payments/{work_id} and /api/clients/{id} carry the ids
# worth correlating; routing has not run yet, so read them from the raw path.
_WORK_PATH = re.compile(r"^/api/(?:works|payments)/(\d+)(?:/|$)")
_CLIENT_PATH = re.compile(r"^/api/clients/(\d+)(?:/|$)")


def _path_id(pattern: re.Pattern[str], path: str) -> int | None:
    match = pattern.match(path)
    return int(match.group(1)) if match else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request, client and work ids to the logging context.

    Uses the X-Request-ID header (or generates one), echoes it on the
    response, and writes one ``request_completed`` event per request.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and set context variables.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in chain.

        Returns:
            Response with X-Request-ID header set.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        path = request.url.path
        tokens = bind_request_context(
            request_id,
            client_id=_path_id(_CLIENT_PATH, path),
            work_id=_path_id(_WORK_PATH, path),
        )
        start_ns = time.perf_counter_ns()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter_ns() - start_ns) / 1_000_000, 3),
            )
        finally:
            reset_request_context(tokens)
        response.headers["X-Request-ID"] = request_id
        return response
