"""Per-request context: correlation id and latency histogram"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from plugboleto_gateway.infrastructure.observability.metrics import request_duration_histogram

REQUEST_ID_HEADER = "X-Request-ID"

# Longer caller ids are replaced rather than echoed
MAX_REQUEST_ID_LENGTH = 128

logger = logging.getLogger(__name__)


def resolve_request_id(request: Request) -> str:
    """Caller-supplied correlation id when usable, a fresh uuid4 otherwise"""
    candidate = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH and candidate.isprintable():
        return candidate
    return str(uuid.uuid4())


def endpoint_label(request: Request) -> str:
    """Route template for metrics, so unknown paths share one label"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with a correlation id and time it.

    The id is stored on `request.state.request_id` for handlers and echoed in
    the response header. Latency is observed even when the handler raises.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request)
        request.state.request_id = request_id

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            request_duration_histogram.labels(
                method=request.method,
                endpoint=endpoint_label(request),
                status=status_code,
            ).observe(time.perf_counter() - started)

        response.headers[REQUEST_ID_HEADER] = request_id
        if status_code >= 500:
            logger.warning(
                "Request failed",
                extra={"request_id": request_id, "path": request.url.path, "status": status_code},
            )
        return response
