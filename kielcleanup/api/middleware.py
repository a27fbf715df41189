from __future__ import annotations

import logging
import re
import time
from typing import Awaitable, Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("kielcleanup.api")

REQUEST_ID_HEADER = "X-Request-ID"
_CLIENT_ID = re.compile(r"[A-Za-z0-9._-]{1,128}")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log one line when it completes.

    A client supplied X-Request-ID is echoed back when it is short and
    plain; otherwise a fresh id is generated. Request bodies (uploaded
    records) are never logged.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = supplied if _CLIENT_ID.fullmatch(supplied) else uuid4().hex
        request.state.request_id = request_id

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            log.info(
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url.path,
                status,
                (time.perf_counter() - started) * 1000,
                extra={"request_id": request_id},
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
