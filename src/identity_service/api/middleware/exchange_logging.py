"""Exchange logging middleware.

Records every HTTP exchange with an ExchangeRecorder. The request body is
read through Starlette's cached request (downstream handlers still receive
it) and the response body is buffered and replayed unchanged.
"""

import logging
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from identity_service.infrastructure.observability import ExchangeRecorder, RedactingLogFormatter


CORRELATION_HEADERS = ("x-request-id", "x-correlation-id")


def _charset(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    for part in content_type.split(";")[1:]:
        name, _, value = part.strip().partition("=")
        if name.lower() == "charset" and value:
            return value.strip('"')
    return None


class ExchangeLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one redacted record per exchange (plus OAuth redirect traces)."""

    def __init__(
        self,
        app: ASGIApp,
        formatter: Optional[RedactingLogFormatter] = None,
        sink: Optional[logging.Logger] = None,
    ):
        super().__init__(app)
        self.formatter = formatter or RedactingLogFormatter()
        self.sink = sink

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = next(
            (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
            None,
        ) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        recorder = ExchangeRecorder(self.formatter, self.sink)
        recorder.start(
            method=request.method,
            path=request.url.path,
            query=request.url.query or None,
            headers=request.headers.items(),
            correlation_id=correlation_id,
        )

        body = await request.body()
        recorder.capture_request_body(body, _charset(request.headers.get("content-type")))

        try:
            response = await call_next(request)
        except Exception:
            recorder.finish(status=500)
            raise

        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk if isinstance(chunk, bytes) else chunk.encode(response.charset)

        replay = Response(
            content=response_body,
            status_code=response.status_code,
            background=response.background,
        )
        # Original headers, with the length of the buffered body
        content_length = [(k, v) for k, v in replay.raw_headers if k == b"content-length"]
        replay.raw_headers = [
            (k, v) for k, v in response.raw_headers if k.lower() != b"content-length"
        ] + content_length
        replay.headers["x-request-id"] = correlation_id

        recorder.finish(
            status=response.status_code,
            headers=replay.headers.items(),
            body=response_body,
            charset=_charset(replay.headers.get("content-type")),
        )
        return replay
