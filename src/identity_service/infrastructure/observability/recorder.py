"""HTTP exchange recorder.

One ExchangeRecorder wraps exactly one request/response pair. It captures
timing and both bodies, then on finish() writes:
- an OAuth redirect trace, for 3xx responses on OAuth-related requests
- one consolidated exchange record, always

Both go through the same RedactingLogFormatter, so masking is identical.
Recorders are request scoped and must not be shared between requests.
Outbound calls to providers are logged with record_client_exchange().
"""

import logging
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from identity_service.domain.models import ExchangeRecord, RedirectTrace

from .formatter import Fields, RedactingLogFormatter, mask_url

EXCHANGE_KIND = "http_exchange"
REDIRECT_KIND = "oauth_redirect"
CLIENT_EXCHANGE_KIND = "client_exchange"

OAUTH_PATH_MARKERS = ("/oauth", "/login", "/auth")
OAUTH_QUERY_MARKERS = ("code=", "state=")

FLOW_INITIATION = "oauth_initiation"
FLOW_CALLBACK = "oauth_callback"
FLOW_PROVIDER_REDIRECT = "oauth_provider_redirect"


def is_oauth_exchange(path: Optional[str], query: Optional[str]) -> bool:
    """Whether a request looks like part of an OAuth flow"""
    path = path or ""
    query = query or ""
    return any(marker in path for marker in OAUTH_PATH_MARKERS) or any(
        marker in query for marker in OAUTH_QUERY_MARKERS
    )


def classify_flow_stage(from_uri: Optional[str], location: Optional[str]) -> Optional[str]:
    """Determine the OAuth flow stage of a redirect, if any"""
    if from_uri is None:
        return None
    if "/oauth2/authorization/" in from_uri:
        return FLOW_INITIATION
    if "/login/oauth2/code/" in from_uri:
        return FLOW_CALLBACK
    if location is not None and "oauth" in location:
        return FLOW_PROVIDER_REDIRECT
    return None


def decode_body(body: Optional[bytes], charset: Optional[str] = None) -> Optional[str]:
    """Decode captured body bytes for logging"""
    if not body:
        return None
    if isinstance(body, str):
        return body
    try:
        return bytes(body).decode(charset or "utf-8", errors="replace")
    except LookupError:
        return bytes(body).decode("utf-8", errors="replace")


def exchange_fields(record: ExchangeRecord) -> Fields:
    """Log fields for a finished exchange"""
    return [
        ("method", record.method),
        ("path", record.path),
        ("status", record.status),
        ("duration_ms", record.duration_ms),
        ("correlation_id", record.correlation_id),
        ("request.headers", record.request_headers),
        ("request.body", record.request_body),
        ("response.headers", record.response_headers),
        ("response.body", record.response_body),
    ]


def redirect_fields(trace: RedirectTrace) -> Fields:
    """Log fields for an OAuth redirect"""
    return [
        ("method", trace.method),
        ("from_uri", trace.from_uri),
        ("to_location", trace.to_location),
        ("status", trace.status),
        ("user_agent", trace.user_agent),
        ("correlation_id", trace.correlation_id),
        ("flow_stage", trace.flow_stage),
    ]


def _lower_headers(headers: Optional[Fields]) -> Dict[str, str]:
    lowered: Dict[str, str] = {}
    if not headers:
        return lowered
    items = headers.items() if hasattr(headers, "items") else headers
    for name, value in items:
        name = name.lower()
        lowered[name] = f"{lowered[name]}, {value}" if name in lowered else value
    return lowered


class ExchangeRecorder:
    """Captures one HTTP exchange and logs it on completion"""

    def __init__(
        self,
        formatter: Optional[RedactingLogFormatter] = None,
        sink: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        """Initialize recorder

        Args:
            formatter: Formatter used for both log records
            sink: Logger receiving the rendered lines
            clock: Monotonic clock (seconds) for durations
            wall_clock: Wall clock (seconds) for the exchange timestamp
        """
        self.formatter = formatter or RedactingLogFormatter()
        self.sink = sink or logging.getLogger("identity_service.http")
        self.clock = clock
        self.wall_clock = wall_clock

        self.record: Optional[ExchangeRecord] = None
        self._path: str = ""
        self._query: Optional[str] = None
        self._started_at: Optional[float] = None

    def start(
        self,
        method: str,
        path: str,
        query: Optional[str] = None,
        headers: Optional[Fields] = None,
        correlation_id: Optional[str] = None,
    ) -> ExchangeRecord:
        """Begin recording a request"""
        self._started_at = self.clock()
        self._path = path
        self._query = query
        full_path = f"{path}?{query}" if query else path
        self.record = ExchangeRecord(
            method=method,
            path=full_path,
            request_headers=_lower_headers(headers),
            timestamp=int(self.wall_clock() * 1000),
            correlation_id=correlation_id or str(uuid.uuid4()),
        )
        return self.record

    def capture_request_body(self, body: Optional[bytes], charset: Optional[str] = None) -> None:
        """Keep a decoded copy of the request body (the bytes are not consumed)"""
        self._require_started()
        self.record.request_body = decode_body(body, charset)

    def finish(
        self,
        status: int,
        headers: Optional[Fields] = None,
        body: Optional[bytes] = None,
        charset: Optional[str] = None,
    ) -> Tuple[ExchangeRecord, Optional[RedirectTrace]]:
        """Complete the exchange and write its log records.

        Args:
            status: Response status code
            headers: Response headers
            body: Response body bytes
            charset: Response body charset

        Returns:
            Tuple of (exchange record, redirect trace or None)
        """
        self._require_started()
        record = self.record
        record.status = status
        record.response_headers = _lower_headers(headers)
        record.response_body = decode_body(body, charset)
        record.duration_ms = int(round((self.clock() - self._started_at) * 1000))

        trace = self.redirect_trace()
        if trace is not None:
            self.formatter.emit(self.sink, REDIRECT_KIND, redirect_fields(trace))
        self.formatter.emit(self.sink, EXCHANGE_KIND, exchange_fields(record))
        return record, trace

    def redirect_trace(self) -> Optional[RedirectTrace]:
        """Build the redirect trace for the current exchange, if it applies"""
        record = self.record
        if record is None or record.status is None or not 300 <= record.status < 400:
            return None
        if not is_oauth_exchange(self._path, self._query):
            return None

        location = record.response_headers.get("location")
        return RedirectTrace(
            method=record.method,
            from_uri=self._path,
            to_location=mask_url(location),
            status=record.status,
            user_agent=record.request_headers.get("user-agent"),
            correlation_id=record.correlation_id,
            flow_stage=classify_flow_stage(self._path, location),
        )

    def _require_started(self) -> None:
        if self.record is None:
            raise RuntimeError("ExchangeRecorder.start() must be called first")


def record_client_exchange(
    target: str,
    method: str,
    url: str,
    status: Optional[int],
    request_headers: Optional[Fields] = None,
    request_body: Optional[bytes] = None,
    response_headers: Optional[Fields] = None,
    response_body: Optional[bytes] = None,
    duration_ms: Optional[int] = None,
    correlation_id: Optional[str] = None,
    formatter: Optional[RedactingLogFormatter] = None,
    sink: Optional[logging.Logger] = None,
) -> str:
    """Log one outbound call made to an external service.

    Used for calls to identity providers (token and userinfo endpoints).
    The record goes through the same masking as inbound exchanges.

    Args:
        target: Name of the called service (e.g. "kakao")
        method: HTTP method
        url: Request URL including the query string
        status: Response status code (None if no response was received)

    Returns:
        The line that was logged
    """
    formatter = formatter or RedactingLogFormatter()
    sink = sink or logging.getLogger("identity_service.http")
    fields = [
        ("target", target),
        ("method", method),
        ("url", url),
        ("status", status),
        ("duration_ms", duration_ms),
        ("correlation_id", correlation_id),
        ("request.headers", _lower_headers(request_headers)),
        ("request.body", decode_body(request_body)),
        ("response.headers", _lower_headers(response_headers)),
        ("response.body", decode_body(response_body)),
    ]
    return formatter.emit(sink, CLIENT_EXCHANGE_KIND, fields)
