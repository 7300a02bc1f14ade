"""HTTP exchange records captured by the logging pipeline"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class ExchangeRecord:
    """One request/response cycle as observed by the exchange recorder

    Created at request start, finalized at request end, logged and discarded.
    Header maps hold the raw header values; redaction happens in the
    formatter.

    Attributes:
        method: HTTP method
        path: Request path including the query string
        request_headers: Request headers (lower-cased names)
        request_body: Decoded request body
        status: Response status code
        response_headers: Response headers (lower-cased names)
        response_body: Decoded response body
        duration_ms: Handling time in milliseconds
        timestamp: Request start, epoch milliseconds
        correlation_id: Request correlation identifier
    """
    method: str
    path: str
    request_headers: Dict[str, str] = field(default_factory=dict)
    request_body: Optional[str] = None
    status: Optional[int] = None
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_body: Optional[str] = None
    duration_ms: Optional[int] = None
    timestamp: Optional[int] = None
    correlation_id: Optional[str] = None


@dataclass(frozen=True)
class RedirectTrace:
    """A 3xx response observed on an OAuth-related exchange

    Attributes:
        method: HTTP method
        from_uri: Request path that produced the redirect
        to_location: Redirect target with secrets masked
        status: Response status code
        user_agent: Client user agent
        correlation_id: Request correlation identifier
        flow_stage: OAuth flow stage, when one can be determined
    """
    method: str
    from_uri: str
    to_location: Optional[str]
    status: int
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None
    flow_stage: Optional[str] = None
