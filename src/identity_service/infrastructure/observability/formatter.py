"""Redacting structured log formatter

Purpose: Turn request/response/redirect data into flat, secret-masked log lines

Every record is a single flat JSON object:
- type / action: record kind (callers may override action)
- level: severity name
- timestamp: epoch milliseconds
- caller fields, flattened to strings (nested mappings become dotted keys);
  caller values for type, level and timestamp are ignored

Redaction rules:
- None values and blank bodies are omitted
- Bodies longer than the limit (1000 chars) are cut and marked
- Only allow-listed headers (plus any x-* header) are kept
- Authorization values keep at most their first and last 4 characters
- OAuth secrets in URL query strings (code, state, tokens, client_secret)
  are replaced with *****

If JSON encoding fails, a plain single-line summary is logged instead. The
formatter never raises into the request pipeline.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

BODY_MAX_LENGTH = 1000
TRUNCATION_MARKER = "...(truncated)"
MASK = "*****"

ALLOWED_HEADERS = frozenset({
    "content-type",
    "authorization",
    "user-agent",
    "accept",
    "accept-language",
    "location",
    "cache-control",
})

SECRET_QUERY_PARAMS = ("code", "access_token", "refresh_token", "client_secret", "state")

_SECRET_PARAM_PATTERN = re.compile(
    r"(?<![\w\-])(" + "|".join(SECRET_QUERY_PARAMS) + r")=[^&#\s\"']*"
)

# Base keys set by the formatter itself; callers can only override action
RESERVED_FIELDS = frozenset({"type", "level", "timestamp"})

# Fields holding a URL or URL fragment
URL_FIELDS = frozenset({"path", "uri", "url", "from_uri", "location", "to_location", "query", "query_string"})

StructuredRecord = Dict[str, Any]
Fields = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def mask_header_value(value: Optional[str]) -> Optional[str]:
    """Mask a credential header value.

    Values of 8 characters or fewer are replaced entirely; longer values
    keep their first 4 and last 4 characters.
    """
    if value is None:
        return None
    if len(value) <= 8:
        return MASK
    return f"{value[:4]}{MASK}{value[-4:]}"


def mask_url(url: Optional[str]) -> Optional[str]:
    """Replace OAuth secret query parameter values with *****"""
    if url is None:
        return None
    return _SECRET_PARAM_PATTERN.sub(lambda m: f"{m.group(1)}={MASK}", url)


def is_allowed_header(name: str) -> bool:
    name = name.lower()
    return name in ALLOWED_HEADERS or name.startswith("x-")


def filter_headers(headers: Optional[Fields]) -> Dict[str, str]:
    """Keep allow-listed headers and mask credentials.

    Args:
        headers: Mapping or (name, value) pairs; repeated names are joined

    Returns:
        Dict of lower-cased header names to redacted values
    """
    filtered: Dict[str, str] = {}
    for name, value in _pairs(headers):
        name = _text(name).lower()
        if value is None or not is_allowed_header(name):
            continue
        value = _text(value)
        if name == "authorization":
            value = mask_header_value(value)
        elif name == "location":
            value = mask_url(value)
        filtered[name] = f"{filtered[name]}, {value}" if name in filtered else value
    return filtered


def _pairs(fields: Optional[Fields]) -> Iterable[Tuple[Any, Any]]:
    if not fields:
        return ()
    if isinstance(fields, Mapping):
        return fields.items()
    return fields


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _is_body_key(key: str) -> bool:
    leaf = key.rsplit(".", 1)[-1]
    return leaf == "body" or leaf.endswith("_body")


class RedactingLogFormatter:
    """Builds redacted structured records and renders them as log lines."""

    def __init__(
        self,
        body_max_length: int = BODY_MAX_LENGTH,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize formatter

        Args:
            body_max_length: Maximum logged body length before truncation
            clock: Wall-clock source in seconds (for timestamps)
        """
        self.body_max_length = body_max_length
        self.clock = clock

    def truncate_body(self, body: Any) -> Optional[str]:
        """Prepare a body for logging.

        Returns None for empty/blank bodies. Secrets in form-encoded content
        are masked before truncation.
        """
        if body is None:
            return None
        text = _text(body)
        if not text.strip():
            return None
        text = mask_url(text)
        if len(text) > self.body_max_length:
            return text[: self.body_max_length] + TRUNCATION_MARKER
        return text

    def format(self, kind: str, fields: Optional[Fields] = None, level: str = "INFO") -> StructuredRecord:
        """Build a flat structured record.

        Args:
            kind: Record type (also the default action)
            fields: Caller fields, in order
            level: Severity name

        Returns:
            Ordered dict ready for JSON encoding
        """
        record: StructuredRecord = {
            "type": kind,
            "action": kind,
            "level": level.upper(),
            "timestamp": int(self.clock() * 1000),
        }
        for key, value in _pairs(fields):
            key = _text(key)
            if key in RESERVED_FIELDS:
                continue
            self._put(record, key, value)
        return record

    def _put(self, record: StructuredRecord, key: str, value: Any) -> None:
        if value is None:
            return
        leaf = key.rsplit(".", 1)[-1]

        if isinstance(value, Mapping):
            if leaf.endswith("headers"):
                value = filter_headers(value)
            for sub_key, sub_value in value.items():
                self._put(record, f"{key}.{_text(sub_key)}", sub_value)
        elif _is_body_key(key):
            body = self.truncate_body(value)
            if body is not None:
                record[key] = body
        elif leaf == "authorization":
            record[key] = mask_header_value(_text(value))
        elif leaf in URL_FIELDS:
            record[key] = mask_url(_text(value))
        else:
            record[key] = _text(value)

    def render(self, kind: str, fields: Optional[Fields] = None, level: str = "INFO") -> str:
        """Format and JSON-encode a record, falling back to a plain line."""
        try:
            return json.dumps(self.format(kind, fields, level), ensure_ascii=False)
        except Exception as e:
            logger.debug(f"Structured log encoding failed for {kind}: {type(e).__name__}")
            return self.fallback_line(kind, fields)

    def fallback_line(self, kind: str, fields: Optional[Fields] = None) -> str:
        """Single-line summary built only from identifying fields"""
        values: Dict[str, str] = {}
        try:
            for key, value in _pairs(fields):
                if key in ("method", "path", "uri", "from_uri", "status", "duration_ms"):
                    values[key] = self._safe_text(value)
        except Exception as e:
            logger.debug(f"Fallback summary for {kind} is incomplete: {type(e).__name__}")

        method = values.get("method", "-")
        path = mask_url(values.get("path") or values.get("uri") or values.get("from_uri") or "-")
        status = values.get("status", "-")
        duration = values.get("duration_ms", "-")
        return f"{kind}: {method} {path} - {status} ({duration}ms)"

    @staticmethod
    def _safe_text(value: Any) -> str:
        try:
            return _text(value)
        except Exception:
            return "-"

    def emit(
        self,
        target: logging.Logger,
        kind: str,
        fields: Optional[Fields] = None,
        level: str = "INFO",
    ) -> str:
        """Render a record and write it to a logger.

        Returns:
            The line that was logged
        """
        line = self.render(kind, fields, level)
        levelno = logging.getLevelName(level.upper())
        if not isinstance(levelno, int):
            levelno = logging.INFO
        target.log(levelno, line)
        return line
