"""Redaction-aware structured logging.

- formatter: RedactingLogFormatter and masking helpers
- recorder: ExchangeRecorder for one HTTP request/response pair
"""

from .formatter import (
    BODY_MAX_LENGTH,
    MASK,
    TRUNCATION_MARKER,
    RedactingLogFormatter,
    filter_headers,
    mask_header_value,
    mask_url,
)
from .recorder import (
    ExchangeRecorder,
    classify_flow_stage,
    is_oauth_exchange,
    record_client_exchange,
)

__all__ = [
    "RedactingLogFormatter",
    "ExchangeRecorder",
    "filter_headers",
    "mask_header_value",
    "mask_url",
    "is_oauth_exchange",
    "classify_flow_stage",
    "record_client_exchange",
    "BODY_MAX_LENGTH",
    "MASK",
    "TRUNCATION_MARKER",
]
