"""Correlation ids tying one request to its workflow run and artifact."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Optional

from .types import AnalysisRequest

_RANDOM_SUFFIX_BYTES = 4


def new_correlation_id(now: Optional[float] = None) -> str:
    """Return ``req_<epoch millis>_<8 hex chars>``.

    The random suffix keeps same-millisecond requests apart; its fixed
    width means no id is a prefix of another.
    """

    millis = int((time.time() if now is None else now) * 1000)
    return f"req_{millis}_{secrets.token_hex(_RANDOM_SUFFIX_BYTES)}"


def new_analysis_request(payload: bytes) -> AnalysisRequest:
    return AnalysisRequest(
        correlation_id=new_correlation_id(),
        payload=payload,
        created_at=datetime.now(timezone.utc),
    )


__all__ = ["new_correlation_id", "new_analysis_request"]
