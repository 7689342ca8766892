"""Per-request overrides read from query parameters and headers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

FALSY = {"", "0", "false", "no", "off"}
TRUTHY = {"1", "true", "yes", "on"}

# query parameter -> header fallback
HEADER_MAP = {
    "template": "X-Variant-Template",
    "refresh": "X-Variant-Refresh",
    "tpldebug": "X-Variant-Debug",
}


def parse_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in FALSY


def parse_debug_level(value: Any) -> Optional[int]:
    """
    Turn a tpldebug value into a logging level.

    Level names ("info") and numeric levels >= 10 are used as given; truthy
    flags ("1", "true") mean WARNING so messages show under default logging.
    Anything else is ignored.
    """
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in TRUTHY:
        return logging.WARNING
    if text.isdigit() and int(text) >= logging.DEBUG:
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else None


def _lookup(name: str, query: Mapping[str, Any], headers: Mapping[str, Any]) -> Any:
    if name in query:
        return query[name]
    header = HEADER_MAP[name]
    for key, value in headers.items():
        if key.lower() == header.lower():
            return value
    return None


@dataclass(frozen=True)
class RequestContext:
    template_override: Optional[str] = None
    refresh: bool = False
    debug_level: Optional[int] = None

    @classmethod
    def from_request(
        cls,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Any]] = None,
    ) -> "RequestContext":
        query = query or {}
        headers = headers or {}
        override = _lookup("template", query, headers)
        override = str(override).strip().lower() if override is not None else None
        return cls(
            template_override=override or None,
            refresh=parse_flag(_lookup("refresh", query, headers)),
            debug_level=parse_debug_level(_lookup("tpldebug", query, headers)),
        )

    def log_level(self, default: int) -> int:
        return self.debug_level if self.debug_level is not None else default
