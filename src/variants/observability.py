"""Render decision log schema enforcement."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

OUTCOMES = ["hit", "miss", "bypass", "aborted", "failed"]

DECISION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": [
        "resource_id",
        "decided_at",
        "outcome",
        "variant",
        "fingerprint",
        "method",
        "refresh",
        "rendered",
        "latency_ms_total",
    ],
    "properties": {
        "resource_id": {"type": "string", "minLength": 1},
        "decided_at": {"type": "string", "format": "date-time"},
        "outcome": {"type": "string", "enum": OUTCOMES},
        "variant": {"type": ["string", "null"]},
        "fingerprint": {"type": ["string", "null"]},
        "method": {"type": ["string", "null"], "enum": ["override", "classifier", "fallback", None]},
        "override": {"type": ["string", "null"]},
        "refresh": {"type": "boolean"},
        "rendered": {"type": "boolean"},
        "stored": {"type": "boolean"},
        "latency_ms_total": {"type": "number", "minimum": 0},
        "reason": {"type": ["string", "null"]},
    },
}

_validator = Draft7Validator(DECISION_SCHEMA)


def validate_decision(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: e.path)
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"decision log validation failed: {messages}")


@dataclass
class RenderDecisionRecord:
    resource_id: str
    outcome: str
    variant: Optional[str] = None
    fingerprint: Optional[str] = None
    method: Optional[str] = None
    override: Optional[str] = None
    refresh: bool = False
    rendered: bool = False
    stored: bool = False
    latency_ms_total: float = 0.0
    reason: Optional[str] = None
    decided_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "resource_id": self.resource_id,
            "decided_at": self.decided_at,
            "outcome": self.outcome,
            "variant": self.variant,
            "fingerprint": self.fingerprint,
            "method": self.method,
            "override": self.override,
            "refresh": self.refresh,
            "rendered": self.rendered,
            "stored": self.stored,
            "latency_ms_total": self.latency_ms_total,
            "reason": self.reason,
        }
        validate_decision(payload)
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
