import json

import pytest

from variants.observability import RenderDecisionRecord


def test_decision_log_schema_roundtrip():
    record = RenderDecisionRecord(
        resource_id="42",
        outcome="miss",
        variant="mobile",
        fingerprint="42.mobile",
        method="classifier",
        rendered=True,
        stored=True,
        latency_ms_total=3.2,
    )

    payload = record.to_dict()

    assert payload["outcome"] == "miss"
    assert payload["fingerprint"] == "42.mobile"
    assert json.loads(record.to_json())["variant"] == "mobile"


def test_aborted_record_allows_nulls():
    record = RenderDecisionRecord(resource_id="7", outcome="aborted", reason="missing TabletTemplate")

    payload = record.to_dict()

    assert payload["variant"] is None
    assert payload["method"] is None


def test_unknown_outcome_rejected():
    record = RenderDecisionRecord(resource_id="7", outcome="maybe")

    with pytest.raises(ValueError, match="decision log validation failed"):
        record.to_dict()
