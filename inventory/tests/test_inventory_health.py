import json
import logging

import pytest
from config.logging import JsonFormatter, SamplingFilter


@pytest.mark.django_db
def test_health_endpoint(client):
    resp = client.get("/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok"}


def _record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("tinythreads.inventory", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_event_context():
    line = JsonFormatter().format(
        _record("stock.reserved", event="stock.reserved", variant_id=4, order_id=9, quantity=2, obj=object())
    )
    payload = json.loads(line)
    assert payload["message"] == "stock.reserved"
    assert payload["level"] == "INFO"
    assert (payload["variant_id"], payload["order_id"], payload["quantity"]) == (4, 9, 2)
    assert payload["obj"].startswith("<object")
    assert payload["time"].endswith("Z")


def test_sampling_filter_keeps_allowed_events_and_other_levels():
    sampler = SamplingFilter(rate=0.0, allow_events=["stock.movement_applied"])

    assert sampler.filter(_record("stock.movement_applied", event="stock.movement_applied")) is True
    assert sampler.filter(_record("stock.reserved", event="stock.reserved")) is False
    assert sampler.filter(_record("stock.release_skipped", level=logging.WARNING)) is True
    assert SamplingFilter(rate="bogus").rate == 1.0
