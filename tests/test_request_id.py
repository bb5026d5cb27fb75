"""Tests for request ID tracing middleware and log correlation."""
import logging

import pytest

from wellbalance.logging_config import JSONFormatter
from wellbalance.middleware.request_id import RequestIDLogFilter, request_id_var


@pytest.mark.asyncio
async def test_response_includes_request_id(client):
    """Every response should have X-Request-ID header."""
    resp = await client.get("/health")
    assert "x-request-id" in resp.headers
    rid = resp.headers["x-request-id"]
    assert len(rid) == 36  # UUID format


@pytest.mark.asyncio
async def test_client_request_id_honored(client):
    custom_id = "my-trace-12345"
    resp = await client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers["x-request-id"] == custom_id


@pytest.mark.asyncio
async def test_unique_ids_per_request(client):
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert r1.headers["x-request-id"] != r2.headers["x-request-id"]


def _record(msg="hello"):
    return logging.LogRecord("wellbalance.test", logging.INFO, __file__, 1, msg, None, None)


def test_log_filter_tags_records():
    token = request_id_var.set("rid-42")
    try:
        record = _record()
        assert RequestIDLogFilter().filter(record)
        assert record.request_id == "rid-42"
    finally:
        request_id_var.reset(token)


def test_log_filter_outside_request():
    record = _record()
    RequestIDLogFilter().filter(record)
    assert record.request_id == "-"


def test_json_formatter_includes_request_id():
    import json

    record = _record("meal added")
    record.request_id = "rid-7"
    line = json.loads(JSONFormatter().format(record))
    assert line["message"] == "meal added"
    assert line["request_id"] == "rid-7"
    assert line["level"] == "INFO"
