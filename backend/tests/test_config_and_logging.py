"""Tests for settings validation, JSON logging and request ids."""

import json
import logging
import sys

import pytest

from caseflow.config import Settings
from caseflow.middleware.logging_config import JSONFormatter
from caseflow.middleware.request_context import RequestIdFilter
from caseflow.middleware.metrics import _normalize_path


class TestSettings:
    def test_production_rejects_default_secret(self):
        with pytest.raises(ValueError, match="SECRET_KEY"):
            Settings(environment="production", database_url="postgresql+asyncpg://u:p@db/caseflow")

    def test_production_rejects_dev_database_password(self):
        with pytest.raises(ValueError, match="database password"):
            Settings(
                environment="production",
                secret_key="s3cret",
                database_url="postgresql+asyncpg://caseflow:caseflow_dev_password@db/caseflow",
            )

    def test_production_with_real_values(self):
        s = Settings(
            environment="production",
            secret_key="s3cret",
            database_url="postgresql+asyncpg://u:p@db/caseflow",
        )
        assert s.environment == "production"


class TestJSONFormatter:
    def test_includes_case_id_and_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.getLogger("caseflow.test").makeRecord(
                "caseflow.test", logging.ERROR, __file__, 1, "transition failed", None,
                exc_info=sys.exc_info(), extra={"case_id": "case-1"},
            )
        line = json.loads(JSONFormatter().format(record))
        assert line["message"] == "transition failed"
        assert line["level"] == "ERROR"
        assert line["case_id"] == "case-1"
        assert "RuntimeError: boom" in line["exception"]


class TestRequestIdFilter:
    def test_placeholder_outside_a_request(self):
        record = logging.LogRecord("caseflow", logging.INFO, __file__, 1, "hello", None, None)
        assert RequestIdFilter().filter(record)
        assert record.request_id == "-"

    def test_keeps_explicit_request_id(self):
        record = logging.LogRecord("caseflow", logging.INFO, __file__, 1, "hello", None, None)
        record.request_id = "req-1"
        RequestIdFilter().filter(record)
        assert record.request_id == "req-1"


class TestPathNormalisation:
    def test_ids_are_collapsed(self):
        path = "/api/cases/8c1d9a52-6a4c-4e4b-9d7e-2f0b6f1d3a11/status"
        assert _normalize_path(path) == "/api/cases/{id}/status"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        resp = await client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"
