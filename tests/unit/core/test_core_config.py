"""
Tests for settings, structured errors and logging
"""
import json
import logging

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings
from core.exceptions import (
    AuthError,
    DataSourceConnectionError,
    JobCancelledError,
    QueryTimeoutError,
    RenderError,
    ReportEngineError,
    UnknownDataSourceError,
)
from core.logging import ContextTextFormatter, ReportJsonFormatter, build_formatter, get_logger

pytestmark = [pytest.mark.unit]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("REPORTRUNNER_ENVIRONMENT", "REPORTRUNNER_LOG_FORMAT", "REPORTRUNNER_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.is_development
        assert settings.query_timeout_seconds == 30.0
        assert settings.default_output_format == "pdf"
        assert settings.default_page_size == "A4"
        assert settings.log_format == "json"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("REPORTRUNNER_QUERY_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("REPORTRUNNER_DEFAULT_PAGE_SIZE", "letter")
        settings = Settings(_env_file=None)
        assert settings.query_timeout_seconds == 2.5
        assert settings.default_page_size == "LETTER"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"environment": "qa"},
            {"log_format": "xml"},
            {"default_output_format": "docx"},
            {"default_page_size": "A3"},
            {"query_timeout_seconds": 0},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestExceptions:
    def test_to_dict(self):
        error = UnknownDataSourceError("MissingDS", data_set="X")
        assert error.to_dict() == {
            "error": "VALIDATION_ERROR",
            "message": "Unknown data source: MissingDS",
            "entity": "MissingDS",
            "details": {"data_set": "X", "reason": "unknown_data_source"},
        }
        assert error.status_code == 422

    @pytest.mark.parametrize(
        "error,code,status",
        [
            (DataSourceConnectionError("down", data_source="DS"), "CONNECTION_ERROR", 502),
            (AuthError("denied", data_source="DS"), "AUTH_ERROR", 502),
            (QueryTimeoutError(5, "execute", data_source="DS"), "TIMEOUT", 504),
            (RenderError("bad"), "RENDER_ERROR", 500),
            (JobCancelledError("job-1"), "CANCELLED", 409),
        ],
    )
    def test_error_kinds(self, error, code, status):
        assert isinstance(error, ReportEngineError)
        assert error.error_code == code
        assert error.status_code == status

    @pytest.mark.parametrize(
        "error,domain",
        [
            (UnknownDataSourceError("MissingDS"), "d1_design"),
            (QueryTimeoutError(5, "execute", data_source="DS"), "d2_query"),
            (RenderError("bad"), "d3_render"),
            (JobCancelledError("job-1"), "d4_jobs"),
        ],
    )
    def test_error_domains(self, error, domain):
        assert error.domain == domain

    def test_data_source_error_entity_prefers_data_set(self):
        error = DataSourceConnectionError("down", data_source="DS", data_set="Recepcao")
        assert error.entity == "Recepcao"
        assert error.details["data_source"] == "DS"


class TestLogging:
    def test_json_formatter_fields(self):
        formatter = build_formatter("json")
        record = logging.LogRecord("d2_query.executor", logging.INFO, __file__, 1, "query done", None, None)
        record.domain = "d2_query"

        payload = json.loads(formatter.format(record))
        assert payload["message"] == "query done"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "d2_query.executor"
        assert payload["app"] == "ReportRunner"
        assert payload["domain"] == "d2_query"

    def test_logger_context(self, caplog):
        logger = get_logger("tests.core", domain="core").with_context(job_id="abc")
        with caplog.at_level(logging.INFO, logger="tests.core"):
            logger.info("hello")

        record = caplog.records[-1]
        assert record.domain == "core"
        assert record.job_id == "abc"

    def test_json_formatter_lifts_render_context(self):
        formatter = build_formatter("json")
        assert isinstance(formatter, ReportJsonFormatter)
        record = logging.LogRecord("d4_jobs.task", logging.ERROR, __file__, 1, "job failed", None, None)
        record.job_id = "job-1"
        record.design = "Receptions"
        record.data_set = None

        payload = json.loads(formatter.format(record))
        assert payload["job_id"] == "job-1"
        assert payload["design"] == "Receptions"
        assert "data_set" not in payload

    def test_text_formatter_appends_context(self):
        formatter = build_formatter("text")
        assert isinstance(formatter, ContextTextFormatter)
        record = logging.LogRecord("d3_render.engine", logging.INFO, __file__, 1, "table done", None, None)
        record.domain = "d3_render"
        record.data_set = "Recepcao"

        line = formatter.format(record)
        assert line.endswith("table done [domain=d3_render data_set=Recepcao]")

    def test_text_formatter_without_context(self):
        record = logging.LogRecord("main", logging.INFO, __file__, 1, "plain", None, None)
        assert build_formatter("text").format(record).endswith("plain")

    def test_call_site_extra_wins(self, caplog):
        logger = get_logger("tests.core", domain="core", design="A")
        with caplog.at_level(logging.INFO, logger="tests.core"):
            logger.info("override", extra={"design": "B"})
            logger.info("bound")

        assert [record.design for record in caplog.records[-2:]] == ["B", "A"]
