"""
Unit tests for settings and structured logging helpers.
"""

from unittest.mock import MagicMock

import pytest
import structlog
from pydantic import ValidationError

from bizmetrics.config import Settings, get_settings
from bizmetrics.utils.logging import (
    add_engine_info,
    add_severity,
    analysis_context,
    configure_logging,
    get_logger,
    log_event,
)


class TestSettings:
    """Test settings defaults and validation."""

    def test_config_defaults(self, test_settings):
        assert test_settings.default_granularity == "day"
        assert test_settings.anomaly_method == "ensemble"
        assert test_settings.forecast_periods == 30
        assert test_settings.forecast_confidence_level == 0.95
        assert test_settings.anomaly_rolling_threshold == 2.5
        assert test_settings.anomaly_rolling_critical_threshold == 4.0

    def test_config_env_override(self, monkeypatch):
        monkeypatch.setenv("ANOMALY_METHOD", "MAD")
        monkeypatch.setenv("FORECAST_PERIODS", "14")
        settings = Settings(_env_file=None)
        assert settings.anomaly_method == "mad"
        assert settings.forecast_periods == 14

    def test_config_rejects_unknown_anomaly_method(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, anomaly_method="isolation_forest")

    def test_config_rejects_unknown_granularity(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_granularity="fortnight")

    def test_config_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_config_rejects_zero_alpha(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, forecast_alpha=0)

    def test_config_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestLogging:
    """Test structured logging helpers."""

    def test_logging_add_severity(self):
        event = add_severity(None, "warning", {"event": "x"})
        assert event["severity"] == "WARNING"

    def test_logging_log_event_dispatches_level(self):
        logger = MagicMock()
        log_event(logger, "warning", "report_rows_truncated", limit=10)
        logger.warning.assert_called_once_with("report_rows_truncated", limit=10)

    def test_logging_add_engine_info(self):
        event = add_engine_info(None, "info", {"event": "x"})
        assert event["engine"] == "bizmetrics"
        assert "engine_version" in event

    def test_logging_analysis_context_binds_and_clears(self):
        with analysis_context(metric="revenue"):
            assert structlog.contextvars.get_contextvars()["metric"] == "revenue"
        assert "metric" not in structlog.contextvars.get_contextvars()

    def test_logging_configure_and_get_logger(self, test_settings):
        configure_logging(test_settings)
        assert get_logger("bizmetrics.test") is not None
