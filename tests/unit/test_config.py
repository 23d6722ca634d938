"""
Unit tests for settings, the injected taxonomy and structured logging.
"""

import pytest
import structlog
from pydantic import ValidationError

from twinscore import __version__
from twinscore.config import Settings, get_settings
from twinscore.engine.aggregator import aggregate_monthly
from twinscore.engine.pipeline import TwinAnalyzer
from twinscore.models.taxonomy import DEFAULT_TAXONOMY
from twinscore.utils.logging import (
    add_engine_version,
    add_severity,
    bind_analysis_context,
    build_processors,
    configure_logging,
    round_float_fields,
)
from tests.conftest import make_deposit, make_transaction


@pytest.fixture
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestSettings:
    def test_defaults_build_default_taxonomy(self):
        assert Settings().taxonomy() == DEFAULT_TAXONOMY

    def test_keyword_lists_parsed(self):
        settings = Settings(payroll_keywords=" Payroll, WAGES ,,", essential_categories="rent")
        assert settings.payroll_keywords == ["payroll", "wages"]
        assert settings.taxonomy().essential_categories == frozenset({"rent"})

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TWINSCORE_ESSENTIAL_CATEGORIES", "rent,groceries,dining")
        monkeypatch.setenv("TWINSCORE_STRESS_HORIZON_MONTHS", "6")

        settings = get_settings()

        assert settings.stress_horizon_months == 6
        assert settings.taxonomy().is_essential("dining")

    def test_settings_cached(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("forward_months_default", 0),
            ("stress_horizon_months", 121),
            ("runway_display_cap", 0),
        ],
    )
    def test_horizon_bounds(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_taxonomy_flows_into_aggregation(self):
        settings = Settings(essential_categories="rent,dining")
        transactions = [
            make_transaction(-100.0, merchant_name="Chipotle", category="dining"),
            make_transaction(-50.0, merchant_name="Amazon", category="shopping"),
        ]
        (month,) = aggregate_monthly(transactions, settings.taxonomy())
        assert month.essential_spending == 100.0
        assert month.discretionary_spending == 50.0

    def test_payroll_keywords_flow_into_analyzer(self):
        deposit = make_deposit(2500.0, make_transaction().date, name="GUSTO WAGES")

        default_report = TwinAnalyzer(settings=Settings()).analyze([deposit])
        custom_report = TwinAnalyzer(settings=Settings(payroll_keywords="wages")).analyze(
            [deposit]
        )

        assert default_report.months[0].has_payroll_deposit is False
        assert custom_report.months[0].has_payroll_deposit is True


class TestLogging:
    def test_add_severity(self):
        event = add_severity(None, "warning", {"event": "month_sequence_reordered"})
        assert event["severity"] == "WARNING"

    def test_bind_analysis_context_replaces_previous(self, reset_structlog):
        bind_analysis_context(batch="a", user="u1")
        bind_analysis_context(batch="b")

        assert structlog.contextvars.get_contextvars() == {"batch": "b"}

    @pytest.mark.parametrize("dev_mode", ["true", "false"])
    def test_configure_logging(self, monkeypatch, reset_structlog, dev_mode):
        monkeypatch.setenv("TWINSCORE_DEV_MODE", dev_mode)
        monkeypatch.setenv("TWINSCORE_LOG_LEVEL", "debug")

        configure_logging()

        assert structlog.is_configured()
        processors = structlog.get_config()["processors"]
        assert add_severity in processors
        renderer = processors[-1]
        if dev_mode == "true":
            assert isinstance(renderer, structlog.dev.ConsoleRenderer)
        else:
            assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_add_engine_version(self):
        event = add_engine_version(None, "info", {"event": "scoring_completed"})
        assert event["engine"] == f"twinscore/{__version__}"

    def test_round_float_fields(self):
        event = round_float_fields(
            None, "info", {"event": "scoring_completed", "overall": 71.456789123, "months": 6}
        )
        assert event["overall"] == 71.4568
        assert event["months"] == 6

    def test_configure_logging_from_settings(self, reset_structlog):
        configure_logging(Settings(dev_mode=False, log_format="json"))

        processors = structlog.get_config()["processors"]
        assert add_engine_version in processors
        assert round_float_fields in processors
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_bound_context_merged_into_event(self, reset_structlog):
        bind_analysis_context(batch="demo")
        chain = build_processors(Settings(dev_mode=False, log_format="json"))
        merge = chain[0]

        event = merge(None, "info", {"event": "twin_analysis_started"})

        assert event["batch"] == "demo"
