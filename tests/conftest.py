from datetime import date

import pytest
from prometheus_client import CollectorRegistry

from cost_notifier.models import ReportingPeriod

ENV_VARS = (
    "REPORTING_TIMEZONE",
    "SLACK_WEBHOOK_URL",
    "REPORT_GRANULARITY",
    "COST_METRIC",
    "COST_GROUP_BY",
    "REPORT_CURRENCY",
    "REPORT_TOP_N",
    "EXECUTION_BUDGET_SECONDS",
    "SAFETY_MARGIN_SECONDS",
    "MAX_PAGES",
    "MAX_ATTEMPTS",
    "REQUEST_TIMEOUT_SECONDS",
    "RETRY_INITIAL_WAIT_SECONDS",
    "RETRY_MAX_WAIT_SECONDS",
    "PUSHGATEWAY_URL",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def clean_env(monkeypatch: "pytest.MonkeyPatch") -> "pytest.MonkeyPatch":
    """
    removes every variable Config.from_env reads.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture()
def period() -> "ReportingPeriod":
    return ReportingPeriod(
        start=date(2021, 7, 18),
        end=date(2021, 7, 18),
        timezone="Asia/Tokyo",
    )
