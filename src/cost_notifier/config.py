import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from cost_notifier.errors import ConfigurationError
from cost_notifier.period import GRANULARITIES, load_timezone

_MAX_TOP_N = 50


@dataclass
class Config:
    # IANA timezone id the report dates are local to
    timezone: "str" = ""
    # secret, never logged
    webhook_url: "str" = field(default="", repr=False)
    granularity: "str" = "daily"

    cost_metric: "str" = "AmortizedCost"
    group_by: "str" = "SERVICE"
    # currency of an empty report
    default_currency: "str" = "USD"
    top_n: "int" = 10

    # platform invocation timeout and the margin kept back from it
    execution_budget_seconds: "float" = 90.0
    safety_margin_seconds: "float" = 10.0
    max_pages: "int" = 20
    max_attempts: "int" = 4
    request_timeout_seconds: "float" = 10.0
    retry_initial_wait: "float" = 1.0
    retry_max_wait: "float" = 8.0

    pushgateway_url: "str" = ""
    log_level: "str" = "info"
    log_format: "str" = "console"

    @classmethod
    def from_env(cls) -> "Config":
        env = os.environ
        try:
            return cls(
                timezone=env.get("REPORTING_TIMEZONE", ""),
                webhook_url=env.get("SLACK_WEBHOOK_URL", ""),
                granularity=env.get("REPORT_GRANULARITY", "daily"),
                cost_metric=env.get("COST_METRIC", "AmortizedCost"),
                group_by=env.get("COST_GROUP_BY", "SERVICE"),
                default_currency=env.get("REPORT_CURRENCY", "USD"),
                top_n=int(env.get("REPORT_TOP_N", "10")),
                execution_budget_seconds=float(
                    env.get("EXECUTION_BUDGET_SECONDS", "90")
                ),
                safety_margin_seconds=float(env.get("SAFETY_MARGIN_SECONDS", "10")),
                max_pages=int(env.get("MAX_PAGES", "20")),
                max_attempts=int(env.get("MAX_ATTEMPTS", "4")),
                request_timeout_seconds=float(
                    env.get("REQUEST_TIMEOUT_SECONDS", "10")
                ),
                retry_initial_wait=float(env.get("RETRY_INITIAL_WAIT_SECONDS", "1")),
                retry_max_wait=float(env.get("RETRY_MAX_WAIT_SECONDS", "8")),
                pushgateway_url=env.get("PUSHGATEWAY_URL", ""),
                log_level=env.get("LOG_LEVEL", "info"),
                log_format=env.get("LOG_FORMAT", "console"),
            )
        except ValueError as exc:
            raise ConfigurationError(f"invalid numeric setting: {exc}") from exc

    @property
    def run_budget_seconds(self) -> "float":
        return self.execution_budget_seconds - self.safety_margin_seconds

    @property
    def metrics_enabled(self) -> "bool":
        return bool(self.pushgateway_url)

    def validate(self) -> "None":
        """
        fails fast on settings that would otherwise only break the
        run after quota has been spent.
        """
        load_timezone(self.timezone)

        if not self.webhook_url:
            raise ConfigurationError("SLACK_WEBHOOK_URL is not set")
        parsed = urlparse(self.webhook_url)
        # the URL itself is secret, so it stays out of the message
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError("SLACK_WEBHOOK_URL is not an http(s) URL")

        if self.granularity not in GRANULARITIES:
            raise ConfigurationError(
                f"REPORT_GRANULARITY must be one of {', '.join(GRANULARITIES)}"
            )
        if not 1 <= self.top_n <= _MAX_TOP_N:
            raise ConfigurationError(f"REPORT_TOP_N must be between 1 and {_MAX_TOP_N}")
        if self.run_budget_seconds <= 0:
            raise ConfigurationError(
                "EXECUTION_BUDGET_SECONDS must exceed SAFETY_MARGIN_SECONDS"
            )
        if self.max_pages < 1 or self.max_attempts < 1:
            raise ConfigurationError("MAX_PAGES and MAX_ATTEMPTS must be positive")
        if not 0 <= self.retry_initial_wait <= self.retry_max_wait:
            raise ConfigurationError(
                "RETRY_INITIAL_WAIT_SECONDS must be in 0..RETRY_MAX_WAIT_SECONDS"
            )
        if self.log_format not in ("console", "json"):
            raise ConfigurationError("LOG_FORMAT must be console or json")
