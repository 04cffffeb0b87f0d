import time

from prometheus_client import CollectorRegistry, Gauge, pushadd_to_gateway

from cost_notifier.models import CostSummary, DeliveryOutcome

JOB_NAME = "cost_notifier"

OUTCOMES: "tuple[str, ...]" = (
    "delivered",
    "configuration",
    "timeout",
    "permanent",
    "data_integrity",
    "retries_exhausted",
)


def outcome_label(outcome: "DeliveryOutcome") -> "str":
    if outcome.ok:
        return "delivered"
    return outcome.reason.value


class RunMetrics:
    """
    records the result of a single run as Prometheus gauges. A
    scheduled job exits before any scrape, so the values are
    pushed to a Pushgateway instead of being served.

    Success gauges live in their own registry and are only pushed
    after a delivered report, so a failed run never overwrites the
    timestamp of the last good one.
    """

    def __init__(
        self,
        registry: "CollectorRegistry | None" = None,
        success_registry: "CollectorRegistry | None" = None,
    ) -> "None":
        self._registry: "CollectorRegistry" = registry or CollectorRegistry()
        self._success_registry: "CollectorRegistry" = (
            success_registry or CollectorRegistry()
        )
        self._succeeded = False

        self._last_run: "Gauge" = Gauge(
            "cost_notifier_last_run_timestamp_seconds",
            "Unix timestamp of the last run",
            registry=self._registry,
        )
        self._duration: "Gauge" = Gauge(
            "cost_notifier_run_duration_seconds",
            "Duration of the last run",
            registry=self._registry,
        )
        self._outcome: "Gauge" = Gauge(
            "cost_notifier_run_outcome",
            "1 for the outcome of the last run, 0 for the others",
            ["outcome"],
            registry=self._registry,
        )
        self._records: "Gauge" = Gauge(
            "cost_notifier_records_fetched",
            "Cost records returned to the last run",
            registry=self._registry,
        )
        self._report_total: "Gauge" = Gauge(
            "cost_notifier_report_total",
            "Total cost of the last reported period",
            ["currency"],
            registry=self._registry,
        )
        self._last_success: "Gauge" = Gauge(
            "cost_notifier_last_success_timestamp_seconds",
            "Unix timestamp of the last successfully delivered report",
            registry=self._success_registry,
        )
        self._delivery_retries: "Gauge" = Gauge(
            "cost_notifier_delivery_retries",
            "Webhook retries needed by the last delivered report",
            registry=self._success_registry,
        )

    def set_records_fetched(self, count: "int") -> "None":
        self._records.set(count)

    def set_report_total(self, summary: "CostSummary") -> "None":
        self._report_total.labels(currency=summary.currency).set(float(summary.total))

    def observe_outcome(
        self,
        outcome: "DeliveryOutcome",
        duration_seconds: "float",
        timestamp: "float | None" = None,
    ) -> "None":
        now = time.time() if timestamp is None else timestamp
        label = outcome_label(outcome)

        self._last_run.set(now)
        self._duration.set(duration_seconds)
        for name in OUTCOMES:
            self._outcome.labels(outcome=name).set(1 if name == label else 0)

        if outcome.ok:
            self._succeeded = True
            self._last_success.set(now)
            self._delivery_retries.set(getattr(outcome, "retries", 0))

    def push(self, gateway_url: "str", timeout: "float" = 5.0) -> "None":
        """
        pushes with POST semantics so metrics of earlier runs that
        this run did not set are kept.
        """
        pushadd_to_gateway(
            gateway_url, job=JOB_NAME, registry=self._registry, timeout=timeout
        )
        if self._succeeded:
            pushadd_to_gateway(
                gateway_url,
                job=JOB_NAME,
                registry=self._success_registry,
                timeout=timeout,
            )
