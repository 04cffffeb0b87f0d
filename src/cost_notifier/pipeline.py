import asyncio
import enum
import time
from datetime import datetime, timezone
from typing import Callable, Protocol

import structlog

from cost_notifier.aggregator import aggregate
from cost_notifier.config import Config
from cost_notifier.cost_source import CostSourceClient
from cost_notifier.deadline import Deadline
from cost_notifier.errors import CostNotifierError
from cost_notifier.formatter import format_summary
from cost_notifier.metrics import RunMetrics
from cost_notifier.models import (
    DeliveryOutcome,
    Failed,
    FailureReason,
    NotificationMessage,
)
from cost_notifier.period import load_timezone, reporting_period

logger = structlog.get_logger()


class Stage(str, enum.Enum):
    START = "start"
    PERIOD_COMPUTED = "period_computed"
    COST_FETCHED = "cost_fetched"
    AGGREGATED = "aggregated"
    FORMATTED = "formatted"
    DELIVERED = "delivered"
    FAILED = "failed"


class Notifier(Protocol):
    async def deliver(
        self,
        message: "NotificationMessage",
        deadline: "Deadline",
    ) -> "DeliveryOutcome": ...

    async def close(self) -> "None": ...


class Pipeline:
    """
    Pipeline runs one report end to end:

        start -> period_computed -> cost_fetched -> aggregated
              -> formatted -> delivered | failed

    Stages run strictly in sequence and never go back. The first
    error short-circuits the rest, so a failed run delivers nothing
    and its detail only reaches the logs. The whole run lives
    inside one Deadline sized from the platform's invocation
    timeout minus a safety margin.
    """

    def __init__(
        self,
        config: "Config",
        cost_client: "CostSourceClient",
        notifier: "Notifier",
        metrics: "RunMetrics | None" = None,
        clock: "Callable[[], float]" = time.monotonic,
    ) -> "None":
        self._config = config
        self._cost_client = cost_client
        self._notifier = notifier
        self._metrics = metrics
        self._clock = clock

    async def close(self) -> "None":
        await self._cost_client.close()
        await self._notifier.close()

    async def run(
        self,
        now: "datetime | None" = None,
        budget_seconds: "float | None" = None,
    ) -> "DeliveryOutcome":
        budget = (
            self._config.run_budget_seconds if budget_seconds is None else budget_seconds
        )
        started = self._clock()
        deadline = Deadline(budget, clock=self._clock)
        if now is None:
            now = datetime.now(timezone.utc)

        self._transition(Stage.START, budget_seconds=budget)
        try:
            # backstop for a stage that ignores the deadline
            outcome = await asyncio.wait_for(
                self._execute(now, deadline),
                timeout=deadline.remaining(),
            )
        except TimeoutError:
            outcome = Failed(
                reason=FailureReason.TIMEOUT,
                detail="execution budget exhausted",
            )
        except CostNotifierError as exc:
            outcome = Failed(reason=exc.reason, detail=str(exc))

        duration = self._clock() - started
        if outcome.ok:
            self._transition(
                Stage.DELIVERED, outcome=outcome.describe(), duration=duration
            )
        else:
            self._transition(
                Stage.FAILED,
                outcome=outcome.describe(),
                detail=outcome.detail,
                duration=duration,
            )

        await self._record_metrics(outcome, duration)
        return outcome

    async def _execute(
        self,
        now: "datetime",
        deadline: "Deadline",
    ) -> "DeliveryOutcome":
        config = self._config

        tz = load_timezone(config.timezone)
        period = reporting_period(now, tz, config.granularity)
        self._transition(
            Stage.PERIOD_COMPUTED,
            report_key=period.key,
            utc_start=period.utc_start.isoformat(),
            utc_end=period.utc_end.isoformat(),
        )

        with structlog.contextvars.bound_contextvars(report_key=period.key):
            deadline.check("cost_fetch")
            records = await self._cost_client.fetch(period, deadline)
            if self._metrics is not None:
                self._metrics.set_records_fetched(len(records))
            self._transition(Stage.COST_FETCHED, record_count=len(records))

            summary = aggregate(records, period, config.default_currency)
            if self._metrics is not None:
                self._metrics.set_report_total(summary)
            self._transition(
                Stage.AGGREGATED,
                total=str(summary.total),
                currency=summary.currency,
                dimensions=len(summary.by_dimension),
            )

            message = format_summary(summary, top_n=config.top_n)
            self._transition(Stage.FORMATTED)

            deadline.check("delivery")
            return await self._notifier.deliver(message, deadline)

    def _transition(self, stage: "Stage", **fields: "object") -> "None":
        if stage is Stage.FAILED:
            logger.error("pipeline_stage", stage=stage.value, **fields)
        else:
            logger.info("pipeline_stage", stage=stage.value, **fields)

    async def _record_metrics(
        self,
        outcome: "DeliveryOutcome",
        duration: "float",
    ) -> "None":
        if self._metrics is None:
            return

        self._metrics.observe_outcome(outcome, duration)
        if not self._config.metrics_enabled:
            return

        # a broken Pushgateway must not change the run's outcome
        try:
            await asyncio.to_thread(self._metrics.push, self._config.pushgateway_url)
        except Exception:
            logger.exception("metrics_push_failed")
