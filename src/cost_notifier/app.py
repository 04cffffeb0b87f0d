import asyncio
import os
from typing import Any

import structlog

from cost_notifier.config import Config
from cost_notifier.cost_source import CostSourceClient
from cost_notifier.errors import ConfigurationError
from cost_notifier.logging import setup_logging
from cost_notifier.metrics import RunMetrics
from cost_notifier.models import DeliveryOutcome, Failed, FailureReason
from cost_notifier.notifier import SlackNotifier
from cost_notifier.pipeline import Pipeline
from cost_notifier.provider.aws import AwsCostExplorerProvider

logger = structlog.get_logger()


def build_pipeline(config: "Config") -> "Pipeline":
    provider = AwsCostExplorerProvider(
        metric=config.cost_metric,
        group_by=config.group_by,
        request_timeout=config.request_timeout_seconds,
    )
    cost_client = CostSourceClient(
        provider,
        max_pages=config.max_pages,
        max_attempts=config.max_attempts,
        request_timeout=config.request_timeout_seconds,
        initial_wait=config.retry_initial_wait,
        max_wait=config.retry_max_wait,
    )
    notifier = SlackNotifier(
        config.webhook_url,
        max_attempts=config.max_attempts,
        request_timeout=config.request_timeout_seconds,
        initial_wait=config.retry_initial_wait,
        max_wait=config.retry_max_wait,
    )
    return Pipeline(config, cost_client, notifier, metrics=RunMetrics())


async def _run_pipeline(
    config: "Config",
    budget_seconds: "float | None",
) -> "DeliveryOutcome":
    pipeline = build_pipeline(config)
    try:
        return await pipeline.run(budget_seconds=budget_seconds)
    finally:
        await pipeline.close()


def run(
    budget_seconds: "float | None" = None,
    config: "Config | None" = None,
) -> "DeliveryOutcome":
    """
    runs one report. Configuration is read from the environment
    unless given, and validated before any API call. Never raises:
    the returned outcome is the only success signal.
    """
    try:
        if config is None:
            config = Config.from_env()
        config.validate()
    except ConfigurationError as exc:
        logger.error("configuration_invalid", error=str(exc))
        return Failed(reason=exc.reason, detail=str(exc))

    return asyncio.run(_run_pipeline(config, budget_seconds))


def handler(event: "dict[str, Any]", context: "Any") -> "dict[str, Any]":
    """
    AWS Lambda entry point for the scheduled rule. Returns rather
    than raises on failure, so the platform never re-invokes a run
    that may already have delivered.
    """
    try:
        config = Config.from_env()
    except ConfigurationError as exc:
        # the raw settings still pick the renderer the log collector expects
        setup_logging(
            os.environ.get("LOG_LEVEL", "info"),
            os.environ.get("LOG_FORMAT", "console"),
        )
        logger.error("configuration_invalid", error=str(exc))
        return {"ok": False, "outcome": Failed(reason=exc.reason).describe()}

    setup_logging(config.log_level, config.log_format)

    budget: "float | None" = None
    if context is not None:
        remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
        if remaining_ms is not None:
            budget = remaining_ms() / 1000 - config.safety_margin_seconds

    outcome = run(budget_seconds=budget, config=config)
    return {"ok": outcome.ok, "outcome": outcome.describe()}
