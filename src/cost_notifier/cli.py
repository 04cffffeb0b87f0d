import argparse

from cost_notifier.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="cost-notifier",
        description="Report yesterday's cloud spend to a Slack webhook",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default=None,
        choices=["console", "json"],
        help="Log output format (default: LOG_FORMAT or console)",
    )
    parser.add_argument(
        "--run.budget-seconds",
        dest="budget_seconds",
        type=float,
        default=None,
        help="Execution budget in seconds (default: EXECUTION_BUDGET_SECONDS or 90)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.budget_seconds is not None:
        config.execution_budget_seconds = args.budget_seconds
    return config
