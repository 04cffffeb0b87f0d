import structlog

from cost_notifier.app import run
from cost_notifier.cli import parse_args
from cost_notifier.errors import ConfigurationError
from cost_notifier.logging import setup_logging

logger = structlog.get_logger()


def main(argv: "list[str] | None" = None) -> "int":
    try:
        config = parse_args(argv)
    except ConfigurationError as exc:
        setup_logging("info")
        logger.error("configuration_invalid", error=str(exc))
        return 1

    setup_logging(config.log_level, config.log_format)
    outcome = run(config=config)
    logger.info("run_finished", outcome=outcome.describe())
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
