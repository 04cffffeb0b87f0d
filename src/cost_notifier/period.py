from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cost_notifier.errors import ConfigurationError
from cost_notifier.models import ReportingPeriod

GRANULARITIES: "tuple[str, ...]" = ("daily", "month_to_date")


def load_timezone(tz_id: "str") -> "ZoneInfo":
    """
    resolves an IANA timezone id, raising ConfigurationError for
    anything the tz database does not know.
    """
    if not tz_id:
        raise ConfigurationError("timezone is not set")
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"unknown timezone: {tz_id!r}") from exc


def reporting_period(
    now: "datetime",
    tz: "ZoneInfo",
    granularity: "str" = "daily",
) -> "ReportingPeriod":
    """
    derives the reporting window from the current instant.

     - daily: the previous full calendar day in tz.
     - month_to_date: from the first day of the month containing
     yesterday up to yesterday, so on the first of a month the whole
     previous month is reported.

    A naive now is taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    # calendar arithmetic on local dates is immune to DST shifts
    yesterday = now.astimezone(tz).date() - timedelta(days=1)

    if granularity == "daily":
        start = yesterday
    elif granularity == "month_to_date":
        start = yesterday.replace(day=1)
    else:
        raise ConfigurationError(f"unknown report granularity: {granularity!r}")

    return ReportingPeriod(start=start, end=yesterday, timezone=tz.key)
