import enum
import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Mapping
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True)
class ReportingPeriod:
    """
    ReportingPeriod is the window a report covers, expressed as
    inclusive calendar dates local to the configured timezone.
    """

    start: "date"
    end: "date"
    # IANA timezone id the dates are local to
    timezone: "str"

    def __post_init__(self) -> "None":
        if self.start > self.end:
            raise ValueError(
                f"period start {self.start} is after period end {self.end}"
            )

    @property
    def days(self) -> "int":
        return (self.end - self.start).days + 1

    @property
    def key(self) -> "str":
        """
        stable identifier of the period, logged with every run.
        """
        return f"{self.start.isoformat()}..{self.end.isoformat()}@{self.timezone}"

    @property
    def utc_start(self) -> "datetime":
        """
        the UTC instant of local midnight at the beginning of start.
        """
        return self._local_midnight_utc(self.start)

    @property
    def utc_end(self) -> "datetime":
        """
        the UTC instant of local midnight right after end (exclusive).
        """
        return self._local_midnight_utc(self.end + timedelta(days=1))

    def _local_midnight_utc(self, day: "date") -> "datetime":
        # a midnight skipped by a DST jump resolves to the first
        # existing instant of that local day
        local = datetime.combine(day, time(0), tzinfo=ZoneInfo(self.timezone))
        return local.astimezone(timezone.utc)

    def as_date_interval(self) -> "dict[str, str]":
        """
        converts the period into a Cost Explorer TimePeriod, whose
        End is exclusive.
        """
        return {
            "Start": self.start.isoformat(),
            "End": (self.end + timedelta(days=1)).isoformat(),
        }


@dataclass(frozen=True, slots=True)
class CostRecord:
    """
    CostRecord represents the cost of one dimension (e.g. a
    service) on one day. Amounts may be negative for credits.
    """

    dimension: "str"
    amount: "Decimal"
    currency: "str"
    date: "date"


@dataclass(frozen=True, slots=True)
class CostPage:
    records: "tuple[CostRecord, ...]"
    # continuation token for the next page, None on the last page
    next_token: "str | None" = None


@dataclass(frozen=True, slots=True)
class CostSummary:
    """
    CostSummary is the aggregated spend for a period, in a
    single currency.
    """

    total: "Decimal"
    currency: "str"
    by_dimension: "Mapping[str, Decimal]"
    period: "ReportingPeriod"

    def ranking(self) -> "list[tuple[str, Decimal]]":
        """
        returns dimensions by descending amount, ties broken by
        dimension name.
        """
        return sorted(self.by_dimension.items(), key=lambda kv: (-kv[1], kv[0]))


@dataclass(frozen=True, slots=True)
class NotificationMessage:
    header: "str"
    body: "str"
    color: "str" = "#36a64f"

    def to_payload(self) -> "dict[str, object]":
        """
        builds the Slack incoming webhook body.
        """
        return {
            "attachments": [
                {
                    "color": self.color,
                    "fallback": self.header,
                    "pretext": self.header,
                    "text": self.body,
                }
            ]
        }

    def to_json(self) -> "bytes":
        return json.dumps(
            self.to_payload(),
            ensure_ascii=False,
            separators=(",", ":"),
            sort_keys=True,
        ).encode("utf-8")


class FailureReason(str, enum.Enum):
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    PERMANENT = "permanent"
    DATA_INTEGRITY = "data_integrity"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True, slots=True)
class Delivered:
    ok: "bool" = field(default=True, init=False)

    def describe(self) -> "str":
        return "delivered"


@dataclass(frozen=True, slots=True)
class DeliveredAfterRetry:
    retries: "int"
    ok: "bool" = field(default=True, init=False)

    def describe(self) -> "str":
        return f"delivered_after_retry({self.retries})"


@dataclass(frozen=True, slots=True)
class Failed:
    reason: "FailureReason"
    # human readable detail, only ever written to logs
    detail: "str" = ""
    ok: "bool" = field(default=False, init=False)

    def describe(self) -> "str":
        return f"failed({self.reason.value})"


DeliveryOutcome = Delivered | DeliveredAfterRetry | Failed
