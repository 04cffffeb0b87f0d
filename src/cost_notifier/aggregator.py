from collections import defaultdict
from decimal import Decimal
from typing import Iterable

import structlog

from cost_notifier.errors import DataIntegrityError
from cost_notifier.models import CostRecord, CostSummary, ReportingPeriod

logger = structlog.get_logger()


def aggregate(
    records: "Iterable[CostRecord]",
    period: "ReportingPeriod",
    default_currency: "str" = "USD",
) -> "CostSummary":
    """
    sums records per dimension with Decimal arithmetic. Input
    order does not matter. All records must share one currency;
    a mix is rejected rather than converted. No records at all is
    a valid zero-cost report in default_currency.
    """
    by_dimension: "defaultdict[str, Decimal]" = defaultdict(Decimal)
    currencies: "set[str]" = set()

    for record in records:
        currencies.add(record.currency)
        by_dimension[record.dimension] += record.amount

    if len(currencies) > 1:
        raise DataIntegrityError(
            f"cost records mix currencies: {', '.join(sorted(currencies))}"
        )

    currency = currencies.pop() if currencies else default_currency
    total = sum(by_dimension.values(), Decimal(0))

    logger.debug(
        "costs_aggregated",
        dimensions=len(by_dimension),
        total=str(total),
        currency=currency,
    )
    return CostSummary(
        total=total,
        currency=currency,
        by_dimension=dict(by_dimension),
        period=period,
    )
