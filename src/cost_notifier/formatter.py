from decimal import ROUND_HALF_UP, Decimal

from cost_notifier.models import CostSummary, NotificationMessage, ReportingPeriod

# ISO 4217 minor units for currencies that do not use two decimals
_MINOR_UNITS: "dict[str, int]" = {
    "BIF": 0,
    "CLP": 0,
    "DJF": 0,
    "GNF": 0,
    "ISK": 0,
    "JPY": 0,
    "KMF": 0,
    "KRW": 0,
    "PYG": 0,
    "RWF": 0,
    "UGX": 0,
    "VND": 0,
    "VUV": 0,
    "XAF": 0,
    "XOF": 0,
    "XPF": 0,
    "BHD": 3,
    "IQD": 3,
    "JOD": 3,
    "KWD": 3,
    "LYD": 3,
    "OMR": 3,
    "TND": 3,
}

BULLET = "•"


def minor_units(currency: "str") -> "int":
    return _MINOR_UNITS.get(currency.upper(), 2)


def round_amount(amount: "Decimal", currency: "str") -> "Decimal":
    """
    rounds half-up to the currency's minor unit.
    """
    exponent = Decimal(1).scaleb(-minor_units(currency))
    rounded = amount.quantize(exponent, rounding=ROUND_HALF_UP)
    # avoid rendering "-0.00"
    return abs(rounded) if rounded == 0 else rounded


def format_amount(amount: "Decimal", currency: "str") -> "str":
    """
    renders e.g. Decimal("132.2345") in USD as "132.23 USD".
    """
    return f"{round_amount(amount, currency)} {currency}"


def format_period(period: "ReportingPeriod") -> "str":
    if period.start == period.end:
        dates = period.start.isoformat()
    else:
        dates = f"{period.start.isoformat()} to {period.end.isoformat()}"
    return f"{dates} ({period.timezone})"


def format_summary(summary: "CostSummary", top_n: "int" = 10) -> "NotificationMessage":
    """
    renders a summary into a Slack message. The same summary always
    renders to the same message.

    Dimensions are listed by descending cost. Those that round to
    zero are not listed, and only the first top_n are shown; every
    dimension left out is counted in a trailing "and N more" line.
    """
    currency = summary.currency
    header = (
        f"Cost report for {format_period(summary.period)}: "
        f"{format_amount(summary.total, currency)}"
    )

    ranked = summary.ranking()
    if not ranked:
        return NotificationMessage(
            header=header,
            body="No costs were reported for this period.",
        )

    listed = [(dim, amount) for dim, amount in ranked if round_amount(amount, currency)]
    shown = listed[:top_n]
    shown_names = {dim for dim, _ in shown}
    hidden = [(dim, amount) for dim, amount in ranked if dim not in shown_names]

    lines = [f"{BULLET} {dim}: {format_amount(amount, currency)}" for dim, amount in shown]
    if hidden:
        hidden_total = sum((amount for _, amount in hidden), Decimal(0))
        lines.append(
            f"...and {len(hidden)} more ({format_amount(hidden_total, currency)})"
        )

    return NotificationMessage(header=header, body="\n".join(lines))
