from datetime import date
from decimal import Decimal

from cost_notifier.aggregator import aggregate
from cost_notifier.formatter import format_amount, format_summary, minor_units
from cost_notifier.models import CostRecord, CostSummary, ReportingPeriod


def _summary(
    period: "ReportingPeriod",
    costs: "dict[str, str]",
    currency: "str" = "USD",
) -> "CostSummary":
    records = [
        CostRecord(
            dimension=dimension,
            amount=Decimal(amount),
            currency=currency,
            date=period.start,
        )
        for dimension, amount in costs.items()
    ]
    return aggregate(records, period, default_currency=currency)


class TestFormatAmount:
    def test_two_decimals_by_default(self) -> "None":
        assert format_amount(Decimal("132.2345"), "USD") == "132.23 USD"

    def test_rounds_half_up(self) -> "None":
        assert format_amount(Decimal("0.125"), "EUR") == "0.13 EUR"

    def test_pads_to_minor_unit(self) -> "None":
        assert format_amount(Decimal("12.5"), "USD") == "12.50 USD"

    def test_zero_decimal_currency(self) -> "None":
        assert minor_units("JPY") == 0
        assert format_amount(Decimal("1234.5"), "JPY") == "1235 JPY"

    def test_three_decimal_currency(self) -> "None":
        assert format_amount(Decimal("1.2345"), "BHD") == "1.235 BHD"

    def test_no_negative_zero(self) -> "None":
        assert format_amount(Decimal("-0.001"), "USD") == "0.00 USD"

    def test_negative_amount(self) -> "None":
        assert format_amount(Decimal("-4"), "USD") == "-4.00 USD"


class TestFormatSummary:
    def test_lists_top_contributors_in_order(
        self,
        period: "ReportingPeriod",
    ) -> "None":
        summary = _summary(period, {"S3": "0.75", "EC2": "12.50"})

        message = format_summary(summary)

        assert message.header == "Cost report for 2021-07-18 (Asia/Tokyo): 13.25 USD"
        assert message.body == "• EC2: 12.50 USD\n• S3: 0.75 USD"

    def test_rounds_each_line(self, period: "ReportingPeriod") -> "None":
        summary = _summary(
            period,
            {"AWS CloudTrail": "1.234", "AWS Cost Explorer": "0.123"},
        )

        message = format_summary(summary)

        assert message.header.endswith(": 1.36 USD")
        assert message.body == (
            "• AWS CloudTrail: 1.23 USD\n• AWS Cost Explorer: 0.12 USD"
        )

    def test_period_range_in_header(self) -> "None":
        period = ReportingPeriod(
            start=date(2021, 7, 1), end=date(2021, 7, 11), timezone="Asia/Tokyo"
        )
        summary = _summary(period, {"EC2": "1.6234"})

        message = format_summary(summary)

        assert message.header == (
            "Cost report for 2021-07-01 to 2021-07-11 (Asia/Tokyo): 1.62 USD"
        )

    def test_truncation_is_explicit(self, period: "ReportingPeriod") -> "None":
        summary = _summary(period, {"A": "4", "B": "3", "C": "2", "D": "1"})

        message = format_summary(summary, top_n=2)

        assert message.body == (
            "• A: 4.00 USD\n• B: 3.00 USD\n...and 2 more (3.00 USD)"
        )

    def test_negligible_costs_are_counted_not_listed(
        self,
        period: "ReportingPeriod",
    ) -> "None":
        summary = _summary(
            period,
            {
                "AWS CloudTrail": "0.01",
                "AWS Cost Explorer": "0.001",
                "AWS Dummy Service": "0.002",
            },
        )

        message = format_summary(summary)

        assert message.body == "• AWS CloudTrail: 0.01 USD\n...and 2 more (0.00 USD)"

    def test_no_truncation_line_when_everything_fits(
        self,
        period: "ReportingPeriod",
    ) -> "None":
        summary = _summary(period, {"A": "1", "B": "2"})
        assert "more" not in format_summary(summary, top_n=2).body

    def test_credits_are_listed(self, period: "ReportingPeriod") -> "None":
        summary = _summary(period, {"EC2": "10", "Credit": "-4"})

        message = format_summary(summary)

        assert message.header.endswith(": 6.00 USD")
        assert message.body == "• EC2: 10.00 USD\n• Credit: -4.00 USD"

    def test_zero_decimal_currency_summary(
        self,
        period: "ReportingPeriod",
    ) -> "None":
        summary = _summary(period, {"EC2": "1500.4", "S3": "20"}, currency="JPY")

        message = format_summary(summary)

        assert message.header.endswith(": 1520 JPY")
        assert message.body == "• EC2: 1500 JPY\n• S3: 20 JPY"

    def test_empty_summary(self, period: "ReportingPeriod") -> "None":
        message = format_summary(aggregate([], period))

        assert message.header == "Cost report for 2021-07-18 (Asia/Tokyo): 0.00 USD"
        assert message.body == "No costs were reported for this period."

    def test_deterministic(self, period: "ReportingPeriod") -> "None":
        summary = _summary(
            period,
            {"EC2": "12.50", "S3": "0.75", "Lambda": "0.75", "RDS": "3.10"},
        )

        first = format_summary(summary, top_n=3)
        second = format_summary(summary, top_n=3)

        assert first == second
        assert first.to_json() == second.to_json()
