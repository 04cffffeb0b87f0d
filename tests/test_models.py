import json
from datetime import date
from decimal import Decimal

import pytest

from cost_notifier.models import (
    CostSummary,
    Delivered,
    DeliveredAfterRetry,
    Failed,
    FailureReason,
    NotificationMessage,
    ReportingPeriod,
)


class TestReportingPeriod:
    def test_rejects_start_after_end(self) -> "None":
        with pytest.raises(ValueError):
            ReportingPeriod(
                start=date(2021, 7, 2), end=date(2021, 7, 1), timezone="UTC"
            )

    def test_date_interval_end_is_exclusive(self) -> "None":
        period = ReportingPeriod(
            start=date(2021, 7, 1), end=date(2021, 7, 22), timezone="UTC"
        )
        assert period.as_date_interval() == {
            "Start": "2021-07-01",
            "End": "2021-07-23",
        }

    def test_date_interval_across_year_end(self) -> "None":
        period = ReportingPeriod(
            start=date(2021, 12, 31), end=date(2021, 12, 31), timezone="UTC"
        )
        assert period.as_date_interval() == {
            "Start": "2021-12-31",
            "End": "2022-01-01",
        }

    def test_days_and_key(self) -> "None":
        period = ReportingPeriod(
            start=date(2021, 7, 1), end=date(2021, 7, 18), timezone="Asia/Tokyo"
        )
        assert period.days == 18
        assert period.key == "2021-07-01..2021-07-18@Asia/Tokyo"


class TestCostSummaryRanking:
    def test_descending_with_name_tie_break(
        self,
        period: "ReportingPeriod",
    ) -> "None":
        summary = CostSummary(
            total=Decimal("6.00"),
            currency="USD",
            by_dimension={
                "S3": Decimal("1.00"),
                "Lambda": Decimal("2.00"),
                "EC2": Decimal("2.00"),
                "Credits": Decimal("1.00"),
            },
            period=period,
        )
        assert [dim for dim, _ in summary.ranking()] == [
            "EC2",
            "Lambda",
            "Credits",
            "S3",
        ]

    def test_negative_amounts_rank_last(self, period: "ReportingPeriod") -> "None":
        summary = CostSummary(
            total=Decimal("4.00"),
            currency="USD",
            by_dimension={"Refund": Decimal("-1.00"), "EC2": Decimal("5.00")},
            period=period,
        )
        assert summary.ranking()[-1] == ("Refund", Decimal("-1.00"))


class TestNotificationMessage:
    def test_payload_is_slack_attachment(self) -> "None":
        message = NotificationMessage(header="head", body="line")
        assert message.to_payload() == {
            "attachments": [
                {
                    "color": "#36a64f",
                    "fallback": "head",
                    "pretext": "head",
                    "text": "line",
                }
            ]
        }

    def test_json_is_utf8_and_stable(self) -> "None":
        message = NotificationMessage(header="コスト", body="• EC2: 1.00 USD")
        encoded = message.to_json()
        assert encoded == message.to_json()
        assert "コスト".encode("utf-8") in encoded
        assert json.loads(encoded) == message.to_payload()


class TestDeliveryOutcome:
    def test_describe(self) -> "None":
        assert Delivered().describe() == "delivered"
        assert DeliveredAfterRetry(retries=2).describe() == "delivered_after_retry(2)"
        assert Failed(reason=FailureReason.TIMEOUT).describe() == "failed(timeout)"

    def test_ok_flag(self) -> "None":
        assert Delivered().ok is True
        assert DeliveredAfterRetry(retries=1).ok is True
        assert Failed(reason=FailureReason.PERMANENT).ok is False

    def test_equality(self) -> "None":
        assert DeliveredAfterRetry(retries=2) == DeliveredAfterRetry(retries=2)
        assert Delivered() != DeliveredAfterRetry(retries=0)
