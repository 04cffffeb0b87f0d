import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import boto3
import structlog
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from cost_notifier.errors import PermanentError, TransientError
from cost_notifier.models import CostPage, CostRecord, ReportingPeriod

logger = structlog.get_logger()

# Cost Explorer is served from a single global endpoint
CE_REGION = "us-east-1"

THROTTLING_CODES: "frozenset[str]" = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "LimitExceededException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ServiceUnavailable",
        "InternalServerError",
    }
)

_NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def classify_client_error(exc: "ClientError") -> "TransientError | PermanentError":
    """
    maps a Cost Explorer ClientError onto the error taxonomy:
    throttling and 5xx are transient, anything else is permanent.
    """
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    message = f"GetCostAndUsage failed: {code} (HTTP {status})"

    if code in THROTTLING_CODES or status == 429 or status >= 500:
        return TransientError(message)
    return PermanentError(message)


class AwsCostExplorerProvider:
    """
    AwsCostExplorerProvider implements the CostProvider protocol on
    top of the AWS Cost Explorer GetCostAndUsage API. Each call
    returns one page of daily costs grouped by a single dimension.

    botocore's own retries are switched off; CostSourceClient owns
    retrying so the execution budget is respected.
    """

    def __init__(
        self,
        metric: "str" = "AmortizedCost",
        group_by: "str" = "SERVICE",
        request_timeout: "float" = 10.0,
        client: "Any" = None,
    ) -> "None":
        self._metric = metric
        self._group_by = group_by
        if client is None:
            client = boto3.client(
                "ce",
                region_name=CE_REGION,
                config=BotoConfig(
                    connect_timeout=request_timeout,
                    read_timeout=request_timeout,
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )
        self._client = client
        # one worker, so a call left running after a timeout delays
        # the next one instead of overlapping it
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="cost-explorer"
        )

    @property
    def name(self) -> "str":
        return "aws"

    async def close(self) -> "None":
        """
        releases the worker thread without waiting for a call that
        is still in flight; botocore's own timeouts end it.
        """
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()

    def build_request(
        self,
        period: "ReportingPeriod",
        token: "str | None" = None,
    ) -> "dict[str, Any]":
        request: "dict[str, Any]" = {
            "TimePeriod": period.as_date_interval(),
            "Granularity": "DAILY",
            "Metrics": [self._metric],
            "GroupBy": [{"Type": "DIMENSION", "Key": self._group_by}],
        }
        if token:
            request["NextPageToken"] = token
        return request

    async def fetch_page(
        self,
        period: "ReportingPeriod",
        token: "str | None" = None,
    ) -> "CostPage":
        request = self.build_request(period, token)
        logger.debug(
            "aws_get_cost_and_usage",
            time_period=request["TimePeriod"],
            continued=bool(token),
        )

        # boto3 is blocking, keep it off the event loop
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(self._executor, self._call, request)
        return self.parse_page(response)

    def _call(self, request: "dict[str, Any]") -> "dict[str, Any]":
        try:
            return self._client.get_cost_and_usage(**request)
        except ClientError as exc:
            raise classify_client_error(exc) from exc
        except _NETWORK_ERRORS as exc:
            raise TransientError(f"Cost Explorer unreachable: {exc}") from exc
        except BotoCoreError as exc:
            # missing credentials, bad region and the like
            raise PermanentError(f"Cost Explorer client error: {exc}") from exc

    def parse_page(self, response: "dict[str, Any]") -> "CostPage":
        records: "list[CostRecord]" = []
        try:
            for result in response.get("ResultsByTime", []):
                day = date.fromisoformat(result["TimePeriod"]["Start"])
                for group in result.get("Groups", []):
                    metric = group["Metrics"][self._metric]
                    records.append(
                        CostRecord(
                            dimension=group["Keys"][0],
                            amount=Decimal(metric["Amount"]),
                            currency=metric["Unit"],
                            date=day,
                        )
                    )
        except (KeyError, IndexError, TypeError, ValueError, InvalidOperation) as exc:
            raise PermanentError(
                f"malformed GetCostAndUsage response: {exc!r}"
            ) from exc

        return CostPage(
            records=tuple(records),
            next_token=response.get("NextPageToken") or None,
        )
