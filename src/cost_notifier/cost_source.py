from typing import AsyncIterator

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from cost_notifier.deadline import Deadline
from cost_notifier.errors import PermanentError, TransientError
from cost_notifier.models import CostPage, CostRecord, ReportingPeriod
from cost_notifier.provider.base import CostProvider

logger = structlog.get_logger()


def _log_retry(retry_state: "RetryCallState") -> "None":
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "cost_page_retry",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


class CostSourceClient:
    """
    CostSourceClient drives a CostProvider across all pages of a
    reporting period. Pages are requested one at a time in
    continuation-token order; each request is retried on transient
    failure with exponential backoff and never outlives the
    invocation's deadline. A runaway API is cut off after max_pages.
    """

    def __init__(
        self,
        provider: "CostProvider",
        max_pages: "int" = 20,
        max_attempts: "int" = 4,
        request_timeout: "float" = 10.0,
        initial_wait: "float" = 1.0,
        max_wait: "float" = 8.0,
    ) -> "None":
        self._provider = provider
        self._max_pages = max_pages
        self._max_attempts = max_attempts
        self._request_timeout = request_timeout
        self._initial_wait = initial_wait
        self._max_wait = max_wait

    async def close(self) -> "None":
        await self._provider.close()

    async def pages(
        self,
        period: "ReportingPeriod",
        deadline: "Deadline",
    ) -> "AsyncIterator[CostPage]":
        """
        yields pages lazily until the continuation token runs out.
        """
        token: "str | None" = None
        fetched = 0

        while True:
            if fetched >= self._max_pages:
                raise PermanentError(
                    f"cost source returned more than {self._max_pages} pages"
                )

            page = await self._fetch_page(period, token, deadline)
            fetched += 1
            logger.debug(
                "cost_page_fetched",
                provider=self._provider.name,
                page=fetched,
                record_count=len(page.records),
            )
            yield page

            if not page.next_token:
                break
            token = page.next_token

    async def fetch(
        self,
        period: "ReportingPeriod",
        deadline: "Deadline",
    ) -> "list[CostRecord]":
        """
        collects the records of every page for period.
        """
        records: "list[CostRecord]" = []
        page_count = 0
        async for page in self.pages(period, deadline):
            records.extend(page.records)
            page_count += 1

        logger.info(
            "cost_fetch_done",
            provider=self._provider.name,
            pages=page_count,
            record_count=len(records),
        )
        return records

    async def _fetch_page(
        self,
        period: "ReportingPeriod",
        token: "str | None",
        deadline: "Deadline",
    ) -> "CostPage":
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(
                multiplier=self._initial_wait,
                max=self._max_wait,
                jitter=self._initial_wait,
            ),
            retry=retry_if_exception_type(TransientError),
            sleep=deadline.sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await deadline.run(
                    lambda: self._provider.fetch_page(period, token),
                    timeout=self._request_timeout,
                    operation="cost_page_fetch",
                )

        # unreachable: reraise=True surfaces the last error
        raise AssertionError("retry loop ended without a result")
