import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from cost_notifier.deadline import Deadline
from cost_notifier.errors import CostNotifierError, PermanentError, TransientError
from cost_notifier.models import (
    Delivered,
    DeliveredAfterRetry,
    DeliveryOutcome,
    Failed,
    NotificationMessage,
)

logger = structlog.get_logger()


def _log_retry(retry_state: "RetryCallState") -> "None":
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "delivery_attempt_failed",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


class SlackNotifier:
    """
    SlackNotifier posts a NotificationMessage to a Slack incoming
    webhook. The webhook URL is the credential, so it never
    appears in logs or error details.

    Rate limiting, 5xx and network errors are retried with bounded
    exponential backoff and jitter; any other 4xx fails at once.
    """

    def __init__(
        self,
        webhook_url: "str",
        max_attempts: "int" = 4,
        request_timeout: "float" = 10.0,
        initial_wait: "float" = 1.0,
        max_wait: "float" = 8.0,
    ) -> "None":
        self._webhook_url = webhook_url
        self._max_attempts = max_attempts
        self._request_timeout = request_timeout
        self._initial_wait = initial_wait
        self._max_wait = max_wait
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            timeout=request_timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def deliver(
        self,
        message: "NotificationMessage",
        deadline: "Deadline",
    ) -> "DeliveryOutcome":
        body = message.to_json()
        attempts = 0
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

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await self._post(body, deadline)
        except CostNotifierError as exc:
            logger.error(
                "delivery_failed",
                attempts=attempts,
                reason=exc.reason.value,
                error=str(exc),
            )
            return Failed(reason=exc.reason, detail=str(exc))

        logger.info("delivery_succeeded", attempts=attempts)
        if attempts == 1:
            return Delivered()
        return DeliveredAfterRetry(retries=attempts - 1)

    async def _post(self, body: "bytes", deadline: "Deadline") -> "None":
        try:
            resp = await deadline.run(
                lambda: self._client.post(self._webhook_url, content=body),
                timeout=self._request_timeout,
                operation="webhook_post",
            )
        except httpx.TransportError as exc:
            # only the exception type, its message may carry the URL
            raise TransientError(
                f"webhook unreachable: {type(exc).__name__}"
            ) from exc

        if resp.is_success:
            return

        status = resp.status_code
        if status == 429 or status >= 500:
            raise TransientError(f"webhook returned HTTP {status}")
        raise PermanentError(f"webhook returned HTTP {status}")
