import asyncio
import time
from typing import Awaitable, Callable, TypeVar

from cost_notifier.errors import BudgetExhausted, TransientError

T = TypeVar("T")


class Deadline:
    """
    Deadline tracks the wall-clock execution budget of one
    invocation. Stages check it before starting a slow operation
    and clamp per-call timeouts to what is left, so an operation
    is never started when it would be cut off by the platform.
    """

    def __init__(
        self,
        budget_seconds: "float",
        clock: "Callable[[], float]" = time.monotonic,
    ) -> "None":
        self._clock = clock
        self._expires_at = clock() + budget_seconds

    def remaining(self) -> "float":
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> "bool":
        return self.remaining() <= 0.0

    def check(self, operation: "str") -> "None":
        """
        raises BudgetExhausted if no budget is left for operation.
        """
        if self.expired:
            raise BudgetExhausted(f"no execution budget left for {operation}")

    def clamp(self, timeout: "float") -> "float":
        return min(timeout, self.remaining())

    async def sleep(self, seconds: "float") -> "None":
        """
        backoff sleep that never outlives the deadline.
        """
        await asyncio.sleep(max(0.0, min(seconds, self.remaining())))

    async def run(
        self,
        call: "Callable[[], Awaitable[T]]",
        timeout: "float",
        operation: "str",
    ) -> "T":
        """
        awaits call() under timeout, clamped to the
        remaining budget. A per-call timeout is transient; running
        out of budget is not.
        """
        self.check(operation)
        try:
            return await asyncio.wait_for(call(), timeout=self.clamp(timeout))
        except TimeoutError as exc:
            if self.expired:
                raise BudgetExhausted(
                    f"execution budget exhausted during {operation}"
                ) from exc
            raise TransientError(f"{operation} timed out after {timeout}s") from exc
