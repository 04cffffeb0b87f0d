from typing import Protocol

from cost_notifier.models import CostPage, ReportingPeriod


class CostProvider(Protocol):
    """
    CostProvider stands as a common protocol that all cost
    sources must satisfy.

    A provider fetches exactly one page of cost records per call
    and classifies its own failures as TransientError or
    PermanentError. Retries, pagination and the execution budget
    are left to CostSourceClient.
    """

    @property
    def name(self) -> "str": ...

    async def fetch_page(
        self,
        period: "ReportingPeriod",
        token: "str | None" = None,
    ) -> "CostPage": ...

    async def close(self) -> "None": ...
