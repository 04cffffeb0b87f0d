from cost_notifier.models import FailureReason


class CostNotifierError(Exception):
    """
    base of the error taxonomy. Each subclass carries the
    FailureReason the pipeline reports when it surfaces.
    """

    reason: "FailureReason" = FailureReason.PERMANENT


class ConfigurationError(CostNotifierError):
    """
    missing or invalid configuration, detected before any API call.
    """

    reason = FailureReason.CONFIGURATION


class TransientError(CostNotifierError):
    """
    rate limit, network error or 5xx. Retried with backoff; once
    retries run out it surfaces as retries_exhausted.
    """

    reason = FailureReason.RETRIES_EXHAUSTED


class PermanentError(CostNotifierError):
    """
    bad credentials, malformed request or response. Never retried.
    """

    reason = FailureReason.PERMANENT


class DataIntegrityError(PermanentError):
    reason = FailureReason.DATA_INTEGRITY


class BudgetExhausted(CostNotifierError):
    reason = FailureReason.TIMEOUT
