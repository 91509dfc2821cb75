"""Error taxonomy for the response acquisition layer.

Store errors (``StoreUnavailableError`` and subclasses) are recovered locally
by the cache and the ledger. Provider errors are split into transient and
permanent families; the orchestrator decides retry and fallback from that split.
"""


class QuizCacheError(Exception):
    """Base exception for all quizcache errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class StoreUnavailableError(QuizCacheError):
    """Raised when a backing store (fast or durable) cannot be reached."""

    pass


class CacheUnavailableError(StoreUnavailableError):
    """Raised when a cache tier cannot be read or written."""

    pass


class QuotaStoreUnavailableError(StoreUnavailableError):
    """Raised when quota counters or user records cannot be read or written."""

    pass


class UserNotFoundError(QuizCacheError):
    """Raised when a user has no record in the durable store."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class ProviderError(QuizCacheError):
    """Base exception for generation provider failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """Provider failure that may succeed if attempted again.

    This typically occurs when:
    - The provider is rate limiting (429)
    - The provider is down or overloaded (5xx, connection errors)
    - The call exceeded its timeout
    """

    pass


class ProviderRateLimitedError(ProviderTransientError):
    pass


class ProviderUnavailableError(ProviderTransientError):
    pass


class ProviderPermanentError(ProviderError):
    """Provider failure that will not succeed on retry.

    This typically occurs when:
    - The API key is missing or invalid
    - The request is malformed or exceeds model limits
    """

    pass


class ProviderInvalidRequestError(ProviderPermanentError):
    pass


class ProviderAuthError(ProviderPermanentError):
    pass


class ValidationFailureError(QuizCacheError):
    """Raised when generated output cannot be parsed or validated."""

    def __init__(self, message: str, raw_content: str | None = None) -> None:
        super().__init__(message)
        self.raw_content = raw_content


class QuotaExceededError(QuizCacheError):
    """Raised when a user would exceed their daily token limit."""

    def __init__(self, current_usage: int, daily_limit: int, required: int) -> None:
        super().__init__(
            f"Daily token limit exceeded. Used: {current_usage}, "
            f"Limit: {daily_limit}, Required: {required}"
        )
        self.current_usage = current_usage
        self.daily_limit = daily_limit
        self.required = required


class BatcherClosedError(QuizCacheError):
    """Raised for requests submitted to, or still queued in, a closed batcher."""

    pass
