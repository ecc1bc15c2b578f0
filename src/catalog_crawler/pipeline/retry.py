"""Error classification and retry/backoff policy shared by extraction and publishing."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from catalog_crawler.config import RetryConfig
from catalog_crawler.errors import (
    CatalogAPIError,
    FatalConflictError,
    ProcessingConflictError,
    ProductValidationError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = (
    "ratelimitexceeded",
    "rate_limit_exceeded",
    "rate limit",
    "too many requests",
    "resource_exhausted",
    "insufficient_quota",
)
PROCESSING_CONFLICT_MARKERS = ("already under processing",)
PROCESSING_CONFLICT_CODE = "woocommerce_rest_product_not_created"


class ErrorKind(str, Enum):
    """How an error should be treated by the retry policy."""

    RATE_LIMITED = "rate_limited"
    PROCESSING_CONFLICT = "processing_conflict"
    TRANSIENT = "transient"
    FATAL = "fatal"


def _contains_marker(text: Any, markers: tuple[str, ...]) -> bool:
    return isinstance(text, str) and any(marker in text.lower() for marker in markers)


def _payload_is_rate_limited(payload: Any) -> bool:
    if not isinstance(payload, Mapping):
        return False
    if _contains_marker(payload.get("code"), RATE_LIMIT_MARKERS):
        return True
    error = payload.get("error")
    if isinstance(error, Mapping):
        if error.get("code") == 429 or _contains_marker(error.get("status"), RATE_LIMIT_MARKERS):
            return True
        if _contains_marker(error.get("message"), RATE_LIMIT_MARKERS):
            return True
        if _contains_marker(error.get("code"), RATE_LIMIT_MARKERS):
            return True
    elif _contains_marker(error, RATE_LIMIT_MARKERS):
        return True
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], Mapping):
        return _contains_marker(errors[0].get("reason"), RATE_LIMIT_MARKERS)
    return False


def _payload_is_processing_conflict(payload: Any) -> bool:
    if not isinstance(payload, Mapping):
        return False
    return payload.get("code") == PROCESSING_CONFLICT_CODE and _contains_marker(
        payload.get("message"), PROCESSING_CONFLICT_MARKERS
    )


def classify_error(message: str, payload: Any = None) -> ErrorKind:
    """Classify an error from its message and optional structured payload.

    ``payload`` is the decoded error body returned by the remote API, if any.
    Rate-limit signatures take precedence over everything else.
    """
    if _contains_marker(message, RATE_LIMIT_MARKERS) or _payload_is_rate_limited(payload):
        return ErrorKind.RATE_LIMITED
    if _contains_marker(message, PROCESSING_CONFLICT_MARKERS) or _payload_is_processing_conflict(payload):
        return ErrorKind.PROCESSING_CONFLICT
    return ErrorKind.TRANSIENT


def error_details(error: BaseException) -> tuple[str, Any, int | None]:
    """Pull message, structured payload and HTTP status out of an exception."""
    message = str(error) or type(error).__name__
    payload = getattr(error, "payload", None)
    if payload is None:
        payload = getattr(error, "body", None)
    response = getattr(error, "response", None)
    status = getattr(error, "status_code", None)
    if status is None and response is not None:
        status = getattr(response, "status_code", None)
    if payload is None and response is not None:
        try:
            payload = response.json()
        except ValueError:
            payload = None
    return message, payload, status if isinstance(status, int) else None


def classify_exception(error: BaseException) -> ErrorKind:
    """Classify an exception raised by an extraction or publish call."""
    if isinstance(error, (ProductValidationError, FatalConflictError)):
        return ErrorKind.FATAL
    if isinstance(error, RateLimitedError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, ProcessingConflictError):
        return ErrorKind.PROCESSING_CONFLICT
    message, payload, status = error_details(error)
    if status == 429:
        return ErrorKind.RATE_LIMITED
    kind = classify_error(message, payload)
    if kind is ErrorKind.TRANSIENT and isinstance(error, CatalogAPIError) and status is not None:
        # 4xx other than 408/409/429 will not get better by retrying.
        if 400 <= status < 500 and status not in (408, 409):
            return ErrorKind.FATAL
    return kind


@dataclass(frozen=True)
class RetryDecision:
    """Whether to retry a failed call, and how long to wait first."""

    retry: bool
    delay_ms: int = 0
    kind: ErrorKind = ErrorKind.TRANSIENT


class RetryPolicy:
    """Decide whether and when to retry a failed API call.

    Rate limits wait a fixed long delay, "already processing" conflicts a fixed
    shorter one, everything else backs off exponentially from ``base_delay_ms``.
    ``attempt`` is the zero-based index of the attempt that just failed; once
    it reaches ``max_attempts`` no further retry is made.
    """

    def __init__(
        self,
        base_delay_ms: int = 5000,
        rate_limit_delay_ms: int = 90000,
        conflict_delay_ms: int = 30000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_delay_ms = base_delay_ms
        self.rate_limit_delay_ms = rate_limit_delay_ms
        self.conflict_delay_ms = conflict_delay_ms
        self._sleep = sleep

    @classmethod
    def from_config(
        cls, config: RetryConfig, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> "RetryPolicy":
        return cls(
            base_delay_ms=config.base_delay_ms,
            rate_limit_delay_ms=config.rate_limit_delay_ms,
            conflict_delay_ms=config.conflict_delay_ms,
            sleep=sleep,
        )

    def should_retry(self, error: BaseException, attempt: int, max_attempts: int) -> RetryDecision:
        kind = classify_exception(error)
        if kind is ErrorKind.FATAL or attempt >= max_attempts:
            return RetryDecision(retry=False, kind=kind)
        if kind is ErrorKind.RATE_LIMITED:
            delay_ms = self.rate_limit_delay_ms
        elif kind is ErrorKind.PROCESSING_CONFLICT:
            delay_ms = self.conflict_delay_ms
        else:
            delay_ms = self.base_delay_ms * (2 ** attempt)
        return RetryDecision(retry=True, delay_ms=delay_ms, kind=kind)

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        max_attempts: int,
        label: str = "",
    ) -> T:
        """Await ``fn()`` until it succeeds or the policy gives up.

        ``max_attempts`` counts every call, the first one included. The last
        error is re-raised when no retry is allowed.
        """
        attempt = 0
        while True:
            try:
                return await fn()
            except Exception as error:
                decision = self.should_retry(error, attempt, max_attempts)
                if decision.retry and attempt + 1 >= max_attempts:
                    decision = RetryDecision(retry=False, kind=decision.kind)
                if not decision.retry:
                    if attempt and decision.kind is not ErrorKind.FATAL:
                        logger.error("Giving up on %s after %d attempts", label or "call", attempt + 1)
                    raise
                logger.warning(
                    "%s failed (%s: %s), attempt %d/%d, retrying in %.0fs",
                    label or "Call", decision.kind.value, error,
                    attempt + 1, max_attempts, decision.delay_ms / 1000,
                )
                await self._sleep(decision.delay_ms / 1000)
                attempt += 1

