# File: tests/test_retry.py
import httpx
import pytest

from catalog_crawler.errors import (
    CatalogAPIError,
    FatalConflictError,
    ProcessingConflictError,
    ProductValidationError,
    TransientAPIError,
)
from catalog_crawler.pipeline.retry import ErrorKind, RetryPolicy, classify_error, classify_exception


@pytest.fixture()
def policy(sleeper) -> RetryPolicy:
    return RetryPolicy(sleep=sleeper)


def test_rate_limit_retries_with_long_fixed_delay(policy):
    error = Exception("429 rateLimitExceeded: quota exhausted")
    decision = policy.should_retry(error, attempt=0, max_attempts=3)
    assert decision.retry is True
    assert decision.delay_ms == 90000

    assert policy.should_retry(error, attempt=2, max_attempts=3).delay_ms == 90000
    assert policy.should_retry(error, attempt=3, max_attempts=3).retry is False


def test_other_errors_back_off_exponentially(policy):
    error = TransientAPIError("connection reset")
    delays = [policy.should_retry(error, attempt=i, max_attempts=3).delay_ms for i in range(3)]
    assert delays == [5000, 10000, 20000]
    assert policy.should_retry(error, attempt=3, max_attempts=3).retry is False


def test_processing_conflict_uses_fixed_wait(policy):
    decision = policy.should_retry(ProcessingConflictError("busy"), attempt=1, max_attempts=5)
    assert decision.retry is True
    assert decision.delay_ms == 30000


@pytest.mark.parametrize(
    "error",
    [
        ProductValidationError("missing sku"),
        FatalConflictError("already published"),
        CatalogAPIError("bad request", status_code=400, payload={"code": "rest_invalid_param"}),
    ],
)
def test_fatal_errors_never_retry(policy, error):
    decision = policy.should_retry(error, attempt=0, max_attempts=3)
    assert decision.retry is False
    assert decision.kind is ErrorKind.FATAL


@pytest.mark.parametrize(
    "payload",
    [
        {"error": {"message": "Quota exceeded: rateLimitExceeded"}},
        {"errors": [{"reason": "rateLimitExceeded"}]},
        {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}},
        {"error": {"code": "rate_limit_exceeded", "message": "slow down"}},
    ],
)
def test_classify_rate_limit_from_payload(payload):
    assert classify_error("request failed", payload) is ErrorKind.RATE_LIMITED


def test_classify_processing_conflict_payload():
    payload = {
        "code": "woocommerce_rest_product_not_created",
        "message": "Product SKU-1 is already under processing",
    }
    assert classify_error("POST products failed", payload) is ErrorKind.PROCESSING_CONFLICT


def test_classify_plain_message_is_transient():
    assert classify_error("socket hang up") is ErrorKind.TRANSIENT


def test_classify_http_status_error_429():
    request = httpx.Request("POST", "https://api.example.com/v1/chat")
    response = httpx.Response(429, json={"error": {"message": "slow down"}}, request=request)
    error = httpx.HTTPStatusError("Too busy", request=request, response=response)
    assert classify_exception(error) is ErrorKind.RATE_LIMITED


def test_classify_catalog_server_error_is_transient():
    error = CatalogAPIError("POST products failed (502)", status_code=502, payload="Bad gateway")
    assert classify_exception(error) is ErrorKind.TRANSIENT


async def test_call_retries_until_success(policy, sleeper):
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise TransientAPIError("temporary")
        return "ok"

    assert await policy.call(flaky, max_attempts=3, label="flaky") == "ok"
    assert len(attempts) == 3
    assert sleeper.delays == [5.0, 10.0]


async def test_call_reraises_after_max_attempts(policy, sleeper):
    calls = []

    async def always_limited():
        calls.append(1)
        raise Exception("rateLimitExceeded")

    with pytest.raises(Exception, match="rateLimitExceeded"):
        await policy.call(always_limited, max_attempts=2)
    assert len(calls) == 2
    assert sleeper.delays == [90.0]


async def test_call_does_not_retry_fatal(policy, sleeper):
    async def invalid():
        raise ProductValidationError("missing regular_price")

    with pytest.raises(ProductValidationError):
        await policy.call(invalid, max_attempts=3)
    assert sleeper.delays == []


async def test_call_makes_at_most_max_attempts_calls(policy, sleeper):
    calls = []

    async def always_failing():
        calls.append(1)
        raise TransientAPIError("still down")

    with pytest.raises(TransientAPIError):
        await policy.call(always_failing, max_attempts=3)
    assert len(calls) == 3
    assert sleeper.delays == [5.0, 10.0]
