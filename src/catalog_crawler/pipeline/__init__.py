"""Batching and retry primitives for the extract and publish stages."""

from catalog_crawler.pipeline.batch import BatchRunner, chunked
from catalog_crawler.pipeline.retry import (
    ErrorKind,
    RetryDecision,
    RetryPolicy,
    classify_error,
    classify_exception,
)

__all__ = [
    "BatchRunner",
    "chunked",
    "ErrorKind",
    "RetryDecision",
    "RetryPolicy",
    "classify_error",
    "classify_exception",
]
