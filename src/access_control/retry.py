"""Retry utilities for transient DynamoDB failures.

For On-Call Engineers:
    - Retries are for TRANSIENT failures only (throttling, 5xx)
    - ConditionalCheckFailedException is NOT retried: for the rate limit
      counter it means the quota is exhausted
    - Each retry is logged with attempt number
    - Max 3 attempts with exponential backoff (0.1s, 0.2s, 0.4s)

Backoff is kept short because every retried call sits inside the
collaborator request timeout.
"""

import logging

from botocore.exceptions import ClientError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# DynamoDB error codes that are retryable (transient)
DYNAMODB_RETRYABLE_ERRORS = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "InternalServerError",
    "ServiceUnavailable",
    "RequestLimitExceeded",
}


def is_dynamodb_retryable(exception: BaseException) -> bool:
    """Check if DynamoDB exception is retryable."""
    if not isinstance(exception, ClientError):
        return False
    error_code = exception.response.get("Error", {}).get("Code", "")
    return error_code in DYNAMODB_RETRYABLE_ERRORS


# Pre-configured retry decorator for DynamoDB operations
dynamodb_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception(is_dynamodb_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
