"""
DynamoDB Helper Module
======================

Provides DynamoDB resources with retry configuration for the counter store,
role lookups and the security event sink.

For On-Call Engineers:
    - Botocore retries transient failures (3 attempts, adaptive mode).
    - Connect/read timeouts are short so that a DynamoDB outage surfaces
      quickly as StoreUnavailable and the documented default applies.

For Developers:
    - All table operations use parameterized expressions.
    - Never construct Key expressions with string concatenation of values.
"""

import logging
import os
from decimal import Decimal
from typing import Any

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

# Retry configuration for transient failures
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",  # Automatically adjusts to throttling
    },
    connect_timeout=2,
    read_timeout=3,
)


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    """
    Get a DynamoDB resource with retry configuration.

    Args:
        region_name: AWS region (defaults to AWS_DEFAULT_REGION / AWS_REGION)

    Returns:
        boto3 DynamoDB resource

    Raises:
        ValueError: If no region is configured
    """
    region = (
        region_name
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ValueError(
            "AWS_DEFAULT_REGION or AWS_REGION environment variable must be set"
        )

    return boto3.resource(
        "dynamodb",
        region_name=region,
        config=RETRY_CONFIG,
    )


def get_table(table_name: str, region_name: str | None = None) -> Any:
    """
    Get a DynamoDB table resource.

    Args:
        table_name: Table name
        region_name: AWS region

    Returns:
        boto3 DynamoDB Table resource
    """
    if not table_name:
        raise ValueError("Table name required")

    resource = get_dynamodb_resource(region_name)
    return resource.Table(table_name)


def to_int(value: Any, default: int = 0) -> int:
    """Convert a DynamoDB numeric attribute (Decimal) to int."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        # Counters are whole numbers; int() truncates any stray fraction
        return int(value.to_integral_value())
    return int(value)
