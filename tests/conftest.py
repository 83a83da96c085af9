"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check mock_aws usage)
    2. Verify AWS env vars are set in fixtures

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - All DynamoDB fixtures use moto mocks (no real AWS calls)
    - Component singletons are reset before every test
"""

import os

import boto3
import pytest
from moto import mock_aws

from src.access_control.dependencies import reset_singletons

# Set default test environment variables at module load time so modules
# that read env vars at import time see them.
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

# Unit tests run against in-process stores unless a test opts in
for _name in ("RATE_LIMIT_TABLE", "SECURITY_EVENTS_TABLE", "USERS_TABLE"):
    os.environ.pop(_name, None)


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_components():
    """Drop cached limiter/monitor/resolver singletons around each test."""
    reset_singletons()
    yield
    reset_singletons()


@pytest.fixture
def aws_credentials():
    """
    Set up mock AWS credentials for moto.

    Use this fixture when testing AWS SDK calls.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield


def _create_pk_sk_table(name: str):
    client = boto3.client("dynamodb", region_name="us-east-1")
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    return boto3.resource("dynamodb", region_name="us-east-1").Table(name)


@pytest.fixture
def rate_limit_table(aws_credentials):
    """Mocked rate limit counter table (PK/SK schema)."""
    with mock_aws():
        yield _create_pk_sk_table("test-rate-limits")


@pytest.fixture
def security_events_table(aws_credentials):
    """Mocked security events table (PK/SK schema)."""
    with mock_aws():
        yield _create_pk_sk_table("test-security-events")


@pytest.fixture
def users_table(aws_credentials):
    """Mocked users table holding ROLE items."""
    with mock_aws():
        yield _create_pk_sk_table("test-users")
