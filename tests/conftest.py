"""
Shared fixtures for cf-utils tests.
"""

from typing import Any, Dict
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from cf_utils.aws import AwsContext
from cf_utils.config import ProjectConfig


def client_error(message: str, code: str = "ValidationError", operation: str = "DescribeStacks") -> ClientError:
    """Build a botocore ClientError like the ones AWS returns."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_context(config: ProjectConfig = None) -> AwsContext:
    """Create a context whose clients are Mocks, one per service."""
    with patch("cf_utils.aws.boto3.Session"):
        context = AwsContext(region="us-east-1", config=config)

    clients: Dict[str, Any] = {}
    context._session.client.side_effect = lambda service: clients.setdefault(service, Mock(name=service))
    return context


@pytest.fixture
def aws_context() -> AwsContext:
    return make_context()


@pytest.fixture
def aws_credentials(monkeypatch) -> None:
    """Fake credentials so moto never touches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
