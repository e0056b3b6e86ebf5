"""Pytest fixtures for tenant-cutover tests."""

import asyncio
import logging
from collections.abc import Awaitable
from unittest.mock import patch

import pytest
from moto import mock_aws

from tenant_cutover.config import StoreConfig
from tenant_cutover.repository import Repository


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    # Unset AWS_ENDPOINT_URL to ensure moto intercepts requests
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Mock DynamoDB for tests."""
    with mock_aws():
        yield


def _patch_aiobotocore_response():
    """
    Patch aiobotocore to work with moto's sync responses.

    Moto returns botocore.awsrequest.AWSResponse which has sync content,
    but aiobotocore expects async content. This patch wraps the response
    handling to convert sync content to async.

    See: https://github.com/aio-libs/aiobotocore/discussions/1300
    """
    from aiobotocore import endpoint

    original_convert = endpoint.convert_to_response_dict

    async def patched_convert(http_response, operation_model):
        # If content is not awaitable (moto's sync response), wrap it
        if hasattr(http_response, "_content") and not isinstance(http_response._content, Awaitable):
            fut: asyncio.Future[bytes] = asyncio.Future()
            fut.set_result(http_response.content)
            http_response._content = fut
        return await original_convert(http_response, operation_model)

    return patch.object(endpoint, "convert_to_response_dict", patched_convert)


@pytest.fixture(autouse=True)
def reset_package_logging():
    """Drop handlers installed by CLI invocations so they don't outlive the test."""
    yield
    logger = logging.getLogger("tenant_cutover")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clear_phase_env(monkeypatch):
    """Keep the developer's shell from leaking cutover settings into tests."""
    for name in (
        "CUTOVER_TABLE_NAME",
        "CUTOVER_MODULE",
        "FF_TRAININGTRACK_DUAL_WRITE",
        "FF_TRAININGTRACK_READ_FROM_MODULES",
        "FF_TRAININGTRACK_LEGACY_WRITE_DISABLED",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
async def repository(mock_dynamodb):
    """DynamoDB-backed store on a moto table."""
    with _patch_aiobotocore_response():
        repository = Repository(StoreConfig(table_name="test-cutover", region="us-east-1"))
        await repository.create_table()
        yield repository
        await repository.delete_table()
        await repository.close()
