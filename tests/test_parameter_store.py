"""
Tests for the SSM parameter store wrapper against moto.
"""

import pytest
from moto import mock_aws

from cf_utils.aws import AwsContext
from cf_utils.errors import ParameterNotFoundError
from cf_utils.services.parameter_store import ParameterStore


@pytest.fixture
def store(aws_credentials):
    with mock_aws():
        yield ParameterStore(AwsContext(region="us-east-1"))


class TestParameterStore:
    """Test ParameterStore CRUD."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, store) -> None:
        name = await store.put_parameter(Name="/acs/dev/db", Value="s3cret", Type="SecureString")

        assert name == "/acs/dev/db"
        parameter = await store.get_parameter(name)
        assert parameter["Value"] == "s3cret"

    @pytest.mark.asyncio
    async def test_overwrite(self, store) -> None:
        await store.put_parameter(Name="p", Value="1", Type="String")
        await store.put_parameter(Name="p", Value="2", Type="String", Overwrite=True)

        assert (await store.get_parameter("p"))["Value"] == "2"

    @pytest.mark.asyncio
    async def test_missing(self, store) -> None:
        with pytest.raises(ParameterNotFoundError, match="missing"):
            await store.get_parameter("missing")

    @pytest.mark.asyncio
    async def test_check_and_delete(self, store) -> None:
        await store.put_parameter(Name="p", Value="1", Type="String")
        assert await store.check_parameter("p")

        assert await store.delete_parameter("p") == "p"
        assert not await store.check_parameter("p")
