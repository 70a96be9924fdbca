"""
Tests for AwsContext.
"""

import pytest

from conftest import client_error


class TestAwsContext:
    """Test client caching and the async call helpers."""

    def test_clients_are_cached(self, aws_context) -> None:
        assert aws_context.client("s3") is aws_context.client("s3")
        aws_context._session.client.assert_called_once_with("s3")

    @pytest.mark.asyncio
    async def test_call(self, aws_context) -> None:
        client = aws_context.client("cloudformation")
        client.describe_stacks.return_value = {"Stacks": []}

        response = await aws_context.call("cloudformation", "describe_stacks", StackName="s")

        assert response == {"Stacks": []}
        client.describe_stacks.assert_called_once_with(StackName="s")

    @pytest.mark.asyncio
    async def test_paginate_yields_every_page(self, aws_context) -> None:
        client = aws_context.client("s3")
        paginator = client.get_paginator.return_value
        paginator.paginate.return_value = [{"Contents": [{"Key": "a"}]}, {"Contents": [{"Key": "b"}]}]

        pages = [page async for page in aws_context.paginate("s3", "list_objects_v2", Bucket="b")]

        assert [page["Contents"][0]["Key"] for page in pages] == ["a", "b"]
        client.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="b")

    @pytest.mark.asyncio
    async def test_paginate_from_starting_token(self, aws_context) -> None:
        paginator = aws_context.client("lambda").get_paginator.return_value
        paginator.paginate.return_value = []

        pages = [page async for page in aws_context.paginate("lambda", "list_functions", starting_token="tok")]

        assert pages == []
        paginator.paginate.assert_called_once_with(PaginationConfig={"StartingToken": "tok"})

    @pytest.mark.asyncio
    async def test_paginate_propagates_errors(self, aws_context) -> None:
        def pages():
            yield {"logGroups": []}
            raise client_error("Rate exceeded", code="Throttling", operation="DescribeLogGroups")

        aws_context.client("logs").get_paginator.return_value.paginate.return_value = pages()

        seen = []
        with pytest.raises(Exception, match="Rate exceeded"):
            async for page in aws_context.paginate("logs", "describe_log_groups"):
                seen.append(page)

        assert seen == [{"logGroups": []}]
