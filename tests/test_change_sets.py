"""
Tests for change set management.
"""

from unittest.mock import patch

import pytest

from cf_utils.cloudformation.change_sets import (
    CHANGE_SET_PREFIX,
    ChangeSetManager,
    classify_change_set,
    classify_change_set_deletion,
    generate_change_set_name,
    preview_change_set_name,
)
from cf_utils.cloudformation.poller import Outcome
from cf_utils.errors import ChangeSetFailedError

from conftest import client_error


class TestChangeSetNames:
    """Test change set naming conventions."""

    def test_generated_name_uses_epoch_seconds(self) -> None:
        with patch("cf_utils.cloudformation.change_sets.time.time", return_value=1700000000.75):
            assert generate_change_set_name() == "cf-utils-cloudformation-upsert-stack-1700000000"

    def test_preview_name(self) -> None:
        assert preview_change_set_name("my-stack") == "cf-utils-my-stack-preview"


class TestClassifyChangeSet:
    """Test change set status classification."""

    @pytest.mark.parametrize("status", ["CREATE_COMPLETE", "UPDATE_COMPLETE", "DELETE_COMPLETE"])
    def test_complete_statuses(self, status) -> None:
        change_set = {"Status": status}
        result = classify_change_set(change_set)
        assert result.outcome is Outcome.SUCCESS
        assert result.value is change_set

    @pytest.mark.parametrize("reason", [
        "No updates are to be performed.",
        "The submitted information didn't contain changes. Submit different information to create a change set.",
    ])
    def test_failed_without_changes_is_empty_success(self, reason) -> None:
        result = classify_change_set({"Status": "FAILED", "StatusReason": reason})
        assert result.outcome is Outcome.SUCCESS
        assert result.value is None

    def test_failed_for_other_reason(self) -> None:
        change_set = {"Status": "FAILED", "StatusReason": "Template format error", "ChangeSetName": "cs"}
        result = classify_change_set(change_set)
        assert result.outcome is Outcome.FAILURE
        assert isinstance(result.error, ChangeSetFailedError)
        assert result.error.change_set is change_set

    def test_deploy_phrasing_is_a_failure(self) -> None:
        """Test only change set phrasings count as no changes."""
        result = classify_change_set({"Status": "FAILED", "StatusReason": "No changes to deploy"})
        assert result.outcome is Outcome.FAILURE

    @pytest.mark.parametrize("status", ["CREATE_PENDING", "CREATE_IN_PROGRESS"])
    def test_in_progress(self, status) -> None:
        assert classify_change_set({"Status": status}).outcome is Outcome.CONTINUE

    def test_deletion(self) -> None:
        assert classify_change_set_deletion({"Status": "DELETE_IN_PROGRESS"}).outcome is Outcome.CONTINUE
        assert classify_change_set_deletion({"Status": "DELETE_COMPLETE"}).outcome is Outcome.SUCCESS
        assert classify_change_set_deletion({"Status": "DELETE_FAILED"}).outcome is Outcome.FAILURE


class TestChangeSetManager:
    """Test ChangeSetManager against a mocked CloudFormation client."""

    @pytest.fixture
    def manager(self, aws_context) -> ChangeSetManager:
        return ChangeSetManager(aws_context, poll_interval=0)

    @pytest.mark.asyncio
    async def test_create_change_set_polls_until_ready(self, manager) -> None:
        cf = manager.context.client("cloudformation")
        cf.describe_change_set.side_effect = [
            {"Status": "CREATE_PENDING"},
            {"Status": "CREATE_IN_PROGRESS"},
            {"Status": "CREATE_COMPLETE", "ChangeSetName": "cs"},
        ]

        params = {"StackName": "s", "ChangeSetName": "cs", "TemplateBody": "{}"}
        result = await manager.create_change_set(params)

        assert result["Status"] == "CREATE_COMPLETE"
        cf.create_change_set.assert_called_once_with(**params)
        assert cf.describe_change_set.call_count == 3
        cf.describe_change_set.assert_called_with(StackName="s", ChangeSetName="cs")

    @pytest.mark.asyncio
    async def test_create_change_set_without_changes(self, manager) -> None:
        cf = manager.context.client("cloudformation")
        cf.describe_change_set.return_value = {
            "Status": "FAILED",
            "StatusReason": "No updates are to be performed.",
        }

        result = await manager.create_change_set({"StackName": "s", "ChangeSetName": "cs"})

        assert result is None

    @pytest.mark.asyncio
    async def test_create_change_set_failure(self, manager) -> None:
        cf = manager.context.client("cloudformation")
        cf.describe_change_set.return_value = {"Status": "FAILED", "StatusReason": "Bad template"}

        with pytest.raises(ChangeSetFailedError):
            await manager.create_change_set({"StackName": "s", "ChangeSetName": "cs"})

    @pytest.mark.asyncio
    async def test_delete_change_set_waits_until_gone(self, manager) -> None:
        cf = manager.context.client("cloudformation")
        cf.describe_change_set.side_effect = [
            {"Status": "DELETE_IN_PROGRESS"},
            client_error("ChangeSet [cs] does not exist", code="ChangeSetNotFound", operation="DescribeChangeSet"),
        ]

        await manager.delete_change_set("s", "cs")

        cf.delete_change_set.assert_called_once_with(StackName="s", ChangeSetName="cs")
        assert cf.describe_change_set.call_count == 2

    @pytest.mark.asyncio
    async def test_execute_change_set(self, manager) -> None:
        cf = manager.context.client("cloudformation")

        await manager.execute_change_set("s", f"{CHANGE_SET_PREFIX}1")

        cf.execute_change_set.assert_called_once_with(StackName="s", ChangeSetName=f"{CHANGE_SET_PREFIX}1")
        cf.describe_change_set.assert_not_called()
