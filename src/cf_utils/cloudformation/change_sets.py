"""
CloudFormation change set operations.
"""

import logging
import time
from typing import Any, Dict, Optional

from ..aws import AwsContext
from ..errors import CHANGE_SET_NO_OP_PHRASES, ChangeSetFailedError, is_no_op
from .poller import Classification, poll_until_terminal

logger = logging.getLogger(__name__)

CHANGE_SET_PREFIX = "cf-utils-cloudformation-upsert-stack-"
COMPLETE_STATUSES = ("CREATE_COMPLETE", "UPDATE_COMPLETE", "DELETE_COMPLETE")


def generate_change_set_name() -> str:
    """Generate a change set name unique to this invocation."""
    return f"{CHANGE_SET_PREFIX}{int(time.time())}"


def preview_change_set_name(stack_name: str) -> str:
    """Name of the change set used to review updates to a stack."""
    return f"cf-utils-{stack_name}-preview"


def classify_change_set(change_set: Dict[str, Any]) -> Classification:
    """
    Classify a DescribeChangeSet response.

    A FAILED change set whose reason says there is nothing to change is a
    successful, empty result (None).
    """
    status = change_set.get("Status")
    if status in COMPLETE_STATUSES:
        if status == "CREATE_COMPLETE":
            logger.info("Change set created")
        return Classification.success(change_set)
    if status == "FAILED":
        if is_no_op(change_set.get("StatusReason"), CHANGE_SET_NO_OP_PHRASES):
            logger.info("No updates are to be performed")
            return Classification.success(None)
        logger.warning(f"Change set failed: {change_set}")
        return Classification.failure(ChangeSetFailedError(change_set))
    return Classification.waiting(f"Waiting for change set to be created - {status}")


def classify_change_set_deletion(change_set: Dict[str, Any]) -> Classification:
    """Classify a change set that has been asked to delete itself."""
    status = change_set.get("Status", "")
    if status == "DELETE_FAILED":
        logger.warning(f"Change set deletion failed: {change_set}")
        return Classification.failure(ChangeSetFailedError(change_set))
    if status.startswith("DELETE_") and status != "DELETE_COMPLETE":
        return Classification.waiting(f"Waiting for change set to be deleted - {status}")
    return Classification.success(None)


class ChangeSetManager:
    """Create, inspect, execute and delete change sets."""

    def __init__(self, context: AwsContext, poll_interval: Optional[float] = None):
        """
        Initialize change set manager.

        Args:
            context: AWS context used for all calls
            poll_interval: Seconds between status checks (config default if not provided)
        """
        self.context = context
        self.poll_interval = (
            poll_interval if poll_interval is not None else context.config.poll_interval
        )
        self.max_attempts = context.config.poll_max_attempts

    async def describe_change_set(self, stack_name: str, change_set_name: str) -> Dict[str, Any]:
        return await self.context.call(
            "cloudformation",
            "describe_change_set",
            StackName=stack_name,
            ChangeSetName=change_set_name,
        )

    async def poll_change_set(
        self, stack_name: str, change_set_name: str, deleting: bool = False
    ) -> Optional[Dict[str, Any]]:
        """
        Wait for a change set to reach a terminal status.

        Args:
            stack_name: Stack the change set belongs to
            change_set_name: Change set name
            deleting: Wait for a requested deletion; absence counts as done

        Returns:
            The change set description, or None if it contains no changes
            (or has been deleted)
        """
        return await poll_until_terminal(
            lambda: self.describe_change_set(stack_name, change_set_name),
            classify_change_set_deletion if deleting else classify_change_set,
            interval=self.poll_interval,
            not_found_is_success=deleting,
            max_attempts=self.max_attempts,
        )

    async def submit_change_set(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Request a change set without waiting for it to be computed."""
        logger.info(f"Creating change set {params['ChangeSetName']} for {params['StackName']}")
        return await self.context.call("cloudformation", "create_change_set", **params)

    async def create_change_set(self, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create a change set and wait until it is ready.

        Args:
            params: CreateChangeSet params (StackName and ChangeSetName required)

        Returns:
            The change set description, or None if it contains no changes
        """
        await self.submit_change_set(params)
        return await self.poll_change_set(params["StackName"], params["ChangeSetName"])

    async def execute_change_set(self, stack_name: str, change_set_name: str) -> None:
        """
        Start executing a change set.

        The call returns as soon as the stack update has been requested; poll
        the stack, not the change set, for the outcome.
        """
        logger.info(f"Executing change set {change_set_name}")
        await self.context.call(
            "cloudformation",
            "execute_change_set",
            StackName=stack_name,
            ChangeSetName=change_set_name,
        )

    async def delete_change_set(self, stack_name: str, change_set_name: str) -> None:
        """Delete a change set and wait until it is gone."""
        await self.context.call(
            "cloudformation",
            "delete_change_set",
            StackName=stack_name,
            ChangeSetName=change_set_name,
        )
        await self.poll_change_set(stack_name, change_set_name, deleting=True)
