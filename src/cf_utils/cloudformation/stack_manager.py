"""
CloudFormation stack management operations.
"""

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import click
from botocore.exceptions import ClientError

from ..aws import AwsContext
from ..errors import (
    ReviewRejectedError,
    StackDeployError,
    StackOperationFailedError,
    TemplateNotFoundError,
    is_no_op,
    is_not_found,
)
from ..services.s3 import S3Manager
from .change_sets import ChangeSetManager, generate_change_set_name, preview_change_set_name
from .models import (
    ChangeSetType,
    ParameterInput,
    StackRequest,
    StackState,
    UpsertOptions,
    contains_transforms,
    is_template_url,
    normalize_parameters,
)
from .poller import Classification, poll_until_terminal

logger = logging.getLogger(__name__)

REVIEW_PROMPT = "Changes will be made to these resources. Do you want to update stack?"

# Terminal statuses that mean the requested operation did not take effect
FAILURE_STATUSES = {
    "ROLLBACK_COMPLETE",
    "UPDATE_ROLLBACK_COMPLETE",
    "IMPORT_ROLLBACK_COMPLETE",
}

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


def default_confirm(message: str) -> bool:
    """Ask the operator on the terminal, defaulting to no."""
    return click.confirm(message, default=False)


def classify_stack(stack: Dict[str, Any]) -> Classification:
    """
    Classify a stack description.

    *_COMPLETE is success unless it is a rollback; *_FAILED and rollbacks
    are fatal; everything else is still in progress.
    """
    status = stack["StackStatus"]
    if status in FAILURE_STATUSES or status.endswith("_FAILED"):
        logger.warning(f"Stack details: {stack}")
        return Classification.failure(StackOperationFailedError(stack))
    if status.endswith("_COMPLETE"):
        logger.info("Stack operation completed")
        return Classification.success(StackState.from_description(stack))
    return Classification.waiting(
        f"Waiting for stack operation to complete. This may take some time - {status}"
    )


def format_changes(change_set: Dict[str, Any]) -> List[str]:
    """Render the resource changes of a change set, one line each."""
    lines = []
    for change in change_set.get("Changes", []):
        resource = change.get("ResourceChange", {})
        line = (
            f"{resource.get('Action', '?'):<8} {resource.get('LogicalResourceId', '?')} "
            f"({resource.get('ResourceType', '?')})"
        )
        if resource.get("Replacement") in ("True", "Conditional"):
            line += f" replacement={resource['Replacement']}"
        lines.append(line)
    return lines


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(
        self,
        context: AwsContext,
        s3: Optional[S3Manager] = None,
        confirm: Optional[Confirm] = None,
        poll_interval: Optional[float] = None,
    ):
        """
        Initialize stack manager.

        Args:
            context: AWS context used for all calls
            s3: Used to stage templates and empty buckets before deletion
            confirm: Asks the reviewer to approve an update (terminal prompt by default)
            poll_interval: Seconds between status checks (config default if not provided)
        """
        self.context = context
        self.change_sets = ChangeSetManager(context, poll_interval=poll_interval)
        self.poll_interval = self.change_sets.poll_interval
        self.max_attempts = context.config.poll_max_attempts
        self.s3 = s3 or S3Manager(context)
        self.confirm = confirm or default_confirm

    async def describe_stack(self, stack_name: str) -> StackState:
        """Describe a stack; a missing stack raises ClientError."""
        response = await self.context.call(
            "cloudformation", "describe_stacks", StackName=stack_name
        )
        return StackState.from_description(response["Stacks"][0])

    async def get_stack(self, stack_name: str) -> Optional[StackState]:
        """Describe a stack, returning None if it does not exist."""
        try:
            return await self.describe_stack(stack_name)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise

    async def get_stack_status(self, stack_name: str) -> Optional[str]:
        """Get current stack status."""
        stack = await self.get_stack(stack_name)
        return stack.status if stack else None

    async def describe_output(self, stack_name: str) -> Dict[str, str]:
        """Get outputs from a CloudFormation stack."""
        stack = await self.describe_stack(stack_name)
        return stack.outputs

    async def poll_stack(
        self, stack_name: str, not_found_is_success: bool = False
    ) -> Optional[StackState]:
        """
        Wait for the stack to reach a terminal status.

        Returns:
            The stable stack, or None if it is gone and not_found_is_success is set

        Raises:
            StackOperationFailedError: If the stack failed or rolled back
        """

        async def probe() -> Dict[str, Any]:
            response = await self.context.call(
                "cloudformation", "describe_stacks", StackName=stack_name
            )
            return response["Stacks"][0]

        return await poll_until_terminal(
            probe,
            classify_stack,
            interval=self.poll_interval,
            not_found_is_success=not_found_is_success,
            max_attempts=self.max_attempts,
        )

    async def upsert_stack(
        self,
        stack_name: str,
        template: str,
        parameters: ParameterInput = None,
        options: Union[UpsertOptions, Dict[str, Any], bool, None] = None,
    ) -> Optional[StackState]:
        """
        Create or update a stack.

        Templates using the serverless transform are deployed through change
        sets, because the direct update path cannot diff transformed
        resources.

        Args:
            stack_name: Fully qualified stack name
            template: Path to the template, or an https://s3 template URL
            parameters: Stack inputs (mapping, pairs, or ParameterKey dicts)
            options: UpsertOptions, an equivalent dict, or a bare review flag

        Returns:
            The stack once it has reached a stable state

        Raises:
            TemplateNotFoundError: If the local template does not exist
            ReviewRejectedError: If review is enabled and the reviewer declines
            StackOperationFailedError: If the stack ends in a failed state
        """
        opts = UpsertOptions.coerce(options)
        remote = is_template_url(template)
        if not remote and not Path(template).exists():
            raise TemplateNotFoundError(template)

        transforms = opts.contains_transforms
        if transforms is None:
            if remote:
                logger.warning("Cannot inspect a remote template for transforms; assuming none")
                transforms = False
            else:
                transforms = contains_transforms(Path(template).read_text())

        if opts.s3_bucket:
            template_url = await self.s3.upload_template(template, opts.s3_bucket, opts.s3_prefix)
            return await self.upsert_stack(
                stack_name,
                template_url,
                parameters,
                UpsertOptions(review=opts.review, contains_transforms=transforms),
            )

        params = StackRequest.from_source(stack_name, template, parameters).to_params()

        if await self.get_stack(stack_name) is None:
            if transforms:
                logger.info("Stack contains transforms, deploying via change set...")
                return await self.apply_change_set(params, ChangeSetType.CREATE)
            return await self.create_stack(params)

        if opts.review:
            if not await self._review_update(params):
                return await self.poll_stack(stack_name)
        else:
            logger.info("Stack exists, updating...")

        if transforms:
            logger.info("Stack contains transforms, deploying via change set...")
            return await self.apply_change_set(params, ChangeSetType.UPDATE)
        return await self.update_stack(params)

    async def _review_update(self, params: Dict[str, Any]) -> bool:
        """
        Preview an update and ask the reviewer to approve it.

        The preview change set is always deleted once it has been created.

        Returns:
            True if approved, False if there is nothing to change
        """
        stack_name = params["StackName"]
        change_set_name = preview_change_set_name(stack_name)
        logger.info("Stack exists, creating changeset for review...")

        await self.change_sets.submit_change_set({**params, "ChangeSetName": change_set_name})
        approved = False
        try:
            change_set = await self.change_sets.poll_change_set(stack_name, change_set_name)
            if change_set is not None:
                for line in format_changes(change_set):
                    logger.info(line)
                approved = await self._ask(REVIEW_PROMPT)
        except BaseException as e:
            await self._discard_change_set(stack_name, change_set_name, pending=e)
            raise

        if change_set is None:
            await self._discard_change_set(stack_name, change_set_name)
            logger.info("There are no changes to apply, continuing....")
            return False

        if not approved:
            rejected = ReviewRejectedError(stack_name)
            await self._discard_change_set(stack_name, change_set_name, pending=rejected)
            raise rejected

        await self._discard_change_set(stack_name, change_set_name)
        logger.info("Reviewer has accepted updates, continuing with stack update...")
        return True

    async def _discard_change_set(
        self, stack_name: str, change_set_name: str, pending: Optional[BaseException] = None
    ) -> None:
        """
        Delete a change set this manager created.

        When the change set is discarded because of another error (pending),
        a failed delete is logged so the original error still surfaces.
        """
        logger.info(f"Cleaning up change set {change_set_name}....")
        try:
            await self.change_sets.delete_change_set(stack_name, change_set_name)
        except Exception as e:
            if pending is None:
                raise
            logger.error(f"Failed to delete change set {change_set_name}: {e}")

    async def _ask(self, message: str) -> bool:
        if inspect.iscoroutinefunction(self.confirm):
            return bool(await self.confirm(message))
        loop = asyncio.get_running_loop()
        return bool(await loop.run_in_executor(None, self.confirm, message))

    async def create_stack(self, params: Dict[str, Any]) -> Optional[StackState]:
        """
        Create a stack and wait for it to finish.

        Rollback is disabled so a failed stack stays inspectable.
        """
        params = {**params, "DisableRollback": True}
        logger.info(f"Creating stack {params['StackName']}...")
        await self.context.call("cloudformation", "create_stack", **params)
        return await self.poll_stack(params["StackName"])

    async def update_stack(self, params: Dict[str, Any]) -> Optional[StackState]:
        """Update a stack directly; an empty update is not an error."""
        try:
            await self.context.call("cloudformation", "update_stack", **params)
        except ClientError as e:
            if not is_no_op(str(e)):
                raise
            logger.info("There are no changes to apply, continuing....")
        return await self.poll_stack(params["StackName"])

    async def apply_change_set(
        self, params: Dict[str, Any], change_set_type: ChangeSetType
    ) -> Optional[StackState]:
        """
        Create and execute a uniquely named change set, then wait for the stack.

        Every change set created here is either executed or deleted: one with
        no changes is deleted and the current stack is returned, and one
        that fails (or cannot be executed) is deleted before the error is
        raised.
        """
        stack_name = params["StackName"]
        change_set_name = generate_change_set_name()

        await self.change_sets.submit_change_set(
            {**params, "ChangeSetName": change_set_name, "ChangeSetType": change_set_type.value}
        )
        executed = False
        try:
            change_set = await self.change_sets.poll_change_set(stack_name, change_set_name)
            if change_set is not None:
                await self.change_sets.execute_change_set(stack_name, change_set_name)
                executed = True
        except BaseException as e:
            await self._discard_change_set(stack_name, change_set_name, pending=e)
            raise

        if not executed:
            await self._discard_change_set(stack_name, change_set_name)
            return await self.describe_stack(stack_name)
        return await self.poll_stack(stack_name)

    async def delete_stack(self, stack_name: str) -> None:
        """
        Delete a stack, emptying any buckets it exposes as outputs first.

        Outputs whose key ends in "Bucket" name buckets that would otherwise
        block deletion. Deleting a missing stack succeeds.
        """
        stack = await self.get_stack(stack_name)
        if stack is None:
            logger.info("Stack already deleted or never existed.")
            return None

        buckets = [value for key, value in stack.outputs.items() if key.endswith("Bucket")]
        for bucket in buckets:
            logger.info(f"Emptying S3 bucket {bucket}")
        await asyncio.gather(*(self.s3.empty_bucket(bucket) for bucket in buckets))

        logger.info(f"Deleting stack {stack_name}...")
        await self.context.call("cloudformation", "delete_stack", StackName=stack_name)
        await self.poll_stack(stack_name, not_found_is_success=True)
        return None

    async def deploy_stack(
        self, stack_name: str, template: str, parameters: ParameterInput = None
    ) -> StackState:
        """
        Deploy a template with `aws cloudformation deploy`.

        Args:
            stack_name: Fully qualified stack name
            template: Path to the template
            parameters: Stack inputs

        Returns:
            The stack after deployment

        Raises:
            StackDeployError: If the CLI fails for any reason other than no changes
        """
        command = [
            "aws", "cloudformation", "deploy",
            "--template-file", template,
            "--stack-name", stack_name,
            "--capabilities", "CAPABILITY_IAM", "CAPABILITY_NAMED_IAM",
        ]
        if self.context.profile:
            command += ["--profile", self.context.profile]
        if self.context.region:
            command += ["--region", self.context.region]

        overrides = [
            f"{p['ParameterKey']}={p['ParameterValue']}" for p in normalize_parameters(parameters)
        ]
        if overrides:
            command += ["--parameter-overrides", *overrides]

        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        out, err = stdout.decode(), stderr.decode()
        for line in out.splitlines():
            logger.info(line)

        if process.returncode != 0:
            if not is_no_op(err):
                logger.error(err)
                raise StackDeployError(stack_name, process.returncode, err)
            logger.info("There are no changes to apply, continuing....")

        return await self.describe_stack(stack_name)
