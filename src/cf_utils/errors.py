"""
Exception types shared across the toolkit.
"""

from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import ClientError

NOT_FOUND_CODES = {
    "ChangeSetNotFound",
    "ChangeSetNotFoundException",
    "NoSuchBucket",
    "ResourceNotFoundException",
    "ParameterNotFound",
}

# Reasons a change set reports when the template matches the stack
CHANGE_SET_NO_OP_PHRASES = (
    "No updates are to be performed",
    "didn't contain changes",
)

# UpdateStack and `aws cloudformation deploy` add their own phrasing
NO_OP_PHRASES = CHANGE_SET_NO_OP_PHRASES + ("No changes to deploy",)


class CfUtilsError(Exception):
    """Base class for toolkit errors."""


class ConfigurationError(CfUtilsError):
    """Raised when a required configuration value is missing or invalid."""


class TemplateNotFoundError(CfUtilsError):
    """Raised when a local template path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"{path} does not exist!")
        self.path = path


class StackOperationFailedError(CfUtilsError):
    """Raised when a stack reaches a failed terminal status."""

    def __init__(self, stack: Dict[str, Any], message: str = "Stack operation failed"):
        super().__init__(f"{message}: {stack.get('StackName')} ({stack.get('StackStatus')})")
        self.stack = stack


class ChangeSetFailedError(CfUtilsError):
    """Raised when a change set fails for a reason other than an empty diff."""

    def __init__(self, change_set: Dict[str, Any]):
        super().__init__(
            f"Changeset creation failed: {change_set.get('ChangeSetName')} "
            f"({change_set.get('StatusReason', 'no reason given')})"
        )
        self.change_set = change_set


class ReviewRejectedError(CfUtilsError):
    """Raised when the reviewer declines a previewed stack update."""

    def __init__(self, stack_name: str):
        super().__init__(f"Reviewer rejected stack update: {stack_name}")
        self.stack_name = stack_name


class StackDeployError(CfUtilsError):
    """Raised when `aws cloudformation deploy` exits unsuccessfully."""

    def __init__(self, stack_name: str, returncode: int, stderr: str = ""):
        super().__init__(f"Stack deploy failed: {stack_name} (exit code {returncode})")
        self.stack_name = stack_name
        self.returncode = returncode
        self.stderr = stderr


class ParameterNotFoundError(CfUtilsError):
    """Raised when a parameter store lookup finds nothing."""

    def __init__(self, name: str):
        super().__init__(f"Parameter not found: {name}")
        self.name = name


class GluePartitionError(CfUtilsError):
    """Raised when a partition batch reports an error other than AlreadyExists."""

    def __init__(self, error: Dict[str, Any]):
        detail = error.get("ErrorDetail", {})
        super().__init__(
            f"Partition creation failed: {detail.get('ErrorCode')} {detail.get('ErrorMessage', '')}".strip()
        )
        self.error = error


class PollTimeoutError(CfUtilsError):
    """Raised when an explicit poll ceiling is exhausted."""

    def __init__(self, attempts: int, last_state: Optional[Any] = None):
        super().__init__(f"Gave up polling after {attempts} attempts")
        self.attempts = attempts
        self.last_state = last_state


def error_code(error: ClientError) -> str:
    """Return the AWS error code of a ClientError (empty if missing)."""
    return str(error.response.get("Error", {}).get("Code", ""))


def is_not_found(error: BaseException) -> bool:
    """Check whether an error means the remote resource is absent."""
    if not isinstance(error, ClientError):
        return False
    if error_code(error) in NOT_FOUND_CODES:
        return True
    return "does not exist" in str(error)


def is_no_op(text: Optional[str], phrases: Tuple[str, ...] = NO_OP_PHRASES) -> bool:
    """Check whether a provider message means there is nothing to change."""
    if not text:
        return False
    return any(phrase in text for phrase in phrases)
