"""
CloudFormation stack management utilities.
"""

from .change_sets import ChangeSetManager
from .models import StackRequest, StackState, UpsertOptions, extract_output
from .poller import Classification, poll_until_terminal
from .stack_manager import StackManager

__all__ = [
    "ChangeSetManager",
    "Classification",
    "StackManager",
    "StackRequest",
    "StackState",
    "UpsertOptions",
    "extract_output",
    "poll_until_terminal",
]
