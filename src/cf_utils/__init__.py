"""
cf-utils - Tools for building task-runner style deployment pipelines with AWS CloudFormation.
"""

__version__ = "2.0.2"

from .aws import AwsContext
from .cloudformation import StackManager, StackState, UpsertOptions
from .config import ProjectConfig, load_config

__all__ = ["AwsContext", "ProjectConfig", "StackManager", "StackState", "UpsertOptions", "load_config"]
