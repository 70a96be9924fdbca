"""
Thin wrappers around the AWS services used by deployment pipelines.
"""

from .cognito import CognitoManager
from .glue import GlueManager
from .iam import IamManager
from .iot import IoTPolicyManager
from .keypair import KeyPairManager
from .kinesis import StreamManager
from .lambda_functions import LambdaManager
from .logs import LogGroupManager
from .parameter_store import ParameterStore
from .s3 import S3Manager

__all__ = [
    "CognitoManager",
    "GlueManager",
    "IamManager",
    "IoTPolicyManager",
    "KeyPairManager",
    "LambdaManager",
    "LogGroupManager",
    "ParameterStore",
    "S3Manager",
    "StreamManager",
]
