"""
IAM lookups.
"""

from typing import Any, Dict

from ..aws import AwsContext


class IamManager:
    """Describe IAM roles and users."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def describe_role(self, name: str) -> Dict[str, Any]:
        return await self.context.call("iam", "get_role", RoleName=name)

    async def describe_user(self, name: str) -> Dict[str, Any]:
        return await self.context.call("iam", "get_user", UserName=name)
