"""
CloudWatch Logs log group cleanup.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..aws import AwsContext

logger = logging.getLogger(__name__)


class LogGroupManager:
    """Find and delete log groups by name prefix."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def list_log_groups(self, prefix: str, next_token: Optional[str] = None) -> Dict[str, Any]:
        """List one page of log groups whose name starts with prefix."""
        params: Dict[str, Any] = {"logGroupNamePrefix": prefix}
        if next_token:
            params["nextToken"] = next_token
        return await self.context.call("logs", "describe_log_groups", **params)

    async def delete_log_group(self, name: str) -> Dict[str, Any]:
        logger.info(f"Deleting log group {name}")
        return await self.context.call("logs", "delete_log_group", logGroupName=name)

    async def delete_log_groups(self, prefix: str) -> int:
        """
        Delete all log groups whose name starts with prefix.

        Returns:
            Number of log groups deleted
        """
        deleted = 0
        async for page in self.context.paginate(
            "logs", "describe_log_groups", logGroupNamePrefix=prefix
        ):
            groups = page.get("logGroups", [])
            await asyncio.gather(*(self.delete_log_group(g["logGroupName"]) for g in groups))
            deleted += len(groups)
        return deleted
