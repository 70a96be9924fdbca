"""
IoT policy version rotation driven by stack outputs.
"""

import asyncio
import logging
from typing import Any, Dict, List

from ..aws import AwsContext

logger = logging.getLogger(__name__)

TEMPLATE_MARKER = "IoTPolicyTemplate"


class IoTPolicyManager:
    """Publish policy templates as new default versions of live IoT policies."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def update_iot_policies(self, stack_outputs: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Update the IoT policies named by a stack's outputs.

        An output key containing 'IoTPolicyTemplate' names the policy holding
        the new document. The same key with 'Template' removed names the
        policy to update.

        Args:
            stack_outputs: Output variables of a stack

        Returns:
            CreatePolicyVersion responses
        """
        keys = [key for key in stack_outputs if TEMPLATE_MARKER in key]
        return list(await asyncio.gather(*(self._update_policy(stack_outputs, key) for key in keys)))

    async def _update_policy(self, stack_outputs: Dict[str, str], output_key: str) -> Dict[str, Any]:
        template = await self.context.call("iot", "get_policy", policyName=stack_outputs[output_key])
        target = stack_outputs[output_key.replace("Template", "")]

        await self.remove_old_policy_versions(target)
        logger.info(f"Publishing new default version of IoT policy {target}")
        return await self.context.call(
            "iot",
            "create_policy_version",
            policyName=target,
            policyDocument=template["policyDocument"],
            setAsDefault=True,
        )

    async def remove_old_policy_versions(self, policy_name: str) -> None:
        """
        Delete all non-default versions of a policy.

        IoT policies can hold at most five versions.
        """
        response = await self.context.call("iot", "list_policy_versions", policyName=policy_name)
        versions = response.get("policyVersions", [])
        if len(versions) <= 1:
            return

        await asyncio.gather(*(
            self.context.call(
                "iot", "delete_policy_version", policyName=policy_name, policyVersionId=v["versionId"]
            )
            for v in versions
            if not v.get("isDefaultVersion")
        ))
