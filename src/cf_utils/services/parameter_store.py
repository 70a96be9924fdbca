"""
SSM Parameter Store CRUD.
"""

import logging
from typing import Any, Dict

from ..aws import AwsContext
from ..errors import ParameterNotFoundError

logger = logging.getLogger(__name__)


class ParameterStore:
    """Read and write SSM parameters."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def put_parameter(self, **params: Any) -> str:
        """Create or update a parameter (PutParameter params); returns its name."""
        await self.context.call("ssm", "put_parameter", **params)
        logger.info(f"Successfully upserted parameter: {params['Name']}")
        return params["Name"]

    async def get_parameter(self, name: str) -> Dict[str, Any]:
        """
        Get a parameter, decrypting secure strings.

        Raises:
            ParameterNotFoundError: If the parameter does not exist
        """
        response = await self.context.call("ssm", "get_parameters", Names=[name], WithDecryption=True)
        parameters = response.get("Parameters") or []
        if not parameters:
            raise ParameterNotFoundError(name)
        logger.info(f"Successfully retrieved parameter: {name}")
        return parameters[0]

    async def check_parameter(self, name: str) -> bool:
        """Check whether a parameter exists."""
        response = await self.context.call("ssm", "get_parameters", Names=[name])
        return bool(response.get("Parameters"))

    async def delete_parameter(self, name: str) -> str:
        await self.context.call("ssm", "delete_parameter", Name=name)
        logger.info(f"Successfully deleted parameter: {name}")
        return name
