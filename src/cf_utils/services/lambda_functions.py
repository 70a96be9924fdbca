"""
Lambda function code deployment and invocation.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional, Union

from ..aws import AwsContext

logger = logging.getLogger(__name__)


class LambdaManager:
    """Manage Lambda functions by name filter."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def list_functions(self, name_filter: str, marker: Optional[str] = None) -> Dict[str, Any]:
        """
        List one page of functions, keeping those whose name contains the filter.

        Args:
            name_filter: Substring to match against function names
            marker: Continue listing from this marker

        Returns:
            The ListFunctions page with Functions filtered
        """
        params = {"Marker": marker} if marker else {}
        page = await self.context.call("lambda", "list_functions", **params)
        page["Functions"] = [
            fn for fn in page.get("Functions", []) if name_filter in fn["FunctionName"]
        ]
        return page

    async def iter_functions(
        self, name_filter: str, starting_token: Optional[str] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """Yield every page of functions, each filtered like list_functions."""
        async for page in self.context.paginate("lambda", "list_functions", starting_token=starting_token):
            page["Functions"] = [
                fn for fn in page.get("Functions", []) if name_filter in fn["FunctionName"]
            ]
            yield page

    async def update_function_code(self, **params: Any) -> Dict[str, Any]:
        """Update the code of one function (UpdateFunctionCode params)."""
        response = await self.context.call("lambda", "update_function_code", **params)
        logger.info(f"Updated Lambda function: {params.get('FunctionName')}")
        return response

    async def update_functions_code(self, name_filter: str, **params: Any) -> int:
        """
        Update the code of every function matching the filter.

        Args:
            name_filter: Substring to match against function names
            params: UpdateFunctionCode params without FunctionName

        Returns:
            Number of functions updated
        """
        updated = 0
        async for page in self.iter_functions(name_filter):
            functions = page["Functions"]
            await asyncio.gather(*(
                self.update_function_code(**{**params, "FunctionName": fn["FunctionName"]})
                for fn in functions
            ))
            updated += len(functions)
        return updated

    async def invoke_function(
        self, name: str, payload: Union[str, Dict[str, Any], None] = None, client_context: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Invoke a function synchronously and log its result.

        Args:
            name: Function name
            payload: JSON string, or a value to encode as JSON
            client_context: Optional base64 client context

        Returns:
            The Invoke response with Payload replaced by its decoded contents
        """
        params: Dict[str, Any] = {
            "FunctionName": name,
            "Payload": payload if isinstance(payload, str) else json.dumps(payload or {}),
        }
        if client_context:
            params["ClientContext"] = client_context

        logger.info(f"Invoking Lambda function: {name}")
        response = await self.context.call("lambda", "invoke", **params)

        body = response["Payload"].read() if hasattr(response.get("Payload"), "read") else response.get("Payload", b"")
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        try:
            response["Payload"] = json.loads(body) if body else None
        except json.JSONDecodeError:
            response["Payload"] = body

        logger.info(f"Result (Status Code: {response.get('StatusCode')}): {response['Payload']}")
        return response
