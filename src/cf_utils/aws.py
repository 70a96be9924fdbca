"""
AWS session handling.

An AwsContext is created once per session and passed to every manager, so
region and credentials are explicit rather than process-wide state.
"""

import asyncio
import functools
import logging
from typing import Any, AsyncIterator, Dict, Optional

import boto3

from .config import ProjectConfig

logger = logging.getLogger(__name__)


class AwsContext:
    """Hold a boto3 session and the clients created from it."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        config: Optional[ProjectConfig] = None,
    ):
        """
        Initialize the context.

        Args:
            region: AWS region
            profile: AWS profile to use
            config: Project configuration (naming, polling settings)
        """
        self.config = config or ProjectConfig(aws_region=region, aws_profile=profile)
        self.region = region or self.config.aws_region
        self.profile = profile or self.config.aws_profile

        session_args = {}
        if self.region:
            session_args["region_name"] = self.region
        if self.profile:
            session_args["profile_name"] = self.profile
        self._session = boto3.Session(**session_args)
        self._clients: Dict[str, Any] = {}

        # Resolve the region boto3 picked if none was given
        if not self.region:
            self.region = self._session.region_name

    @classmethod
    def from_config(cls, config: ProjectConfig) -> "AwsContext":
        """Create a context from project configuration."""
        return cls(region=config.aws_region, profile=config.aws_profile, config=config)

    def client(self, service: str) -> Any:
        """Get or create AWS client for a service."""
        if service not in self._clients:
            self._clients[service] = self._session.client(service)
        return self._clients[service]

    async def call(self, service: str, operation: str, **params: Any) -> Any:
        """
        Run a client operation without blocking the event loop.

        Args:
            service: boto3 service name, e.g. "cloudformation"
            operation: client method name, e.g. "describe_stacks"
            params: keyword arguments for the operation

        Returns:
            The operation's response
        """
        method = getattr(self.client(service), operation)
        logger.debug(f"{service}.{operation}")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(method, **params))

    async def paginate(
        self, service: str, operation: str, starting_token: Optional[str] = None, **params: Any
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield the pages of a paginated operation using the client's paginator.

        Each page is fetched in the default executor, so iterating never
        blocks the event loop.

        Args:
            service: boto3 service name, e.g. "s3"
            operation: paginated client method, e.g. "list_objects_v2"
            starting_token: Resume from a token of an earlier listing
            params: keyword arguments for the operation
        """
        paginator = self.client(service).get_paginator(operation)
        if starting_token:
            params["PaginationConfig"] = {"StartingToken": starting_token}
        pages = iter(paginator.paginate(**params))

        logger.debug(f"{service}.{operation} (paginated)")
        loop = asyncio.get_running_loop()
        while True:
            page = await loop.run_in_executor(None, next, pages, None)
            if page is None:
                return
            yield page
