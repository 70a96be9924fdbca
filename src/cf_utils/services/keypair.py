"""
EC2 key pair management with optional PEM storage in S3.
"""

import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..aws import AwsContext
from .s3 import S3Manager

logger = logging.getLogger(__name__)


class KeyPairManager:
    """Create and delete EC2 key pairs."""

    def __init__(self, context: AwsContext, s3: Optional[S3Manager] = None):
        self.context = context
        self.s3 = s3 or S3Manager(context)

    async def create_key_pair(
        self, name: str, bucket: Optional[str] = None, key: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Create a key pair, storing the private key in S3 if a bucket is given.

        An existing key pair is left alone.

        Returns:
            The CreateKeyPair response, the PutObject response when stored,
            or None if the key pair already existed
        """
        try:
            response = await self.context.call("ec2", "create_key_pair", KeyName=name)
        except ClientError as e:
            if "already exists" not in str(e):
                raise
            logger.info("Key pair already exists, continuing...")
            return None

        logger.info(f"Successfully created new key pair: {name}")
        if bucket:
            return await self.s3.put_object(bucket, key or f"{name}.pem", response["KeyMaterial"])
        return response

    async def delete_key_pair(
        self, name: str, bucket: Optional[str] = None, key: Optional[str] = None
    ) -> Any:
        """Delete a key pair and, if a bucket is given, its stored PEM file."""
        response = await self.context.call("ec2", "delete_key_pair", KeyName=name)
        logger.info(f"Successfully deleted key pair: {name}")
        if bucket:
            pem_key = key or f"{name}.pem"
            logger.info(f"Deleting pem file s3://{bucket}/{pem_key}")
            return await self.s3.delete_objects(bucket, [pem_key])
        return response
