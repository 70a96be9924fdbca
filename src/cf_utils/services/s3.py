"""
S3 object and bucket operations: uploads, listing, and bucket emptying.
"""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from botocore.exceptions import ClientError

from ..aws import AwsContext
from ..errors import TemplateNotFoundError, error_code

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000


def _is_missing_bucket(error: ClientError) -> bool:
    return error_code(error) == "NoSuchBucket" or "The specified bucket does not exist" in str(error)


class S3Manager:
    """Manage S3 objects for deployment pipelines."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def put_object(self, bucket: str, key: str, body: Union[bytes, str], **extra: Any) -> Dict[str, Any]:
        """Put a small object (key material, generated files) to S3."""
        response = await self.context.call("s3", "put_object", Bucket=bucket, Key=key, Body=body, **extra)
        logger.info(f"Successfully uploaded to s3://{bucket}/{key}")
        return response

    async def upload_file(
        self, path: Union[str, Path], bucket: str, key: str, extra_args: Optional[Dict[str, Any]] = None
    ) -> None:
        """Upload a local file using boto3's managed (multipart) transfer."""
        params: Dict[str, Any] = {"Filename": str(path), "Bucket": bucket, "Key": key}
        if extra_args:
            params["ExtraArgs"] = extra_args
        await self.context.call("s3", "upload_file", **params)
        logger.info(f"Successfully uploaded to s3://{bucket}/{key}")

    async def upload_template(self, template: str, bucket: str, prefix: str = "") -> str:
        """
        Stage a template in S3 so it can be deployed by URL.

        Args:
            template: Local template path
            bucket: Destination bucket
            prefix: Key prefix (include a trailing slash for a folder)

        Returns:
            The template URL to pass as TemplateURL
        """
        path = Path(template)
        if not path.exists():
            raise TemplateNotFoundError(template)

        key = f"{prefix or ''}{path.as_posix().lstrip('/')}"
        await self.upload_file(path, bucket, key)
        return f"https://s3.amazonaws.com/{bucket}/{key}"

    async def list_objects(self, bucket: str, continuation_token: Optional[str] = None) -> Dict[str, Any]:
        """List one page (up to 1000 items) of a bucket."""
        params: Dict[str, Any] = {"Bucket": bucket}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        return await self.context.call("s3", "list_objects_v2", **params)

    async def iter_object_pages(
        self, bucket: str, starting_token: Optional[str] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """Yield list_objects_v2 pages, optionally resuming from a pagination token."""
        async for page in self.context.paginate(
            "s3", "list_objects_v2", starting_token=starting_token, Bucket=bucket
        ):
            yield page

    async def list_object_versions(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        key_marker: Optional[str] = None,
        version_id_marker: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List one page of object versions."""
        params: Dict[str, Any] = {"Bucket": bucket}
        if prefix is not None:
            params["Prefix"] = prefix
        if key_marker:
            params["KeyMarker"] = key_marker
        if version_id_marker:
            params["VersionIdMarker"] = version_id_marker
        return await self.context.call("s3", "list_object_versions", **params)

    async def iter_object_versions(
        self, bucket: str, prefix: Optional[str] = None, starting_token: Optional[str] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """Yield list_object_versions pages, optionally limited to keys under prefix."""
        params: Dict[str, Any] = {"Bucket": bucket}
        if prefix is not None:
            params["Prefix"] = prefix
        async for page in self.context.paginate(
            "s3", "list_object_versions", starting_token=starting_token, **params
        ):
            yield page

    async def delete_objects(self, bucket: str, keys: Iterable[Union[str, Dict[str, str]]]) -> List[Dict[str, Any]]:
        """
        Delete the specified objects.

        Args:
            bucket: The name of the bucket
            keys: Object keys, or {"Key", "VersionId"} dicts for specific versions

        Returns:
            DeleteObjects responses, one per batch
        """
        objects = [{"Key": k} if isinstance(k, str) else dict(k) for k in keys]
        responses = []
        for start in range(0, len(objects), DELETE_BATCH_SIZE):
            batch = objects[start:start + DELETE_BATCH_SIZE]
            response = await self.context.call(
                "s3", "delete_objects", Bucket=bucket, Delete={"Objects": batch}
            )
            for error in response.get("Errors", []):
                logger.warning(f"Failed to delete s3://{bucket}/{error.get('Key')}: {error.get('Message')}")
            responses.append(response)
        return responses

    async def _delete_key_versions(self, bucket: str, key: str) -> None:
        async for page in self.iter_object_versions(bucket, prefix=key):
            entries = [
                {"Key": v["Key"], "VersionId": v["VersionId"]}
                for v in page.get("Versions", []) + page.get("DeleteMarkers", [])
                if v["Key"] == key
            ]
            if entries:
                await self.delete_objects(bucket, entries)

    async def delete_versioned_objects(self, bucket: str, keys: Iterable[Union[str, Dict[str, str]]]) -> None:
        """Delete every version of the given keys; keys are processed concurrently."""
        names = [k if isinstance(k, str) else k["Key"] for k in keys]
        await asyncio.gather(*(self._delete_key_versions(bucket, name) for name in names))

    async def _delete_remaining_versions(self, bucket: str) -> None:
        # Keys whose latest version is a delete marker are not listed by list_objects_v2
        async for page in self.iter_object_versions(bucket):
            entries = [
                {"Key": v["Key"], "VersionId": v["VersionId"]}
                for v in page.get("Versions", []) + page.get("DeleteMarkers", [])
            ]
            if entries:
                await self.delete_objects(bucket, entries)

    async def empty_bucket(self, bucket: str) -> None:
        """
        Empty a bucket, including every object version.

        A bucket that does not exist is already empty.
        """
        try:
            versioning = await self.context.call("s3", "get_bucket_versioning", Bucket=bucket)
            versioned = versioning.get("Status") in ("Enabled", "Suspended")

            async for page in self.iter_object_pages(bucket):
                keys = [obj["Key"] for obj in page.get("Contents", [])]
                if not keys:
                    continue
                if versioned:
                    await self.delete_versioned_objects(bucket, keys)
                else:
                    await self.delete_objects(bucket, keys)

            if versioned:
                await self._delete_remaining_versions(bucket)
        except ClientError as e:
            if not _is_missing_bucket(e):
                raise
            logger.info(f"Bucket {bucket} does not exist, continuing...")
            return

        logger.info(f"Emptied bucket {bucket}")

    async def upload_directory(self, bucket: str, source: Union[str, Path], prefix: Optional[str] = None) -> None:
        """
        Upload a directory (including all subdirectories) to a bucket.

        Args:
            bucket: The name of the bucket
            source: Local directory to upload
            prefix: Optional key prefix (folder) to upload into

        Raises:
            FileNotFoundError: If the directory is empty or missing
        """
        source_dir = Path(source)
        if not source_dir.is_dir() or not any(source_dir.iterdir()):
            raise FileNotFoundError(
                f"Folder '{source}' is empty or does not exist. Did you forget to build your application?"
            )

        operations = []
        for path in sorted(source_dir.iterdir()):
            key = f"{prefix}/{path.name}" if prefix else path.name
            if path.is_dir():
                operations.append(self.upload_directory(bucket, path, key))
            else:
                content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
                operations.append(self.upload_file(path, bucket, key, {"ContentType": content_type}))

        await asyncio.gather(*operations)

    async def put_bucket_notification_configuration(self, **params: Any) -> Dict[str, Any]:
        """Add a notification configuration to a bucket."""
        response = await self.context.call("s3", "put_bucket_notification_configuration", **params)
        logger.info(f"Successfully added notification configuration to s3://{params.get('Bucket')}")
        return response
