"""
Firehose delivery stream and Kinesis Analytics helpers.
"""

import logging
from typing import Any, Dict, List, Optional

from ..aws import AwsContext

logger = logging.getLogger(__name__)

# Members of a destination description that UpdateDestination accepts unchanged
S3_UPDATE_MEMBERS = (
    "RoleARN",
    "BucketARN",
    "Prefix",
    "ErrorOutputPrefix",
    "BufferingHints",
    "CompressionFormat",
    "EncryptionConfiguration",
    "CloudWatchLoggingOptions",
)

EXTENDED_S3_UPDATE_MEMBERS = S3_UPDATE_MEMBERS + (
    "ProcessingConfiguration",
    "S3BackupMode",
    "DataFormatConversionConfiguration",
    "DynamicPartitioningConfiguration",
    "FileExtension",
    "CustomTimeZone",
)


class StreamManager:
    """Configure Firehose streams and start Kinesis Analytics applications."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def create_parquet_conversion(
        self, delivery_stream: str, database: str, table: str
    ) -> Dict[str, Any]:
        """
        Convert a Firehose stream's JSON records to Parquet using a Glue table schema.

        Args:
            delivery_stream: Firehose delivery stream name
            database: Glue database name
            table: Glue table holding the schema

        Returns:
            The UpdateDestination response
        """
        response = await self.context.call(
            "firehose", "describe_delivery_stream", DeliveryStreamName=delivery_stream
        )
        description = response["DeliveryStreamDescription"]
        destination = description["Destinations"][0]
        current = destination["ExtendedS3DestinationDescription"]
        s3_dest = {key: current[key] for key in EXTENDED_S3_UPDATE_MEMBERS if key in current}
        if "S3BackupDescription" in current:
            backup = current["S3BackupDescription"]
            s3_dest["S3BackupUpdate"] = {key: backup[key] for key in S3_UPDATE_MEMBERS if key in backup}

        s3_dest["DataFormatConversionConfiguration"] = {
            "SchemaConfiguration": {
                "RoleARN": s3_dest["RoleARN"],
                "DatabaseName": database,
                "TableName": table,
                "Region": self.context.region,
                "VersionId": "LATEST",
            },
            "InputFormatConfiguration": {"Deserializer": {"OpenXJsonSerDe": {}}},
            "OutputFormatConfiguration": {"Serializer": {"ParquetSerDe": {}}},
            "Enabled": True,
        }
        s3_dest["CompressionFormat"] = "UNCOMPRESSED"
        s3_dest["BufferingHints"] = {"SizeInMBs": 64, "IntervalInSeconds": 60}

        logger.info(f"Updating firehose with parquet conversion: {description['DeliveryStreamName']}")
        return await self.context.call(
            "firehose",
            "update_destination",
            DeliveryStreamName=description["DeliveryStreamName"],
            CurrentDeliveryStreamVersionId=description["VersionId"],
            DestinationId=destination["DestinationId"],
            ExtendedS3DestinationUpdate=s3_dest,
        )

    async def tag_firehose_stream(
        self, delivery_stream: str, tags: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """Tag a delivery stream, defaulting to the project tags."""
        if tags is None:
            config = self.context.config
            tags = [
                {"Key": "acs:project", "Value": config.require("project")},
                {"Key": "acs:project-version", "Value": config.require("project_version")},
            ]
        return await self.context.call(
            "firehose", "tag_delivery_stream", DeliveryStreamName=delivery_stream, Tags=tags
        )

    async def start_application(self, application: str) -> Dict[str, Any]:
        """Start a Kinesis Analytics application reading from NOW on its first input."""
        info = await self.context.call(
            "kinesisanalytics", "describe_application", ApplicationName=application
        )
        input_id = info["ApplicationDetail"]["InputDescriptions"][0]["InputId"]
        logger.info(f"Starting kinesis application: {application}...")
        return await self.context.call(
            "kinesisanalytics",
            "start_application",
            ApplicationName=application,
            InputConfigurations=[{
                "Id": input_id,
                "InputStartingPositionConfiguration": {"InputStartingPosition": "NOW"},
            }],
        )
