"""
Glue catalog partition management.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..aws import AwsContext
from ..errors import GluePartitionError

logger = logging.getLogger(__name__)

# BatchCreatePartition accepts at most this many partitions per request
PARTITION_BATCH_SIZE = 100

HIVE_FORMAT = "Hive"


def partition_location(base: str, label: str, hour: datetime, partition_format: str) -> str:
    """Build the S3 location of one hourly partition."""
    year, month, day, hh = hour.strftime("%Y"), hour.strftime("%m"), hour.strftime("%d"), hour.strftime("%H")
    if partition_format == HIVE_FORMAT:
        return f"{base}/tenant={label}/year={year}/month={month}/day={day}/hour={hh}/"
    # Default Firehose layout
    return f"{base}{label}/{year}/{month}/{day}/{hh}"


class GlueManager:
    """Manage Glue table partitions."""

    def __init__(self, context: AwsContext):
        self.context = context

    def build_partitions(
        self,
        table: Dict[str, Any],
        label: str,
        start: datetime,
        days: int,
        partition_format: str = "default",
    ) -> List[Dict[str, Any]]:
        """Build one label/year/month/day/hour partition input per hour."""
        now = datetime.now(start.tzinfo)
        start = min(start, now)
        end = start + timedelta(days=days)

        descriptor = table["StorageDescriptor"]
        partitions = []
        hour = start
        while hour <= end:
            storage = {
                "Location": partition_location(descriptor["Location"], label, hour, partition_format),
            }
            for key in ("InputFormat", "OutputFormat", "SerdeInfo", "Parameters", "Columns"):
                if key in descriptor:
                    storage[key] = descriptor[key]
            partitions.append({
                "Values": [label, hour.strftime("%Y"), hour.strftime("%m"), hour.strftime("%d"), hour.strftime("%H")],
                "StorageDescriptor": storage,
            })
            hour += timedelta(hours=1)
        return partitions

    async def create_partitions(
        self,
        database: str,
        table: str,
        label: str,
        start: datetime,
        days: int,
        partition_format: str = "default",
        catalog_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Create hourly partitions for a label over a number of days.

        Args:
            database: Glue database name
            table: Table name
            label: Partition label (first partition value)
            start: First hour; a future start is clamped to now
            days: Number of days of partitions to create
            partition_format: "Hive" or the default Firehose layout
            catalog_id: Optional catalog id

        Returns:
            BatchCreatePartition responses

        Raises:
            GluePartitionError: If a batch reports an error other than AlreadyExistsException
        """
        catalog = {"CatalogId": catalog_id} if catalog_id else {}
        info = await self.context.call("glue", "get_table", DatabaseName=database, Name=table, **catalog)
        partitions = self.build_partitions(info["Table"], label, start, days, partition_format)

        async def create_batch(batch: List[Dict[str, Any]]) -> Dict[str, Any]:
            result = await self.context.call(
                "glue",
                "batch_create_partition",
                DatabaseName=database,
                TableName=table,
                PartitionInputList=batch,
                **catalog,
            )
            for error in result.get("Errors") or []:
                code = (error.get("ErrorDetail") or {}).get("ErrorCode")
                if code and code != "AlreadyExistsException":
                    raise GluePartitionError(error)
            return result

        batches = [
            partitions[i:i + PARTITION_BATCH_SIZE]
            for i in range(0, len(partitions), PARTITION_BATCH_SIZE)
        ]
        logger.info(f"Creating {len(partitions)} partitions for {database}.{table} ({label})")
        return list(await asyncio.gather(*(create_batch(b) for b in batches)))
