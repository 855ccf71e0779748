from __future__ import annotations

import logging
import uuid

from models.pipeline import PipelineRecord
from services.capabilities import MetadataStore
from services.retry import RetryExecutor

logger = logging.getLogger("record_metadata")


def record_id_for(source: str) -> str:
    """Stable id per source path, so a repeated insert overwrites instead of adding a record."""
    return uuid.uuid5(uuid.NAMESPACE_URL, source).hex


class Recorder:
    def __init__(self, store: MetadataStore, retry: RetryExecutor):
        self.store = store
        self.retry = retry

    async def record(self, record: PipelineRecord) -> str:
        """Persist one completed record; returns the store key."""
        logger.info("Metadata insert invoked source=%s", record.source)
        payload = record.model_dump(mode="json")
        record_id = record_id_for(record.source)
        key = await self.retry.execute(
            lambda attempt: self.store.insert(payload, record_id),
            base_delay=1.0,
            task_name="metadata.insert",
        )
        logger.info("Metadata insert successful id=%s", key)
        return key
