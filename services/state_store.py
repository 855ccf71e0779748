from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

from dapr.aio.clients import DaprClient


STATE_STORE_NAME = "statestore"

logger = logging.getLogger("state_store")


class DaprMetadataStore:
    """
    Pipeline records in a Dapr state store, one JSON value per record under
    '<collection>:<record id>'. Writing the same id again overwrites it.

    Built once per process. The Dapr client is created on first use and
    reused for every insert until close().
    """

    def __init__(
        self,
        store_name: str = STATE_STORE_NAME,
        collection: str = "calls",
        address: Optional[str] = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        self.store_name = store_name
        self.collection = collection
        self.address = address
        self._client_factory = client_factory or self._create_client
        self._client = None
        self._lock = asyncio.Lock()

    def _create_client(self) -> DaprClient:
        return DaprClient(address=self.address) if self.address else DaprClient()

    async def client(self):
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                self._client = self._client_factory()
                logger.info("Created metadata store client store=%s", self.store_name)
        return self._client

    async def insert(self, record: Dict[str, Any], record_id: str) -> str:
        client = await self.client()
        key = f"{self.collection}:{record_id}"
        await client.save_state(
            store_name=self.store_name,
            key=key,
            value=json.dumps(record),
            state_metadata={"contentType": "application/json"},
        )
        return key

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.close()
