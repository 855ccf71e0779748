from __future__ import annotations

from typing import Any, BinaryIO, Dict, List, Optional, Protocol

from models.pipeline import RemoteItem


class RemoteSession(Protocol):
    async def list(self, path: str) -> List[RemoteItem]: ...

    async def download(self, remote_path: str, local_path: str) -> None: ...

    async def close(self) -> None: ...


class RemoteTransport(Protocol):
    async def connect(self) -> RemoteSession: ...


class TranscriptionCapability(Protocol):
    model: str

    async def transcribe(self, audio: BinaryIO, filename: str) -> str: ...


class ReformattingCapability(Protocol):
    model: str

    async def reformat(self, raw_text: str) -> str: ...


class ObjectStore(Protocol):
    async def put(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        *,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "private",
    ) -> None: ...


class MetadataStore(Protocol):
    async def insert(self, record: Dict[str, Any], record_id: str) -> str: ...

    async def close(self) -> None: ...
