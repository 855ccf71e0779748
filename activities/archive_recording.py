from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from models.pipeline import StorageKeys, UploadResult, metadata_strings
from services.capabilities import ObjectStore
from services.retry import RetryExecutor

logger = logging.getLogger("archive_recording")

CONTENT_TYPES = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".txt": "text/plain",
    ".json": "application/json",
}


def detect_content_type(file_path: Union[str, Path]) -> str:
    return CONTENT_TYPES.get(Path(file_path).suffix.lower(), "application/octet-stream")


def build_object_key(local_path: Union[str, Path], processed_root: Union[str, Path], prefix: str = "") -> str:
    """
    '{prefix}/{path relative to processed_root}' with '/' separators.
    Paths outside the root fall back to '{prefix}/{basename}'.
    """
    absolute = Path(local_path).resolve()
    trimmed_prefix = (prefix or "").strip("/")
    try:
        relative = absolute.relative_to(Path(processed_root).resolve()).as_posix()
    except ValueError:
        relative = ""
    if not relative or relative == ".":
        relative = absolute.name
    return f"{trimmed_prefix}/{relative}" if trimmed_prefix else relative


def build_file_url(endpoint: str, bucket: str, key: str) -> str:
    return f"{endpoint.rstrip('/')}/{bucket}/{key}"


class Archiver:
    """Uploads a processed audio + transcript pair and returns stable URLs."""

    def __init__(
        self,
        store: ObjectStore,
        processed_root: Union[str, Path],
        bucket: str,
        endpoint: str,
        retry: RetryExecutor,
        prefix: str = "",
    ):
        if not bucket:
            raise ValueError("Archiver requires a bucket.")
        self.store = store
        self.processed_root = Path(processed_root)
        self.bucket = bucket
        self.endpoint = endpoint
        self.prefix = prefix
        self.retry = retry

    async def archive(
        self,
        audio_path: Optional[Union[str, Path]],
        transcript_path: Optional[Union[str, Path]],
        metadata: Optional[Dict[str, Optional[str]]] = None,
    ) -> UploadResult:
        if not audio_path or not transcript_path:
            raise ValueError("Both audio_path and transcript_path are required for upload.")
        metadata = metadata or {}

        audio_key = build_object_key(audio_path, self.processed_root, self.prefix)
        text_key = build_object_key(transcript_path, self.processed_root, self.prefix)

        logger.info("Uploading audio key=%s", audio_key)
        await self._put(audio_path, audio_key, {"type": "audio", **metadata})
        logger.info("Uploading transcript key=%s", text_key)
        await self._put(transcript_path, text_key, {"type": "transcript", **metadata})

        return UploadResult(
            audio_url=build_file_url(self.endpoint, self.bucket, audio_key),
            text_url=build_file_url(self.endpoint, self.bucket, text_key),
            storage_keys=StorageKeys(audio=audio_key, text=text_key),
        )

    async def _put(self, file_path: Union[str, Path], key: str, metadata: Dict[str, Optional[str]]) -> str:
        async def upload(attempt: int) -> None:
            with open(file_path, "rb") as body:
                await self.store.put(
                    self.bucket,
                    key,
                    body,
                    content_type=detect_content_type(file_path),
                    metadata=metadata_strings(metadata),
                    acl="private",
                )

        await self.retry.execute(upload, base_delay=1.5, task_name="spaces.putObject")
        return key


__all__ = ["Archiver", "build_object_key", "build_file_url", "detect_content_type"]
