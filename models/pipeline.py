from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

AUDIO_EXTENSIONS = (".wav", ".mp3", ".m4a")


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class StagedState(str, Enum):
    INCOMING = "incoming"
    PROCESSED = "processed"


class TranscriptionStatus(str, Enum):
    TRANSCRIBED = "transcribed"
    ALREADY_PROCESSED = "already-processed"


# Raw listing entry as returned by a transport session
class RemoteItem(BaseModel):
    name: str
    kind: EntryKind


class RemoteEntry(BaseModel):
    path: str
    kind: EntryKind = EntryKind.FILE


class StagedFile(BaseModel):
    relative_path: str
    local_path: str
    state: StagedState


class TranscriptionMeta(BaseModel):
    status: TranscriptionStatus
    model: Optional[str] = None
    formatter: Optional[str] = None
    processed_at: Optional[str] = None


class TranscriptionResult(BaseModel):
    source_path: str
    transcript_path: str
    text: str
    metadata: TranscriptionMeta


class StorageKeys(BaseModel):
    audio: str
    text: str


class UploadResult(BaseModel):
    audio_url: str
    text_url: str
    storage_keys: StorageKeys


class PipelineRecord(BaseModel):
    source: str
    audio_url: str
    text_url: str
    transcript: str
    metadata: TranscriptionMeta
    storage_keys: StorageKeys


class PipelineRunReport(BaseModel):
    found: int = 0
    completed: int = 0
    failed: int = 0
    aborted: bool = False
    failed_files: List[str] = Field(default_factory=list)


def is_audio_file(name: str) -> bool:
    return name.lower().endswith(AUDIO_EXTENSIONS)


def metadata_strings(values: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Drop empty values; object store metadata only accepts strings."""
    return {k: str(v) for k, v in values.items() if v is not None}
