from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Union

from activities.archive_recording import Archiver
from activities.record_metadata import Recorder
from activities.remote_inbox import RemoteSource
from activities.transcribe_audio import Transcoder
from models.pipeline import PipelineRecord, PipelineRunReport
from services.staging import StagingStore

logger = logging.getLogger("pipeline")


class FileStage(str, Enum):
    FETCHED = "fetched"
    STAGED_AUDIO = "staged_audio"
    STAGED_TRANSCRIPT = "staged_transcript"
    ARCHIVED = "archived"
    RECORDED = "recorded"
    CLEANED = "cleaned"


class PipelineOrchestrator:
    """
    One run: fetch a batch, then drive each file through
    transcode -> stage -> archive -> record -> cleanup.

    A failing file stops at its current stage and keeps its local files so
    the next run resumes it; the rest of the batch carries on. The incoming
    copy is deleted only after the record was written.
    """

    def __init__(
        self,
        source: RemoteSource,
        transcoder: Transcoder,
        archiver: Archiver,
        recorder: Recorder,
        staging: StagingStore,
        remote_root: str,
        max_files: Optional[int] = None,
        concurrency: int = 1,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.source = source
        self.transcoder = transcoder
        self.archiver = archiver
        self.recorder = recorder
        self.staging = staging
        self.remote_root = remote_root
        self.max_files = max_files
        self.concurrency = concurrency
        self._in_flight: Set[str] = set()

    async def run(self) -> PipelineRunReport:
        logger.info("Pipeline run started")
        report = PipelineRunReport()

        try:
            files = await self.source.fetch_batch(self.remote_root)
        except Exception as e:
            logger.error("Failed to fetch files from remote root=%s: %s", self.remote_root, e, exc_info=True)
            report.aborted = True
            return report

        files = self._dedupe(files)
        if not files:
            logger.info("No new files found")
            return report

        if self.max_files and self.max_files > 0 and len(files) > self.max_files:
            logger.warning("Limiting pipeline run to %d of %d files", self.max_files, len(files))
            files = files[: self.max_files]
        report.found = len(files)

        if self.concurrency == 1:
            outcomes = [await self.handle_file(f) for f in files]
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def worker(path: Path) -> bool:
                async with semaphore:
                    return await self.handle_file(path)

            outcomes = await asyncio.gather(*(worker(f) for f in files))

        for path, ok in zip(files, outcomes):
            if ok:
                report.completed += 1
            else:
                report.failed += 1
                report.failed_files.append(self.staging.relative_to_incoming(path))

        logger.info(
            "Pipeline run complete found=%d completed=%d failed=%d",
            report.found,
            report.completed,
            report.failed,
        )
        return report

    def _dedupe(self, files: List[Path]) -> List[Path]:
        seen: Set[str] = set()
        unique: List[Path] = []
        for f in files:
            relative = self.staging.relative_to_incoming(f)
            if relative in seen:
                continue
            seen.add(relative)
            unique.append(Path(f))
        return unique

    async def handle_file(self, file_path: Union[str, Path]) -> bool:
        """Run one file through every stage. Returns False on failure, never raises."""
        absolute = Path(file_path).resolve()
        relative = self.staging.relative_to_incoming(absolute)
        if relative in self._in_flight:
            logger.warning("File already in progress, skipping file=%s", relative)
            return False

        self._in_flight.add(relative)
        stage = FileStage.FETCHED
        logger.info("Processing started file=%s", relative)
        try:
            transcription = await self.transcoder.transcode(absolute)

            processed_audio = self.staging.stage_audio(absolute, relative)
            stage = FileStage.STAGED_AUDIO

            processed_transcript = self.staging.stage_transcript(transcription.transcript_path, relative)
            stage = FileStage.STAGED_TRANSCRIPT

            object_metadata = {
                "source_file": relative,
                "processed_at": transcription.metadata.processed_at,
            }
            upload = await self.archiver.archive(processed_audio, processed_transcript, object_metadata)
            stage = FileStage.ARCHIVED

            await self.recorder.record(
                PipelineRecord(
                    source=relative,
                    audio_url=upload.audio_url,
                    text_url=upload.text_url,
                    transcript=transcription.text,
                    metadata=transcription.metadata,
                    storage_keys=upload.storage_keys,
                )
            )
            stage = FileStage.RECORDED

            self.staging.cleanup(absolute)
            stage = FileStage.CLEANED
            logger.info("Processing completed file=%s", relative)
            return True
        except Exception as e:
            logger.error("Processing failed file=%s after_stage=%s: %s", relative, stage.value, e, exc_info=True)
            return False
        finally:
            self._in_flight.discard(relative)
