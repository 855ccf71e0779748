from __future__ import annotations

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from activities.archive_recording import Archiver
from activities.record_metadata import Recorder
from activities.remote_inbox import RemoteSource
from activities.transcribe_audio import Transcoder
from models.pipeline import PipelineRunReport
from services.config import ConfigurationError, Settings, load_settings
from services.formatter import OpenAIDialogueFormatter
from services.http_client import HttpClient
from services.local_inbox import LocalInboxTransport
from services.object_store import SpacesObjectStore
from services.retry import RetryExecutor
from services.sftp import SftpTransport
from services.staging import StagingStore
from services.state_store import DaprMetadataStore
from services.whisper import OpenAITranscriber
from workflows.pipeline import PipelineOrchestrator

logger = logging.getLogger("workflow")


def configure_logging(level_name: Optional[str] = None) -> None:
    level = (level_name or os.getenv("DAPR_LOG_LEVEL", "info")).upper()
    # Ensure a root handler exists so all module loggers emit to console
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))


@dataclass
class PipelineResources:
    orchestrator: PipelineOrchestrator
    http: HttpClient
    metadata_store: DaprMetadataStore

    async def close(self) -> None:
        try:
            await self.http.close()
        except Exception as e:
            logger.warning("Failed to close HTTP client: %s", e)
        try:
            await self.metadata_store.close()
        except Exception as e:
            logger.warning("Failed to close metadata store: %s", e)


def build_pipeline(settings: Settings) -> PipelineResources:
    """Wire every component from validated settings (no network I/O yet)."""
    retry = RetryExecutor(attempts=settings.retry_attempts)
    staging = StagingStore(settings.staging_dir)

    if settings.offline_mode:
        transport = LocalInboxTransport(settings.local_inbox)
    else:
        transport = SftpTransport(
            host=settings.sftp_host,
            port=settings.sftp_port,
            username=settings.sftp_user,
            password=settings.sftp_pass,
            known_hosts=settings.sftp_known_hosts,
        )
    source = RemoteSource(transport, staging, retry, cap=settings.sftp_max_files)

    http = HttpClient()
    transcoder = Transcoder(
        staging,
        OpenAITranscriber(settings.openai_api_key, settings.transcribe_model, http, settings.openai_base_url),
        OpenAIDialogueFormatter(settings.openai_api_key, settings.format_model, http, settings.openai_base_url),
        retry,
    )

    object_store = SpacesObjectStore(
        settings.spaces_key,
        settings.spaces_secret,
        settings.spaces_region,
        settings.endpoint,
    )
    archiver = Archiver(
        object_store,
        staging.processed_dir,
        settings.spaces_bucket,
        object_store.endpoint,
        retry,
        prefix=settings.spaces_prefix,
    )

    metadata_store = DaprMetadataStore(
        store_name=settings.state_store_name,
        collection=settings.collection_name,
        address=settings.metadata_store_uri,
    )
    recorder = Recorder(metadata_store, retry)

    orchestrator = PipelineOrchestrator(
        source,
        transcoder,
        archiver,
        recorder,
        staging,
        remote_root=settings.remote_root,
        max_files=settings.pipeline_max_files,
        concurrency=settings.pipeline_concurrency,
    )
    return PipelineResources(orchestrator=orchestrator, http=http, metadata_store=metadata_store)


async def run(settings: Settings) -> Optional[PipelineRunReport]:
    resources = build_pipeline(settings)
    report = None
    try:
        while True:
            report = await resources.orchestrator.run()
            if settings.poll_interval <= 0:
                break
            logger.info("Next pipeline run in %ds", settings.poll_interval)
            await asyncio.sleep(settings.poll_interval)
    finally:
        await resources.close()
    return report


def main() -> int:
    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical("Environment validation failed: %s", e.field_errors)
        return 1
    configure_logging(settings.log_level)
    logger.info("Starting pipeline worker (mode=%s)", "offline" if settings.offline_mode else "sftp")

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Stopping...")
    except Exception:
        logger.critical("Unhandled pipeline error", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    if os.getenv("DEBUGPY_ENABLE", "0") == "1":
        import debugpy
        debugpy.listen(("0.0.0.0", 5678))
        print("debugpy: Waiting for debugger attach on port 5678...")
        debugpy.wait_for_client()

    sys.exit(main())
