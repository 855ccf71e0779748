from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from models.pipeline import TranscriptionMeta, TranscriptionResult, TranscriptionStatus
from services.capabilities import ReformattingCapability, TranscriptionCapability
from services.dialogue import looks_like_dialogue, split_two_speakers
from services.retry import RetryExecutor
from services.staging import StagingStore, ensure_dir

logger = logging.getLogger("transcribe_audio")


class Transcoder:
    """
    Audio -> two-speaker transcript.

    The transcript file is authoritative: when processed/<rel>.txt already
    exists its content is returned as `already-processed` and neither OpenAI
    call is made.

    Fallback chain for the final text:
      formatted dialogue (if it has a 'Speaker 1:'/'Speaker 2:' line)
      -> raw transcript (if non-empty)
      -> local sentence splitter over the raw transcript
    """

    def __init__(
        self,
        staging: StagingStore,
        transcriber: TranscriptionCapability,
        formatter: ReformattingCapability,
        retry: RetryExecutor,
    ):
        self.staging = staging
        self.transcriber = transcriber
        self.formatter = formatter
        self.retry = retry

    async def transcode(self, audio_path: Union[str, Path]) -> TranscriptionResult:
        audio_path = Path(audio_path)
        relative = self.staging.relative_to_incoming(audio_path)
        out_path = self.staging.transcript_path(relative)

        if out_path.exists():
            logger.info("Skip transcription - already processed file=%s", relative)
            sharers = self.staging.transcript_sharers(relative)
            if sharers:
                logger.warning("Reusing transcript %s written for file=%s", out_path.name, ", ".join(sharers))
            return TranscriptionResult(
                source_path=str(audio_path),
                transcript_path=str(out_path),
                text=out_path.read_text(encoding="utf-8"),
                metadata=TranscriptionMeta(status=TranscriptionStatus.ALREADY_PROCESSED),
            )

        logger.info("Transcribing audio file=%s", relative)
        try:
            raw = await self.retry.execute(
                lambda attempt: self._transcribe(audio_path),
                base_delay=2.0,
                task_name="openai.transcription",
            )
        except Exception as e:
            logger.error("Transcription failed file=%s: %s", relative, e)
            raise
        raw = (raw or "").strip()

        formatted = await self.format_dialogue(raw)
        if looks_like_dialogue(formatted):
            final = formatted
        elif raw:
            final = raw
        else:
            final = split_two_speakers(raw)

        ensure_dir(out_path.parent)
        out_path.write_text(final, encoding="utf-8")
        logger.info("Wrote transcript %s", out_path)

        return TranscriptionResult(
            source_path=str(audio_path),
            transcript_path=str(out_path),
            text=final,
            metadata=TranscriptionMeta(
                status=TranscriptionStatus.TRANSCRIBED,
                model=self.transcriber.model,
                formatter=self.formatter.model,
                processed_at=datetime.now(timezone.utc).isoformat(),
            ),
        )

    async def _transcribe(self, audio_path: Path) -> str:
        # fresh stream per attempt
        with open(audio_path, "rb") as f:
            return await self.transcriber.transcribe(f, audio_path.name)

    async def format_dialogue(self, raw: str) -> str:
        """Formatter output, or "" when the formatter keeps failing."""
        try:
            formatted = await self.retry.execute(
                lambda attempt: self.formatter.reformat(raw),
                base_delay=1.5,
                task_name="openai.formatDialogue",
            )
        except Exception as e:
            logger.warning("Dialogue formatting failed, falling back: %s", e)
            return ""
        return (formatted or "").strip()

    async def transcribe_pending(self) -> List[TranscriptionResult]:
        """Transcribe every staged incoming file without archiving it."""
        pending = self.staging.list_incoming()
        logger.info("Found %d audio files to transcribe", len(pending))
        results: List[TranscriptionResult] = []
        for staged in pending:
            try:
                results.append(await self.transcode(staged.local_path))
            except Exception:
                # already logged by transcode
                continue
        logger.info("Transcription run complete")
        return results
