from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Union

from models.pipeline import StagedFile, StagedState, is_audio_file

logger = logging.getLogger("staging")

PathLike = Union[str, os.PathLike]


class StagingStore:
    """
    Local staging area keyed by relative path.

    <root>/incoming/<rel>   downloaded, not yet through the pipeline
    <root>/processed/<rel>  archived copy of the audio plus its .txt transcript

    A file is `incoming` while its incoming copy exists. Once the record is
    written the incoming copy is deleted and the file counts as `processed`.
    """

    def __init__(self, root: PathLike):
        self.root = Path(root).resolve()
        self.incoming_dir = self.root / "incoming"
        self.processed_dir = self.root / "processed"
        ensure_dir(self.incoming_dir)
        ensure_dir(self.processed_dir)

    # ---- path derivation ----
    def incoming_path(self, relative_path: str) -> Path:
        return self.incoming_dir.joinpath(*relative_path.split("/"))

    def processed_path(self, relative_path: str) -> Path:
        return self.processed_dir.joinpath(*relative_path.split("/"))

    def transcript_path(self, relative_path: str) -> Path:
        # keyed by stem: a.wav and a.mp3 in one folder share a.txt
        return self.processed_path(relative_path).with_suffix(".txt")

    def transcript_sharers(self, relative_path: str) -> List[str]:
        """Other processed audio files whose transcript path equals this one's."""
        own = self.processed_path(relative_path)
        if not own.parent.is_dir():
            return []
        return sorted(
            p.relative_to(self.processed_dir).as_posix()
            for p in own.parent.iterdir()
            if p.is_file() and p.stem == own.stem and p.name != own.name and is_audio_file(p.name)
        )

    def relative_to_incoming(self, local_path: PathLike) -> str:
        """Relative identity of a staged file; falls back to the basename."""
        absolute = Path(local_path).resolve()
        try:
            return absolute.relative_to(self.incoming_dir).as_posix()
        except ValueError:
            return absolute.name

    # ---- state ----
    def state(self, relative_path: str) -> Optional[StagedState]:
        if self.incoming_path(relative_path).exists():
            return StagedState.INCOMING
        if self.processed_path(relative_path).exists():
            return StagedState.PROCESSED
        return None

    def staged_file(self, relative_path: str) -> Optional[StagedFile]:
        state = self.state(relative_path)
        if state is None:
            return None
        local = self.incoming_path(relative_path) if state == StagedState.INCOMING else self.processed_path(relative_path)
        return StagedFile(relative_path=relative_path, local_path=str(local), state=state)

    def list_incoming(self) -> List[StagedFile]:
        staged: List[StagedFile] = []
        for dirpath, _, filenames in os.walk(self.incoming_dir):
            for name in sorted(filenames):
                if not is_audio_file(name):
                    continue
                path = Path(dirpath) / name
                staged.append(
                    StagedFile(
                        relative_path=self.relative_to_incoming(path),
                        local_path=str(path),
                        state=StagedState.INCOMING,
                    )
                )
        return sorted(staged, key=lambda s: s.relative_path)

    # ---- mutations ----
    def prepare_incoming(self, relative_path: str) -> Path:
        target = self.incoming_path(relative_path)
        ensure_dir(target.parent)
        return target

    def stage_audio(self, incoming_path: PathLike, relative_path: str) -> Path:
        """Copy the audio into processed/ unless already there."""
        target = self.processed_path(relative_path)
        ensure_dir(target.parent)
        if not target.exists():
            shutil.copy2(incoming_path, target)
        return target

    def stage_transcript(self, transcript_path: PathLike, relative_path: str) -> Path:
        """Move a transcript to processed/<rel>.txt, replacing any older copy."""
        target = self.transcript_path(relative_path)
        ensure_dir(target.parent)
        current = Path(transcript_path).resolve()
        if current != target:
            if target.exists():
                target.unlink()
            shutil.move(str(current), str(target))
        return target

    def cleanup(self, *paths: PathLike) -> None:
        remove_files(paths)


def ensure_dir(dir_path: PathLike) -> None:
    path = Path(dir_path)
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
        logger.debug("Created directory %s", path)


def remove_files(paths: Iterable[PathLike]) -> None:
    for p in paths:
        path = Path(p)
        if path.exists():
            path.unlink()
            logger.debug("Deleted file %s", path)
