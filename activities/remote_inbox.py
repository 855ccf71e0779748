from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from models.pipeline import EntryKind, RemoteEntry, StagedState, is_audio_file
from services.capabilities import RemoteSession, RemoteTransport
from services.retry import RetryExecutor
from services.staging import StagingStore

logger = logging.getLogger("remote_inbox")


class RemoteSource:
    """
    Lists audio files below a remote root and stages new ones locally.

    One connection is held for a whole batch and always released, a close
    failure is logged and never raised.
    """

    def __init__(self, transport: RemoteTransport, staging: StagingStore, retry: RetryExecutor, cap: Optional[int] = None):
        self.transport = transport
        self.staging = staging
        self.retry = retry
        self.cap = cap

    async def _connect(self) -> RemoteSession:
        return await self.retry.execute(
            lambda attempt: self.transport.connect(),
            base_delay=1.0,
            task_name="remote.connect",
        )

    async def _close(self, session: RemoteSession) -> None:
        try:
            await session.close()
            logger.info("Disconnected from remote")
        except Exception as e:
            logger.warning("Failed to close remote connection cleanly: %s", e)

    async def _list_dir(self, session: RemoteSession, path: str):
        return await self.retry.execute(
            lambda attempt: session.list(path),
            base_delay=0.75,
            task_name="remote.list",
        )

    async def _walk(self, session: RemoteSession, root: str) -> List[RemoteEntry]:
        # explicit stack, same pre-order as a recursive walk
        found: List[RemoteEntry] = []
        stack: List[Tuple[str, Iterator]] = [(root, iter(await self._list_dir(session, root)))]
        while stack:
            dir_path, entries = stack[-1]
            item = next(entries, None)
            if item is None:
                stack.pop()
                continue
            if item.name in (".", ".."):
                continue
            entry_path = posixpath.join(dir_path, item.name)
            if item.kind == EntryKind.DIRECTORY:
                stack.append((entry_path, iter(await self._list_dir(session, entry_path))))
            elif is_audio_file(item.name):
                found.append(RemoteEntry(path=entry_path))
        return found

    async def list_tree(self, root: str) -> List[RemoteEntry]:
        session = await self._connect()
        try:
            return await self._walk(session, root)
        finally:
            await self._close(session)

    async def fetch_batch(self, root: str, cap: Optional[int] = None) -> List[Path]:
        """
        Stage up to `cap` unprocessed audio files from the remote tree.
        Returns local incoming paths: fresh downloads plus files already
        staged by an earlier, unfinished run. Connect/list failures raise.
        """
        cap = cap if cap is not None else self.cap
        session = await self._connect()
        staged: List[Path] = []
        try:
            entries = await self._walk(session, root)
            logger.info("Discovered %d audio files under %s", len(entries), root)

            pending = []
            for entry in entries:
                relative = posixpath.relpath(entry.path, root)
                if self.staging.state(relative) == StagedState.PROCESSED:
                    logger.debug("Skipping processed file %s", relative)
                    continue
                pending.append((entry, relative))

            if cap and cap > 0 and len(pending) > cap:
                logger.warning("Limiting remote fetch to %d of %d files", cap, len(pending))
                pending = pending[:cap]

            for entry, relative in pending:
                local_file = self.staging.prepare_incoming(relative)
                if local_file.exists():
                    logger.info("Skipping download of existing local file %s", relative)
                    staged.append(local_file)
                    continue
                try:
                    logger.info("Downloading %s", relative)
                    await self.retry.execute(
                        lambda attempt, e=entry, lf=local_file: self._download(session, e.path, lf, attempt),
                        base_delay=1.0,
                        task_name="remote.download",
                    )
                    logger.info("Downloaded %s", relative)
                    staged.append(local_file)
                except Exception as e:
                    logger.error("Failed to download file=%s: %s", relative, e, exc_info=True)
        finally:
            await self._close(session)
        return staged

    async def _download(self, session: RemoteSession, remote_path: str, local_file: Path, attempt: int) -> None:
        if attempt > 1 and local_file.exists():
            local_file.unlink()
        try:
            await session.download(remote_path, str(local_file))
        except Exception:
            # a partial file must not survive as a staged copy
            if local_file.exists():
                local_file.unlink()
            raise
