import asyncio
import os
import shutil
from typing import List
from models.pipeline import EntryKind, RemoteItem


class LocalInboxSession:
    """Offline-mode stand-in for a remote session; paths are '/'-separated below the inbox folder."""

    def __init__(self, folder: str):
        self.folder = folder

    def _local(self, path: str) -> str:
        return os.path.join(self.folder, *[p for p in path.split("/") if p])

    async def list(self, path: str) -> List[RemoteItem]:
        return await asyncio.to_thread(self._list, path)

    def _list(self, path: str) -> List[RemoteItem]:
        items = []
        for name in sorted(os.listdir(self._local(path))):
            full = self._local(f"{path}/{name}")
            if os.path.isdir(full):
                items.append(RemoteItem(name=name, kind=EntryKind.DIRECTORY))
            elif os.path.isfile(full):
                items.append(RemoteItem(name=name, kind=EntryKind.FILE))
        return items

    async def download(self, remote_path: str, local_path: str) -> None:
        # copy keeps parity with a remote download; the inbox is left untouched
        await asyncio.to_thread(shutil.copy2, self._local(remote_path), local_path)

    async def close(self) -> None:
        return None


class LocalInboxTransport:
    def __init__(self, folder: str):
        self.folder = folder

    async def connect(self) -> LocalInboxSession:
        os.makedirs(self.folder, exist_ok=True)
        return LocalInboxSession(self.folder)
