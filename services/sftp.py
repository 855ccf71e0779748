from __future__ import annotations

import logging
import stat
from typing import List, Optional

import asyncssh

from models.pipeline import EntryKind, RemoteItem

logger = logging.getLogger("sftp")


class SftpSession:
    def __init__(self, conn: asyncssh.SSHClientConnection, client: asyncssh.SFTPClient):
        self._conn = conn
        self._client = client

    async def list(self, path: str) -> List[RemoteItem]:
        items: List[RemoteItem] = []
        for entry in await self._client.readdir(path):
            if entry.filename in (".", ".."):
                continue
            mode = entry.attrs.permissions or 0
            if stat.S_ISDIR(mode):
                items.append(RemoteItem(name=entry.filename, kind=EntryKind.DIRECTORY))
            elif stat.S_ISREG(mode):
                items.append(RemoteItem(name=entry.filename, kind=EntryKind.FILE))
        return items

    async def download(self, remote_path: str, local_path: str) -> None:
        await self._client.get(remote_path, local_path)

    async def close(self) -> None:
        self._client.exit()
        self._conn.close()
        await self._conn.wait_closed()


class SftpTransport:
    """
    SFTP adapter over asyncssh, authenticated with username/password.

    known_hosts is a known_hosts file path checked against the server key.
    Without it host keys are not verified and a warning is logged.
    """

    def __init__(self, host: str, port: int, username: str, password: str, known_hosts: Optional[str] = None):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.known_hosts = known_hosts

    async def connect(self) -> SftpSession:
        if not self.known_hosts:
            logger.warning("SFTP host key verification disabled host=%s", self.host)
        logger.info("Connecting to SFTP host=%s port=%s", self.host, self.port)
        conn = await asyncssh.connect(
            self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            known_hosts=self.known_hosts,
        )
        try:
            client = await conn.start_sftp_client()
        except Exception:
            conn.close()
            raise
        logger.info("Connected to SFTP host=%s", self.host)
        return SftpSession(conn, client)
