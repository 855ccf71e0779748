import asyncio
import stat
from types import SimpleNamespace

import asyncssh

from models.pipeline import EntryKind
from services import sftp
from services.sftp import SftpSession, SftpTransport


def entry(name, mode):
    return SimpleNamespace(filename=name, attrs=SimpleNamespace(permissions=mode))


class FakeSftpClient:
    def __init__(self, entries):
        self.entries = entries
        self.gets = []
        self.exited = False

    async def readdir(self, path):
        return self.entries

    async def get(self, remote_path, local_path):
        self.gets.append((remote_path, local_path))

    def exit(self):
        self.exited = True


class FakeConnection:
    def __init__(self, client):
        self.client = client
        self.closed = False

    async def start_sftp_client(self):
        return self.client

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


def test_list_maps_kinds_and_skips_specials():
    client = FakeSftpClient(
        [
            entry(".", stat.S_IFDIR | 0o755),
            entry("..", stat.S_IFDIR | 0o755),
            entry("2024", stat.S_IFDIR | 0o755),
            entry("call.wav", stat.S_IFREG | 0o644),
            entry("latest", stat.S_IFLNK | 0o777),
            entry("unknown", None),
        ]
    )
    session = SftpSession(FakeConnection(client), client)

    items = asyncio.run(session.list("/recordings"))

    assert [(i.name, i.kind) for i in items] == [
        ("2024", EntryKind.DIRECTORY),
        ("call.wav", EntryKind.FILE),
    ]


def test_download_and_close():
    client = FakeSftpClient([])
    conn = FakeConnection(client)
    session = SftpSession(conn, client)

    async def scenario():
        await session.download("/r/a.wav", "/tmp/a.wav")
        await session.close()

    asyncio.run(scenario())

    assert client.gets == [("/r/a.wav", "/tmp/a.wav")]
    assert client.exited and conn.closed


def test_connect_passes_known_hosts(monkeypatch):
    calls = []
    client = FakeSftpClient([])

    async def fake_connect(host, **kwargs):
        calls.append((host, kwargs))
        return FakeConnection(client)

    monkeypatch.setattr(asyncssh, "connect", fake_connect)
    transport = SftpTransport("sftp.example.com", 2222, "calls", "secret", known_hosts="/etc/ssh/known_hosts")

    session = asyncio.run(transport.connect())

    assert isinstance(session, SftpSession)
    host, kwargs = calls[0]
    assert host == "sftp.example.com"
    assert kwargs == {
        "port": 2222,
        "username": "calls",
        "password": "secret",
        "known_hosts": "/etc/ssh/known_hosts",
    }


def test_connect_without_known_hosts_warns(monkeypatch, caplog):
    async def fake_connect(host, **kwargs):
        return FakeConnection(FakeSftpClient([]))

    monkeypatch.setattr(sftp.asyncssh, "connect", fake_connect)

    asyncio.run(SftpTransport("h", 22, "u", "p").connect())

    assert "host key verification disabled" in caplog.text
