import pytest

from services.retry import RetryExecutor
from services.staging import StagingStore


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FakeTranscriber:
    model = "fake-transcribe"

    def __init__(self, text="Hello there. How are you?", fail_names=()):
        self.text = text
        self.fail_names = set(fail_names)
        self.calls = []

    async def transcribe(self, audio, filename):
        self.calls.append(filename)
        audio.read()
        if filename in self.fail_names:
            raise RuntimeError(f"transcription unavailable for {filename}")
        return self.text


class FakeFormatter:
    model = "fake-format"

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    async def reformat(self, raw_text):
        self.calls += 1
        if self.error:
            raise self.error
        if self.result is None:
            return "\n".join(
                f"Speaker {i % 2 + 1}: {line}" for i, line in enumerate(raw_text.split(". ")) if line
            )
        return self.result


class FakeObjectStore:
    def __init__(self, failures=0):
        self.objects = {}
        self.calls = []
        self.failures = failures

    async def put(self, bucket, key, body, *, content_type, metadata=None, acl="private"):
        self.calls.append(key)
        if self.failures:
            self.failures -= 1
            raise ConnectionError("upload interrupted")
        self.objects[(bucket, key)] = {
            "body": body.read(),
            "content_type": content_type,
            "metadata": metadata,
            "acl": acl,
        }


class FakeMetadataStore:
    def __init__(self, failures=0):
        self.records = {}
        self.inserts = 0
        self.failures = failures
        self.closed = False

    async def insert(self, record, record_id):
        self.inserts += 1
        if self.failures:
            self.failures -= 1
            raise ConnectionError("store unavailable")
        key = f"calls:{record_id}"
        self.records[key] = record
        return key

    async def close(self):
        self.closed = True


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def retry(sleep):
    return RetryExecutor(attempts=2, sleep=sleep)


@pytest.fixture
def staging(tmp_path):
    return StagingStore(tmp_path / "staging")


@pytest.fixture
def inbox(tmp_path):
    folder = tmp_path / "inbox"
    folder.mkdir()
    return folder
