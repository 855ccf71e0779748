import mimetypes
from typing import BinaryIO, Optional

from services.http_client import HttpClient

OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAITranscriber:
    """Speech-to-text through the OpenAI audio transcription endpoint."""

    def __init__(self, api_key: str, model: str = "gpt-4o-transcribe", http: Optional[HttpClient] = None, base_url: str = OPENAI_BASE_URL):
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")
        self.api_key = api_key
        self.model = model
        self.http = http or HttpClient()
        self.url = f"{base_url.rstrip('/')}/audio/transcriptions"

    async def transcribe(self, audio: BinaryIO, filename: str) -> str:
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        resp = await self.http.post(
            self.url,
            data={"model": self.model},
            files={"file": (filename, audio, mime_type)},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        resp.raise_for_status()
        text = resp.json().get("text") or ""
        return text.strip()
