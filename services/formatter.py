from typing import Optional

from services.http_client import HttpClient
from services.whisper import OPENAI_BASE_URL

SYSTEM_PROMPT = "Format into a clean two-person dialogue."


class OpenAIDialogueFormatter:
    """Rewrites a raw transcript as a 'Speaker 1' / 'Speaker 2' dialogue via chat completions."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", http: Optional[HttpClient] = None, base_url: str = OPENAI_BASE_URL):
        self.api_key = api_key
        self.model = model
        self.http = http or HttpClient()
        self.url = f"{base_url.rstrip('/')}/chat/completions"

    async def reformat(self, raw_text: str) -> str:
        data = {
            "model": self.model,
            "temperature": 0,
            "max_tokens": 4096,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        "Format this transcript into exactly two speakers, labeled 'Speaker 1' and 'Speaker 2'.\n"
                        f"Transcript:\n{raw_text}"
                    ),
                },
            ],
        }
        resp = await self.http.post(
            self.url,
            json=data,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )
        resp.raise_for_status()
        choices = resp.json().get("choices") or []
        if not choices:
            return ""
        content = (choices[0].get("message") or {}).get("content") or ""
        return content.strip()
