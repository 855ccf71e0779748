from __future__ import annotations

from typing import Any, Dict, Optional
import httpx


class HttpClient:
    """Shared async HTTP client; one connection pool for all OpenAI calls."""

    def __init__(self, timeout: float = 120.0, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def post(
        self,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        if json is not None:
            return await self._client.post(url, json=json, headers=headers)
        return await self._client.post(url, data=data, files=files, headers=headers)

    async def close(self):
        await self._client.aclose()
