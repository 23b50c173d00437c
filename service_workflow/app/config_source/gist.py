"""
GitHub gist configuration source.
"""

import json
from typing import Any, Dict, Optional

import httpx

from .base import ConfigSource, ConfigSourceError


class GistConfigSource(ConfigSource):
    """Reads JSON configuration documents from a single GitHub gist.

    The document called ``name`` is the gist file ``{name}.json``; when the
    gist has no such file the first file is used. Config is never retried.
    """

    name = "gist"

    def __init__(
        self,
        gist_id: str,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.gist_id = gist_id
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, name: str) -> Dict[str, Any]:
        url = f"{self.api_url}/gists/{self.gist_id}"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "AI-Workflow-Engine",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url, headers=headers)

        if response.status_code != 200:
            raise ConfigSourceError(f"gist fetch returned {response.status_code}")

        try:
            files = response.json().get("files") or {}
        except (ValueError, AttributeError) as e:
            raise ConfigSourceError(f"malformed gist payload: {e}")

        if not files:
            raise ConfigSourceError("gist has no files")

        gist_file = files.get(f"{name}.json") or next(iter(files.values()))
        content = gist_file.get("content") if isinstance(gist_file, dict) else None
        if content is None:
            raise ConfigSourceError("gist file has no content")

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigSourceError(f"gist file is not valid JSON: {e}")

        self.logger.debug("Loaded gist config", config_name=name, keys=sorted(document) if isinstance(document, dict) else None)
        return document
