"""Remote configuration store reached over HTTP."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpConfigStore:
    """PATCHes ``{"label_config": document}`` to the project endpoint.

    Any 2xx response counts as saved.  PATCH with the same body is
    idempotent on the server side.
    """

    def __init__(
        self,
        base_url: str,
        project_id: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/api/projects/{project_id}"
        self.timeout = timeout
        self._client = client

    async def save(self, document: str) -> bool:
        payload = {"label_config": document}
        if self._client is not None:
            response = await self._client.patch(self.url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.patch(self.url, json=payload)
        if response.is_success:
            return True
        logger.warning("Config store %s answered HTTP %d", self.url, response.status_code)
        return False
