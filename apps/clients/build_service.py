"""HTTP client for the remote plugin build service."""

from __future__ import annotations

import httpx

from core.utils.errors import TransportError


class HttpBuildService:
    """POST plugin requests as text/plain and return the archive bytes."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def build(self, endpoint: str, body: str) -> bytes:
        try:
            response = await self._client.post(
                endpoint,
                content=body.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"build service returned status {exc.response.status_code}",
                operation="build",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"build service request failed: {exc}", operation="build") from exc
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
