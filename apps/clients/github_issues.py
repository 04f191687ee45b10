"""GitHub REST client for the issue being moderated."""

from __future__ import annotations

from typing import Any

import httpx

from core.utils.errors import TransportError

_ACCEPT = "application/vnd.github+json"


class GitHubIssueTracker:
    """Comment on, update, and lock one GitHub issue."""

    def __init__(
        self,
        *,
        owner: str,
        repo: str,
        issue_number: int,
        token: str,
        api_url: str = "https://api.github.com",
        client: httpx.Client | None = None,
    ) -> None:
        self._issue_path = f"/repos/{owner}/{repo}/issues/{issue_number}"
        self._client = client or httpx.Client(base_url=api_url)
        self._headers = {
            "Accept": _ACCEPT,
            "Authorization": f"Bearer {token}",
        }

    def create_comment(self, body: str) -> None:
        self._request("create_comment", "POST", f"{self._issue_path}/comments", {"body": body})

    def update(
        self,
        *,
        state: str | None = None,
        labels: list[str] | None = None,
        body: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if state is not None:
            payload["state"] = state
        if labels is not None:
            payload["labels"] = labels
        if body is not None:
            payload["body"] = body
        self._request("update", "PATCH", self._issue_path, payload)

    def lock(self) -> None:
        self._request("lock", "PUT", f"{self._issue_path}/lock", None)

    def close(self) -> None:
        self._client.close()

    def _request(
        self, operation: str, method: str, path: str, payload: dict[str, Any] | None
    ) -> None:
        try:
            response = self._client.request(method, path, headers=self._headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"GitHub {operation} failed with status {exc.response.status_code}",
                operation=operation,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"GitHub {operation} failed: {exc}",
                operation=operation,
            ) from exc
