"""Collaborator interfaces used by the submission processors."""

from __future__ import annotations

from typing import Protocol


class IssueTracker(Protocol):
    """Issue being moderated on the ticket service."""

    def create_comment(self, body: str) -> None:
        """Post a comment on the issue."""

    def update(
        self,
        *,
        state: str | None = None,
        labels: list[str] | None = None,
        body: str | None = None,
    ) -> None:
        """Update issue fields; ``None`` fields are left untouched."""

    def lock(self) -> None:
        """Lock further discussion on the issue."""


class MarkerWriter(Protocol):
    """Signals the moderation outcome to the surrounding workflow."""

    def write(self, marker: str) -> None:
        """Write one outcome marker."""


class BuildService(Protocol):
    """Remote plugin builder."""

    async def build(self, endpoint: str, body: str) -> bytes:
        """POST ``body`` as text/plain to ``endpoint`` and return the archive bytes."""
