"""Custom exceptions for core logic."""

from __future__ import annotations


class NoValidLinesError(Exception):
    """Raised when a settings submission has no recognized line left."""

    def __init__(self, message: str, *, useless_lines: list[str] | None = None) -> None:
        super().__init__(message)
        self.useless_lines = list(useless_lines or [])


class TransportError(Exception):
    """Raised when a call to an external service fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
