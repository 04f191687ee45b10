"""CLI I/O helpers for event loading and atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class IssueEvent:
    """Fields of a GitHub ``issues`` webhook event used by moderation."""

    owner: str
    repo: str
    issue_number: int
    body: str


def load_issue_event(path: Path) -> IssueEvent:
    """Load the issue event payload written by the workflow runner."""

    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Event JSON must be an object")

    issue = raw.get("issue")
    repository = raw.get("repository")
    if not isinstance(issue, dict) or not isinstance(repository, dict):
        raise ValueError("Event JSON must contain issue and repository objects")

    owner = repository.get("owner")
    owner_login = owner.get("login") if isinstance(owner, dict) else None
    repo_name = repository.get("name")
    number = issue.get("number")
    if not isinstance(owner_login, str) or not isinstance(repo_name, str):
        raise ValueError("Event repository must have owner.login and name")
    if not isinstance(number, int):
        raise ValueError("Event issue must have an integer number")

    body = issue.get("body")
    return IssueEvent(
        owner=owner_login,
        repo=repo_name,
        issue_number=number,
        body=body if isinstance(body, str) else "",
    )


class FileMarkerWriter:
    """Write outcome markers as empty files named after the marker."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def path_for(self, marker: str) -> Path:
        return self._directory / marker

    def write(self, marker: str) -> None:
        write_bytes_atomic(self.path_for(marker), b"")


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Write bytes atomically using a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)

    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise


def write_text_atomic(path: Path, text: str) -> None:
    write_bytes_atomic(path, text.encode("utf-8"))


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write a JSON report atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)
