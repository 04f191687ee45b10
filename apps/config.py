"""Environment configuration shared by the CLI and the API."""

from __future__ import annotations

import os

DEFAULT_BUILD_URL = "https://pm13api.vvctre.dynv6.net:8439"
DEFAULT_DOCS_URL = "https://vvanelslande.github.io/vvctre/Custom-Default-Settings-Plugin-Request"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
_DEFAULT_MAX_TEXT_BYTES = 64 * 1024


def build_service_url() -> str:
    return _non_empty_env("PLUGIN_MAKER_BUILD_URL", DEFAULT_BUILD_URL).rstrip("/")


def documentation_url() -> str:
    return _non_empty_env("PLUGIN_MAKER_DOCS_URL", DEFAULT_DOCS_URL)


def github_api_url() -> str:
    return _non_empty_env("GITHUB_API_URL", DEFAULT_GITHUB_API_URL).rstrip("/")


def github_token() -> str | None:
    raw = os.getenv("GITHUB_TOKEN")
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def build_timeout_seconds() -> float | None:
    """Build-service timeout; unset or invalid means no timeout."""

    raw = os.getenv("PLUGIN_MAKER_BUILD_TIMEOUT_SECONDS")
    if raw is None:
        return None
    try:
        parsed = float(raw)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def max_text_bytes() -> int:
    raw = os.getenv("PLUGIN_MAKER_MAX_TEXT_BYTES")
    if raw is None:
        return _DEFAULT_MAX_TEXT_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_TEXT_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_TEXT_BYTES


def _non_empty_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()
