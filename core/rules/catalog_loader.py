"""Catalog loading utilities for line rule tables."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.rules.models import IniCatalog, SettingsCatalog

_CATALOG_DIR = Path(__file__).resolve().parent


def default_catalog_path(flavor: str) -> Path:
    """Return the bundled catalog path for a flavor."""

    return _CATALOG_DIR / f"{flavor}.yaml"


def load_settings_catalog(path: Path | None = None) -> SettingsCatalog:
    """Load and validate the custom default settings catalog from YAML."""

    catalog_path = path or default_catalog_path("custom_default_settings")
    raw = _read_mapping(catalog_path)
    try:
        return SettingsCatalog.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings catalog schema: {catalog_path}: {exc}") from exc


def load_ini_catalog(path: Path | None = None) -> IniCatalog:
    """Load and validate the INI sections catalog from YAML."""

    catalog_path = path or default_catalog_path("settings_ini")
    raw = _read_mapping(catalog_path)
    try:
        return IniCatalog.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid INI catalog schema: {catalog_path}: {exc}") from exc


def _read_mapping(catalog_path: Path) -> dict[object, object]:
    try:
        raw = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Catalog file not found: {catalog_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in catalog file: {catalog_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Catalog file must contain a mapping: {catalog_path}")
    return raw
