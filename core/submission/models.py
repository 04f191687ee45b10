"""Models for plugin requests, builds, and moderation results."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.rules.models import ClassificationResult, Extraction, SubmissionOutcome

RequestType = Literal[
    "custom_default_settings",
    "button_to_touch",
    "window_size",
    "window_position",
    "log_file",
]
Marker = Literal["invalid", "edited"]

PLUGIN_FILE_NAME = "plugin.zip"


class CustomDefaultSettingsPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lines: str


class ButtonToTouchPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: int
    y: int
    params: str


class WindowSizePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    width: int = Field(ge=1)
    height: int = Field(ge=1)


class WindowPositionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: int
    y: int


class LogFilePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file_path: str = Field(min_length=1)


REQUEST_PAYLOAD_SCHEMAS: Mapping[str, type[BaseModel]] = MappingProxyType(
    {
        "custom_default_settings": CustomDefaultSettingsPayload,
        "button_to_touch": ButtonToTouchPayload,
        "window_size": WindowSizePayload,
        "window_position": WindowPositionPayload,
        "log_file": LogFilePayload,
    }
)

REQUEST_ENDPOINTS: Mapping[str, str] = MappingProxyType(
    {
        "custom_default_settings": "/custom-default-settings",
        "button_to_touch": "/button-to-touch",
        "window_size": "/window-size",
        "window_position": "/window-position",
        "log_file": "/log-file",
    }
)

_JSON_BODY_REQUEST_TYPES = frozenset({"button_to_touch", "window_size", "window_position"})


def supported_request_types() -> list[str]:
    """Return supported plugin request types in stable order."""

    return sorted(REQUEST_PAYLOAD_SCHEMAS)


def visible_fields(request_type: str) -> list[str]:
    """Return the form fields shown for a request type, in declaration order."""

    try:
        payload_model = REQUEST_PAYLOAD_SCHEMAS[request_type]
    except KeyError as exc:
        raise ValueError(f"Unsupported request type: {request_type}") from exc
    return list(payload_model.model_fields)


class PluginRequest(BaseModel):
    """One plugin-maker form submission."""

    model_config = ConfigDict(extra="forbid")

    request_type: RequestType
    payload: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_payload(self) -> PluginRequest:
        payload_model = REQUEST_PAYLOAD_SCHEMAS[self.request_type]
        try:
            validated = payload_model.model_validate(self.payload)
        except ValidationError as exc:
            raise ValueError(f"invalid payload for {self.request_type}: {exc}") from exc
        self.payload = validated.model_dump()
        return self

    @property
    def endpoint(self) -> str:
        return REQUEST_ENDPOINTS[self.request_type]

    def body(self) -> str:
        """Render the text/plain body sent for non-settings request types."""

        if self.request_type in _JSON_BODY_REQUEST_TYPES:
            return json.dumps(self.payload, ensure_ascii=False, separators=(",", ":"))
        if self.request_type == "log_file":
            return str(self.payload["file_path"])
        return str(self.payload["lines"])


@dataclass(frozen=True)
class NormalizedSettings:
    """Settings text reduced to its recognized lines."""

    classification: ClassificationResult
    text: str


@dataclass
class PluginBuild:
    """Archive returned by the build service for one request."""

    request_type: str
    archive: bytes
    file_name: str = PLUGIN_FILE_NAME
    normalized_text: str | None = None
    extractions: list[Extraction] = field(default_factory=list)


@dataclass
class ModerationResult:
    """Decision taken for one moderated issue body."""

    outcome: SubmissionOutcome
    classification: ClassificationResult
    marker: Marker | None = None
