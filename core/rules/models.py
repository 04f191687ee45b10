"""Data models for setting catalogs, line rules, and classification results."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ValueKind = Literal["bool", "int", "float", "string", "choice"]
SubmissionOutcome = Literal["invalid", "edited", "accepted"]

_SETTING_NAME_RE = re.compile(r"[a-z][a-z0-9_]*")
_FUNCTION_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class SettingSpec(BaseModel):
    """One supported setting and the value syntax it accepts."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: ValueKind
    minimum: float | None = None
    maximum: float | None = None
    choices: dict[str, str] = Field(default_factory=dict)
    function: str | None = None

    @model_validator(mode="after")
    def _check_value_syntax(self) -> SettingSpec:
        if _SETTING_NAME_RE.fullmatch(self.name) is None:
            raise ValueError(f"invalid setting name: {self.name!r}")
        if self.function is not None and _FUNCTION_NAME_RE.fullmatch(self.function) is None:
            raise ValueError(f"invalid setter function for {self.name}: {self.function!r}")

        has_bounds = self.minimum is not None or self.maximum is not None
        if has_bounds and self.kind not in {"int", "float"}:
            raise ValueError(f"bounds are only allowed on numeric settings: {self.name}")
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError(f"minimum is greater than maximum: {self.name}")

        if self.kind == "choice" and not self.choices:
            raise ValueError(f"choice setting needs at least one choice: {self.name}")
        if self.kind != "choice" and self.choices:
            raise ValueError(f"choices are only allowed on choice settings: {self.name}")
        return self

    @property
    def setter(self) -> str:
        return self.function or f"vvctre_settings_set_{self.name}"


class SettingsCatalog(BaseModel):
    """Catalog of settings accepted in custom default settings requests."""

    model_config = ConfigDict(extra="forbid")

    flavor: str
    settings: list[SettingSpec]

    @model_validator(mode="after")
    def _check_unique_names(self) -> SettingsCatalog:
        seen: set[str] = set()
        for spec in self.settings:
            if spec.name in seen:
                raise ValueError(f"duplicate setting: {spec.name}")
            seen.add(spec.name)
        return self


class IniCatalog(BaseModel):
    """Catalog of sections and keys of the emulator INI configuration file."""

    model_config = ConfigDict(extra="forbid")

    flavor: str
    comment_prefix: str = "#"
    sections: dict[str, list[str]]


@dataclass(frozen=True)
class Extraction:
    """Structured data extracted from one recognized settings line."""

    name: str
    type: str
    call: str


@dataclass(frozen=True)
class Rule:
    """Full-line pattern for one recognized directive.

    ``value_type`` and ``call_template`` are only set when the rule set was
    built with extraction enabled.
    """

    name: str
    pattern: re.Pattern[str]
    minimum: float | None = None
    maximum: float | None = None
    value_type: str | None = None
    call_template: str | None = None
    render_argument: Callable[[str], str] | None = None

    def match(self, line: str) -> re.Match[str] | None:
        matched = self.pattern.fullmatch(line)
        if matched is None:
            return None
        if self.minimum is None and self.maximum is None:
            return matched

        value = float(matched.group("value"))
        if self.minimum is not None and value < self.minimum:
            return None
        if self.maximum is not None and value > self.maximum:
            return None
        return matched

    @property
    def extracts(self) -> bool:
        return self.value_type is not None and self.call_template is not None

    def extract(self, matched: re.Match[str]) -> Extraction:
        if self.value_type is None or self.call_template is None:
            raise ValueError(f"rule does not extract: {self.name}")
        raw_value = matched.group("value")
        argument = self.render_argument(raw_value) if self.render_argument else raw_value
        return Extraction(
            name=self.name,
            type=self.value_type,
            call=self.call_template.format(argument=argument),
        )


@dataclass(frozen=True)
class RuleSet:
    """Ordered rules; earlier rules take priority."""

    flavor: str
    rules: tuple[Rule, ...]
    extract: bool = False

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def names(self) -> list[str]:
        return [rule.name for rule in self.rules]


@dataclass
class ClassificationResult:
    """Partition of submitted lines.

    Rules:
    - every input line is in exactly one of ``kept`` / ``useless``
    - both lists keep the original relative order
    - ``extractions`` has one entry per kept line when extraction is enabled
    """

    kept: list[str] = field(default_factory=list)
    useless: list[str] = field(default_factory=list)
    extractions: list[Extraction] = field(default_factory=list)
