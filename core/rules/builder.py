"""Rule table builder for custom default settings and INI line flavors.

Building a table only compiles patterns; nothing is evaluated until the
classifier runs the rules against submitted lines.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from core.rules.catalog_loader import load_ini_catalog, load_settings_catalog
from core.rules.models import IniCatalog, Rule, RuleSet, SettingsCatalog, SettingSpec

CUSTOM_DEFAULT_SETTINGS = "custom_default_settings"
SETTINGS_INI = "settings_ini"

_VALUE_PATTERNS: dict[str, str] = {
    "bool": r"true|false",
    "int": r"-?[0-9]+",
    "float": r"-?[0-9]+(?:\.[0-9]+)?",
    "string": r'"(?:[^"\\]|\\.)*"',
}

_C_TYPES: dict[str, str] = {
    "bool": "bool",
    "int": "int",
    "float": "float",
    "string": "const char*",
    "choice": "int",
}


def build_rule_set(catalog: SettingsCatalog, *, extract: bool = False) -> RuleSet:
    """Build the ordered rule set for a settings catalog.

    Args:
        catalog: Validated settings catalog. Catalog order is rule priority.
        extract: When True, every rule can produce an ``Extraction`` with the
            setting name, its C type and the setter call for the line.

    Returns:
        Immutable ``RuleSet``.
    """

    rules = tuple(_build_setting_rule(spec, extract=extract) for spec in catalog.settings)
    return RuleSet(flavor=catalog.flavor, rules=rules, extract=extract)


def build_ini_rule_set(catalog: IniCatalog) -> RuleSet:
    """Build the membership-only rule set for INI configuration lines."""

    rules: list[Rule] = [
        Rule(
            name=catalog.comment_prefix,
            pattern=re.compile(rf"{re.escape(catalog.comment_prefix)}.*"),
        )
    ]
    for section in catalog.sections:
        rules.append(Rule(name=f"[{section}]", pattern=re.compile(rf"\[{re.escape(section)}\]")))
    for keys in catalog.sections.values():
        for key in keys:
            rules.append(Rule(name=key, pattern=re.compile(rf"{re.escape(key)}\s*=.*", re.ASCII)))
    return RuleSet(flavor=catalog.flavor, rules=tuple(rules), extract=False)


def build_flavor_rules(flavor: str, *, extract: bool = False) -> RuleSet:
    """Build the rule set of a bundled flavor."""

    if flavor == CUSTOM_DEFAULT_SETTINGS:
        return build_rule_set(load_settings_catalog(), extract=extract)
    if flavor == SETTINGS_INI:
        if extract:
            raise ValueError(f"Flavor does not support extraction: {flavor}")
        return build_ini_rule_set(load_ini_catalog())
    raise ValueError(f"Unsupported flavor: {flavor}")


def list_supported_flavors() -> list[str]:
    """Return bundled flavor names in stable order."""

    return sorted({CUSTOM_DEFAULT_SETTINGS, SETTINGS_INI})


def _build_setting_rule(spec: SettingSpec, *, extract: bool) -> Rule:
    pattern = re.compile(
        rf"{re.escape(spec.name)}\s*=\s*(?P<value>{_value_pattern(spec)})", re.ASCII
    )
    if not extract:
        return Rule(
            name=spec.name,
            pattern=pattern,
            minimum=spec.minimum,
            maximum=spec.maximum,
        )

    return Rule(
        name=spec.name,
        pattern=pattern,
        minimum=spec.minimum,
        maximum=spec.maximum,
        value_type=_C_TYPES[spec.kind],
        call_template=f"{spec.setter}({{argument}});",
        render_argument=_argument_renderer(spec),
    )


def _value_pattern(spec: SettingSpec) -> str:
    if spec.kind == "choice":
        return "|".join(re.escape(token) for token in sorted(spec.choices))
    return _VALUE_PATTERNS[spec.kind]


def _argument_renderer(spec: SettingSpec) -> Callable[[str], str] | None:
    if spec.kind == "choice":
        choices = dict(spec.choices)
        return choices.__getitem__
    if spec.kind == "float":
        return _render_float_literal
    return None


def _render_float_literal(value: str) -> str:
    literal = value if "." in value else f"{value}.0"
    return f"{literal}f"
