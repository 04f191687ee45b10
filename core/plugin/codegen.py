"""Render the C source of a custom default settings plugin."""

from __future__ import annotations

from core.rules.models import Extraction

_HEADER = """\
#include <stdbool.h>
#include <stdint.h>

#ifdef _WIN32
#define VVCTRE_PLUGIN_EXPORT __declspec(dllexport)
#else
#define VVCTRE_PLUGIN_EXPORT
#endif
"""


def render_plugin_source(extractions: list[Extraction]) -> str:
    """Render a plugin applying every extracted setter call at startup.

    Each setter is declared and requested once, in first-use order. Calls
    run inside ``InitialSettingsOpening`` in submission order.
    """

    setters: dict[str, str] = {}
    for extraction in extractions:
        setters.setdefault(_setter_name(extraction), extraction.type)

    lines = [_HEADER]
    lines.append(f"static const char* required_function_names[] = {{{_name_list(setters)}}};")
    lines.append("")
    for setter, value_type in setters.items():
        lines.append(f"typedef void (*{setter}_t)({value_type} value);")
        lines.append(f"static {setter}_t {setter};")
    if setters:
        lines.append("")

    lines.append("VVCTRE_PLUGIN_EXPORT int GetRequiredFunctionCount() {")
    lines.append(f"    return {len(setters)};")
    lines.append("}")
    lines.append("")
    lines.append("VVCTRE_PLUGIN_EXPORT const char** GetRequiredFunctionNames() {")
    lines.append("    return required_function_names;")
    lines.append("}")
    lines.append("")
    lines.append(
        "VVCTRE_PLUGIN_EXPORT void PluginLoaded(void* core, void* plugin_manager,"
        " void* required_functions[]) {"
    )
    for index, setter in enumerate(setters):
        lines.append(f"    {setter} = ({setter}_t)required_functions[{index}];")
    lines.append("}")
    lines.append("")
    lines.append("VVCTRE_PLUGIN_EXPORT void InitialSettingsOpening() {")
    for extraction in extractions:
        lines.append(f"    {extraction.call}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _setter_name(extraction: Extraction) -> str:
    name, separator, _rest = extraction.call.partition("(")
    if not separator:
        raise ValueError(f"Extraction call is not a function call: {extraction.call!r}")
    return name


def _name_list(setters: dict[str, str]) -> str:
    if not setters:
        return "NULL"
    return ", ".join(f'"{setter}"' for setter in setters)
