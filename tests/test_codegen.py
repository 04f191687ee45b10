from __future__ import annotations

import pytest

from core.plugin.codegen import render_plugin_source
from core.rules.models import Extraction


def test_render_plugin_source_declares_each_setter_once() -> None:
    source = render_plugin_source(
        [
            Extraction(name="use_cpu_jit", type="bool", call="vvctre_settings_set_use_cpu_jit(false);"),
            Extraction(name="audio_volume", type="float", call="vvctre_settings_set_audio_volume(0.5f);"),
            Extraction(name="use_cpu_jit", type="bool", call="vvctre_settings_set_use_cpu_jit(true);"),
        ]
    )

    assert (
        'static const char* required_function_names[] = '
        '{"vvctre_settings_set_use_cpu_jit", "vvctre_settings_set_audio_volume"};'
    ) in source
    assert source.count("typedef void (*vvctre_settings_set_use_cpu_jit_t)(bool value);") == 1
    assert "typedef void (*vvctre_settings_set_audio_volume_t)(float value);" in source
    assert "    return 2;" in source
    assert (
        "    vvctre_settings_set_audio_volume = "
        "(vvctre_settings_set_audio_volume_t)required_functions[1];"
    ) in source


def test_render_plugin_source_keeps_call_order() -> None:
    source = render_plugin_source(
        [
            Extraction(name="a", type="int", call="set_a(1);"),
            Extraction(name="b", type="int", call="set_b(2);"),
            Extraction(name="a", type="int", call="set_a(3);"),
        ]
    )
    body = source.split("VVCTRE_PLUGIN_EXPORT void InitialSettingsOpening() {\n", 1)[1]

    assert body == "    set_a(1);\n    set_b(2);\n    set_a(3);\n}\n"


def test_render_plugin_source_without_extractions() -> None:
    source = render_plugin_source([])

    assert "static const char* required_function_names[] = {NULL};" in source
    assert "    return 0;" in source
    assert source.endswith("VVCTRE_PLUGIN_EXPORT void InitialSettingsOpening() {\n}\n")


def test_render_plugin_source_rejects_non_call() -> None:
    with pytest.raises(ValueError, match="not a function call"):
        render_plugin_source([Extraction(name="a", type="int", call="a = 1;")])
