from __future__ import annotations

import httpx
import pytest

from apps.api.main import app
from core.rules.builder import CUSTOM_DEFAULT_SETTINGS, build_flavor_rules


@pytest.mark.anyio
async def test_healthz_ok_with_request_id() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Plugin-Maker-Request-Id"]


@pytest.mark.anyio
async def test_meta_lists_request_types_and_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLUGIN_MAKER_DOCS_URL", "https://docs.test/request")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/v1/meta")

    assert response.status_code == 200
    payload = response.json()
    assert payload["request_types"]["button_to_touch"] == {
        "fields": ["x", "y", "params"],
        "endpoint": "/button-to-touch",
    }
    assert payload["request_types"]["log_file"]["fields"] == ["file_path"]
    assert payload["flavors"] == ["custom_default_settings", "settings_ini"]
    assert "use_cpu_jit" in payload["settings"]
    assert payload["documentation_url"] == "https://docs.test/request"
    assert payload["version"] == "0.1.0"
    assert isinstance(payload["build"]["version"], str)


@pytest.mark.anyio
async def test_meta_lists_settings_in_rule_priority_order() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/v1/meta")

    settings = response.json()["settings"]
    assert settings == build_flavor_rules(CUSTOM_DEFAULT_SETTINGS).names()
    assert settings[0] == "use_cpu_jit"
