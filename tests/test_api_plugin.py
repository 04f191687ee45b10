from __future__ import annotations

import json
import logging

import httpx
import pytest

import apps.api.main as api_main
from apps.api.main import app
from core.submission.interactive import PluginMaker
from core.submission.models import PluginBuild, PluginRequest
from core.utils.errors import TransportError


class _FakeBuildService:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self._error = error

    async def build(self, endpoint: str, body: str) -> bytes:
        self.calls.append((endpoint, body))
        if self._error is not None:
            raise self._error
        return b"PK\x03\x04plugin"


class _BusyMaker:
    async def make_plugin(self, request: PluginRequest) -> PluginBuild | None:
        return None


def _use_maker(monkeypatch: pytest.MonkeyPatch, maker: object) -> None:
    monkeypatch.setattr(api_main, "_get_plugin_maker", lambda: maker)


async def _post(payload: object) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.post("/v1/plugin", json=payload)


@pytest.mark.anyio
async def test_plugin_returns_archive_for_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _FakeBuildService()
    _use_maker(monkeypatch, PluginMaker(service))

    response = await _post(
        {
            "request_type": "custom_default_settings",
            "payload": {"lines": "use_cpu_jit = true\nwhat\nspeed_limit = 80"},
        }
    )

    assert response.status_code == 200
    assert response.content == b"PK\x03\x04plugin"
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"] == 'attachment; filename="plugin.zip"'
    assert response.headers["X-Plugin-Maker-Kept-Lines"] == "2"
    assert response.headers["X-Plugin-Maker-Request-Id"]
    assert service.calls == [("/custom-default-settings", "use_cpu_jit = true\nspeed_limit = 80")]


@pytest.mark.anyio
async def test_plugin_forwards_button_to_touch_as_json(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _FakeBuildService()
    _use_maker(monkeypatch, PluginMaker(service))

    response = await _post(
        {
            "request_type": "button_to_touch",
            "payload": {"x": 160, "y": 120, "params": "engine:keyboard,code:90"},
        }
    )

    assert response.status_code == 200
    assert "X-Plugin-Maker-Kept-Lines" not in response.headers
    endpoint, body = service.calls[0]
    assert endpoint == "/button-to-touch"
    assert json.loads(body) == {"x": 160, "y": 120, "params": "engine:keyboard,code:90"}


@pytest.mark.anyio
async def test_plugin_without_valid_lines_returns_400(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _FakeBuildService()
    _use_maker(monkeypatch, PluginMaker(service))

    response = await _post(
        {"request_type": "custom_default_settings", "payload": {"lines": "a\nb"}}
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["error_code"] == "NO_VALID_LINES"
    assert payload["message"] == "All the lines are invalid or the lines input is empty"
    assert payload["detail"]["useless_count"] == 2
    assert service.calls == []


@pytest.mark.anyio
async def test_plugin_returns_429_when_busy(monkeypatch: pytest.MonkeyPatch) -> None:
    _use_maker(monkeypatch, _BusyMaker())

    response = await _post({"request_type": "window_size", "payload": {"width": 1, "height": 1}})

    assert response.status_code == 429
    assert response.json()["error_code"] == "BUSY"


@pytest.mark.anyio
async def test_plugin_maps_transport_error_to_502(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _FakeBuildService(
        error=TransportError("build service returned status 500", operation="build", status_code=500)
    )
    _use_maker(monkeypatch, PluginMaker(service))

    response = await _post({"request_type": "log_file", "payload": {"file_path": "a.log"}})

    assert response.status_code == 502
    payload = response.json()
    assert payload["error_code"] == "BUILD_SERVICE_ERROR"
    assert payload["detail"]["upstream_status"] == 500
    assert payload["detail"]["operation"] == "build"


@pytest.mark.anyio
async def test_plugin_rejects_invalid_payload() -> None:
    response = await _post({"request_type": "window_size", "payload": {"width": 0, "height": 1}})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"


@pytest.mark.anyio
async def test_plugin_rejects_oversized_lines(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLUGIN_MAKER_MAX_TEXT_BYTES", "4")

    response = await _post(
        {"request_type": "custom_default_settings", "payload": {"lines": "use_cpu_jit = true"}}
    )

    assert response.status_code == 413
    assert response.json()["detail"]["field"] == "payload.lines"


@pytest.mark.anyio
async def test_plugin_unexpected_error_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    class _BrokenMaker:
        async def make_plugin(self, request: PluginRequest) -> PluginBuild | None:
            raise RuntimeError("boom")

    _use_maker(monkeypatch, _BrokenMaker())

    response = await _post({"request_type": "window_position", "payload": {"x": 1, "y": 1}})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error_code"] == "INTERNAL_ERROR"
    assert payload["detail"]["error"] == "boom"


@pytest.mark.anyio
async def test_plugin_logs_request_id_for_success(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="plugin_maker.api")
    _use_maker(monkeypatch, PluginMaker(_FakeBuildService()))

    response = await _post({"request_type": "window_size", "payload": {"width": 2, "height": 3}})

    request_id = response.headers["X-Plugin-Maker-Request-Id"]
    events = [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "plugin_maker.api"
    ]
    assert [event["event"] for event in events] == ["start", "done"]
    assert all(event["request_id"] == request_id for event in events)
    assert events[-1]["archive_bytes"] == len(b"PK\x03\x04plugin")


class _ClosingBuildService(_FakeBuildService):
    instances: list[_ClosingBuildService] = []

    def __init__(self, base_url: str, *, timeout_seconds: float | None = None) -> None:
        super().__init__()
        self.base_url = base_url
        self.closed = False
        _ClosingBuildService.instances.append(self)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def closing_services(monkeypatch: pytest.MonkeyPatch) -> list[_ClosingBuildService]:
    _ClosingBuildService.instances = []
    monkeypatch.setattr(api_main, "HttpBuildService", _ClosingBuildService)
    monkeypatch.setattr(api_main, "_maker_cache", None)
    monkeypatch.setattr(api_main, "_retired_services", [])
    monkeypatch.delenv("PLUGIN_MAKER_BUILD_TIMEOUT_SECONDS", raising=False)
    return _ClosingBuildService.instances


@pytest.mark.anyio
async def test_get_plugin_maker_closes_replaced_build_service(
    monkeypatch: pytest.MonkeyPatch, closing_services: list[_ClosingBuildService]
) -> None:
    monkeypatch.setenv("PLUGIN_MAKER_BUILD_URL", "https://one.test")

    first = api_main._get_plugin_maker()
    second = api_main._get_plugin_maker()
    monkeypatch.setenv("PLUGIN_MAKER_BUILD_URL", "https://two.test")
    third = api_main._get_plugin_maker()
    await api_main._close_retired_services()

    assert first is second
    assert third is not first
    assert [service.base_url for service in closing_services] == [
        "https://one.test",
        "https://two.test",
    ]
    assert closing_services[0].closed is True
    assert closing_services[1].closed is False


@pytest.mark.anyio
async def test_get_plugin_maker_keeps_maker_with_build_in_flight(
    monkeypatch: pytest.MonkeyPatch, closing_services: list[_ClosingBuildService]
) -> None:
    monkeypatch.setenv("PLUGIN_MAKER_BUILD_URL", "https://one.test")
    first = api_main._get_plugin_maker()
    monkeypatch.setattr(first, "_submitting", True)

    monkeypatch.setenv("PLUGIN_MAKER_BUILD_URL", "https://two.test")
    during_build = api_main._get_plugin_maker()
    await api_main._close_retired_services()

    assert during_build is first
    assert len(closing_services) == 1
    assert closing_services[0].closed is False

    monkeypatch.setattr(first, "_submitting", False)
    after_build = api_main._get_plugin_maker()
    await api_main._close_retired_services()

    assert after_build is not first
    assert closing_services[0].closed is True
