from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path


def test_log_summarizer_json_output(tmp_path: Path) -> None:
    log_path = tmp_path / "plugin_maker.log"
    log_path.write_text(
        "\n".join(
            [
                json.dumps({"event": "outcome", "outcome": "edited", "removed_lines": 3}),
                json.dumps({"event": "outcome", "outcome": "invalid", "removed_lines": 0}),
                json.dumps(
                    {
                        "event": "done",
                        "route": "plugin",
                        "status_code": 200,
                        "timing": {"total_ms": 120},
                    }
                ),
                json.dumps(
                    {
                        "event": "error",
                        "error_code": "BUILD_SERVICE_ERROR",
                        "status_code": 502,
                    }
                ),
                json.dumps(
                    {
                        "event": "done",
                        "route": "classify",
                        "outcome": "edited",
                        "status_code": 200,
                        "timing": {"total_ms": 4},
                    }
                ),
                "not-json-line",
            ]
        ),
        encoding="utf-8",
    )

    result = subprocess.run(
        [sys.executable, "scripts/summarize_logs.py", "--json", str(log_path)],
        cwd=Path(__file__).resolve().parents[1],
        check=False,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0

    payload = json.loads(result.stdout)
    assert payload["bad_lines"] == 1
    assert payload["unreadable_files"] == 0
    assert payload["events"] == {"done": 2, "error": 1, "outcome": 2}
    assert payload["outcomes"] == {"edited": 2, "invalid": 1}
    assert payload["status_codes"] == {"200": 2, "502": 1}
    assert payload["error_codes"] == {"BUILD_SERVICE_ERROR": 1}
    assert payload["removed_lines_total"] == 3
    assert payload["total_ms_p95_by_route"] == {"classify": 4, "plugin": 120}


def test_log_summarizer_counts_missing_files(tmp_path: Path) -> None:
    result = subprocess.run(
        [sys.executable, "scripts/summarize_logs.py", "--json", str(tmp_path / "missing.log")],
        cwd=Path(__file__).resolve().parents[1],
        check=False,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0
    assert json.loads(result.stdout)["unreadable_files"] == 1
