"""Typer CLI entrypoint for plugin-maker."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any, Literal, cast

import typer

from apps import config
from apps.cli.format_human import render_classification_summary
from apps.cli.io import (
    FileMarkerWriter,
    load_issue_event,
    write_bytes_atomic,
    write_json_atomic,
    write_text_atomic,
)
from apps.clients.build_service import HttpBuildService
from apps.clients.github_issues import GitHubIssueTracker
from core.plugin.codegen import render_plugin_source
from core.rules.builder import (
    CUSTOM_DEFAULT_SETTINGS,
    SETTINGS_INI,
    build_flavor_rules,
    build_ini_rule_set,
    build_rule_set,
    list_supported_flavors,
)
from core.rules.catalog_loader import load_ini_catalog, load_settings_catalog
from core.rules.classifier import CRLF, LF, classify_lines, decide_outcome, split_lines
from core.rules.models import ClassificationResult, RuleSet
from core.submission.interactive import PluginMaker, normalize_settings_text
from core.submission.models import PluginRequest, supported_request_types, visible_fields
from core.submission.moderation import moderate_issue
from core.utils.errors import NoValidLinesError, TransportError

app = typer.Typer(help="Custom default settings plugin-maker CLI", rich_markup_mode=None)
SeparatorMode = Literal["lf", "crlf"]
ReportMode = Literal["human", "json"]

EXIT_NO_VALID_LINES = 2
EXIT_TRANSPORT_FAILURE = 3


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("moderate")
def moderate_command(
    event: Annotated[
        Path,
        typer.Option(
            ...,
            envvar="GITHUB_EVENT_PATH",
            exists=True,
            dir_okay=False,
            file_okay=True,
            help="GitHub issues event payload.",
        ),
    ],
    marker_dir: Annotated[Path, typer.Option(help="Directory receiving outcome markers.")] = Path(
        "."
    ),
    catalog: Annotated[Path | None, typer.Option(help="Custom settings catalog YAML.")] = None,
) -> None:
    """Moderate one plugin request issue: accept, edit, or reject it."""

    token = config.github_token()
    if token is None:
        typer.echo("ERROR: GITHUB_TOKEN is not set.")
        raise typer.Exit(code=1)

    exit_code = 1
    tracker: GitHubIssueTracker | None = None
    try:
        issue = load_issue_event(event)
        rule_set = _settings_rule_set(catalog, extract=False)
        tracker = GitHubIssueTracker(
            owner=issue.owner,
            repo=issue.repo,
            issue_number=issue.issue_number,
            token=token,
            api_url=config.github_api_url(),
        )
        result = moderate_issue(
            issue.body,
            tracker=tracker,
            markers=FileMarkerWriter(marker_dir),
            documentation_url=config.documentation_url(),
            rule_set=rule_set,
        )
        typer.echo(
            f"INFO: issue #{issue.issue_number} outcome={result.outcome} "
            f"kept={len(result.classification.kept)} "
            f"useless={len(result.classification.useless)}"
        )
        exit_code = 0
    except TransportError as exc:
        exit_code = EXIT_TRANSPORT_FAILURE
        typer.echo(f"ERROR: {exc.operation} failed: {exc}")
    except Exception as exc:  # noqa: BLE001
        exit_code = 1
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
    finally:
        if tracker is not None:
            tracker.close()

    raise typer.Exit(code=exit_code)


@app.command("classify")
def classify_command(
    input_path: Annotated[
        Path, typer.Option("--input", exists=True, dir_okay=False, file_okay=True)
    ],
    flavor: Annotated[str, typer.Option()] = CUSTOM_DEFAULT_SETTINGS,
    separator: Annotated[str, typer.Option()] = "lf",
    report: Annotated[str, typer.Option()] = "human",
    extract: Annotated[bool, typer.Option("--extract/--no-extract")] = False,
    catalog: Annotated[Path | None, typer.Option(help="Custom catalog YAML.")] = None,
    output: Annotated[Path | None, typer.Option(help="Write the JSON report here.")] = None,
) -> None:
    """Classify every line of a file as kept or useless."""

    normalized_flavor = flavor.strip().lower()
    if normalized_flavor not in list_supported_flavors():
        typer.echo(f"ERROR: --flavor must be one of: {', '.join(list_supported_flavors())}.")
        raise typer.Exit(code=1)

    normalized_separator = separator.strip().lower()
    if normalized_separator not in {"lf", "crlf"}:
        typer.echo("ERROR: --separator must be one of: lf, crlf.")
        raise typer.Exit(code=1)
    separator_typed = cast(SeparatorMode, normalized_separator)

    normalized_report = report.strip().lower()
    if normalized_report not in {"human", "json"}:
        typer.echo("ERROR: --report must be one of: human, json.")
        raise typer.Exit(code=1)
    report_typed = cast(ReportMode, normalized_report)

    try:
        rule_set = _flavor_rule_set(normalized_flavor, catalog, extract=extract)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    text = _read_input(input_path, keep_crlf=True)
    lines = split_lines(text, CRLF if separator_typed == "crlf" else LF)
    result = classify_lines(lines, rule_set)
    outcome = decide_outcome(result)
    payload = _classification_payload(normalized_flavor, result, outcome)

    if report_typed == "human":
        typer.echo(render_classification_summary(result, outcome, flavor=normalized_flavor))
    else:
        typer.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True))

    if output is not None:
        write_json_atomic(output, payload)
        typer.echo(f"INFO: wrote report to {output}")


@app.command("make-plugin")
def make_plugin_command(
    request_type: Annotated[str, typer.Option("--type")] = CUSTOM_DEFAULT_SETTINGS,
    lines: Annotated[
        Path | None, typer.Option(exists=True, dir_okay=False, file_okay=True)
    ] = None,
    x: Annotated[int | None, typer.Option()] = None,
    y: Annotated[int | None, typer.Option()] = None,
    params: Annotated[str | None, typer.Option()] = None,
    width: Annotated[int | None, typer.Option()] = None,
    height: Annotated[int | None, typer.Option()] = None,
    file_path: Annotated[str | None, typer.Option()] = None,
    out: Annotated[Path, typer.Option()] = Path("plugin.zip"),
    rewrite_lines: Annotated[
        bool,
        typer.Option(
            "--rewrite-lines",
            help="Replace the --lines file content with the recognized lines only.",
        ),
    ] = False,
) -> None:
    """Send one plugin request to the build service and save the archive."""

    normalized_type = request_type.strip().lower()
    if normalized_type not in supported_request_types():
        typer.echo(f"ERROR: --type must be one of: {', '.join(supported_request_types())}.")
        raise typer.Exit(code=1)

    values: dict[str, Any] = {
        "lines": _read_input(lines) if lines is not None else None,
        "x": x,
        "y": y,
        "params": params,
        "width": width,
        "height": height,
        "file_path": file_path,
    }
    payload = {
        name: values[name]
        for name in visible_fields(normalized_type)
        if values.get(name) is not None
    }

    try:
        request = PluginRequest.model_validate(
            {"request_type": normalized_type, "payload": payload}
        )
    except ValueError as exc:
        typer.echo(f"ERROR: invalid {normalized_type} request: {exc}")
        raise typer.Exit(code=1) from exc

    build_service = HttpBuildService(
        config.build_service_url(),
        timeout_seconds=config.build_timeout_seconds(),
    )
    maker = PluginMaker(build_service)

    exit_code = 1
    try:
        build = asyncio.run(_make_plugin(maker, build_service, request))
        if build is None:
            typer.echo("ERROR: a plugin is already being made")
        else:
            write_bytes_atomic(out, build.archive)
            if rewrite_lines and lines is not None and build.normalized_text is not None:
                write_text_atomic(lines, build.normalized_text)
                typer.echo(f"INFO: rewrote {lines} with recognized lines only")
            typer.echo(f"INFO: wrote {len(build.archive)} bytes to {out}")
            exit_code = 0
    except NoValidLinesError as exc:
        exit_code = EXIT_NO_VALID_LINES
        typer.echo(f"ERROR: {exc}")
    except TransportError as exc:
        exit_code = EXIT_TRANSPORT_FAILURE
        typer.echo(f"ERROR: {exc}")
    except Exception as exc:  # noqa: BLE001
        exit_code = 1
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")

    raise typer.Exit(code=exit_code)


@app.command("render-source")
def render_source_command(
    input_path: Annotated[
        Path, typer.Option("--input", exists=True, dir_okay=False, file_okay=True)
    ],
    out: Annotated[Path | None, typer.Option(help="Write the C source here.")] = None,
    catalog: Annotated[Path | None, typer.Option(help="Custom settings catalog YAML.")] = None,
) -> None:
    """Render the C plugin source for a custom default settings file."""

    text = _read_input(input_path)
    try:
        rule_set = _settings_rule_set(catalog, extract=True)
        normalized = normalize_settings_text(text, rule_set)
    except NoValidLinesError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_NO_VALID_LINES) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    source = render_plugin_source(normalized.classification.extractions)
    if out is None:
        typer.echo(source, nl=False)
        return

    write_text_atomic(out, source)
    typer.echo(f"INFO: wrote plugin source to {out}")


def _read_input(path: Path, *, keep_crlf: bool = False) -> str:
    try:
        if keep_crlf:
            return path.read_bytes().decode("utf-8")
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        typer.echo(f"ERROR: cannot read {path}: {exc}")
        raise typer.Exit(code=1) from exc


async def _make_plugin(
    maker: PluginMaker, build_service: HttpBuildService, request: PluginRequest
):
    try:
        return await maker.make_plugin(request)
    finally:
        await build_service.aclose()


def _settings_rule_set(catalog: Path | None, *, extract: bool) -> RuleSet:
    if catalog is None:
        return build_flavor_rules(CUSTOM_DEFAULT_SETTINGS, extract=extract)
    return build_rule_set(load_settings_catalog(catalog), extract=extract)


def _flavor_rule_set(flavor: str, catalog: Path | None, *, extract: bool) -> RuleSet:
    if flavor == SETTINGS_INI and catalog is not None:
        if extract:
            raise ValueError(f"Flavor does not support extraction: {flavor}")
        return build_ini_rule_set(load_ini_catalog(catalog))
    if flavor == CUSTOM_DEFAULT_SETTINGS:
        return _settings_rule_set(catalog, extract=extract)
    return build_flavor_rules(flavor, extract=extract)


def _classification_payload(
    flavor: str, result: ClassificationResult, outcome: str
) -> dict[str, Any]:
    return {
        "flavor": flavor,
        "outcome": outcome,
        "kept": result.kept,
        "useless": result.useless,
        "extractions": [
            {"name": item.name, "type": item.type, "call": item.call}
            for item in result.extractions
        ],
    }


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
