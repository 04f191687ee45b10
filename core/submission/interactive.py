"""Plugin-maker form submission with a single in-flight build."""

from __future__ import annotations

import json
import logging
from typing import Any

from core.rules.builder import CUSTOM_DEFAULT_SETTINGS, build_flavor_rules
from core.rules.classifier import LF, classify_lines, join_lines, split_lines
from core.rules.models import RuleSet
from core.submission.base import BuildService
from core.submission.models import NormalizedSettings, PluginBuild, PluginRequest
from core.utils.errors import NoValidLinesError

logger = logging.getLogger("plugin_maker.maker")

NO_VALID_LINES_MESSAGE = "All the lines are invalid or the lines input is empty"


def normalize_settings_text(text: str, rule_set: RuleSet | None = None) -> NormalizedSettings:
    """Reduce form text to its recognized lines.

    Useless lines are dropped without a warning. Raises ``NoValidLinesError``
    when nothing is left.
    """

    rules = (
        rule_set
        if rule_set is not None
        else build_flavor_rules(CUSTOM_DEFAULT_SETTINGS, extract=True)
    )
    classification = classify_lines(split_lines(text, LF), rules)
    if not classification.kept:
        raise NoValidLinesError(NO_VALID_LINES_MESSAGE, useless_lines=classification.useless)
    return NormalizedSettings(classification=classification, text=join_lines(classification.kept))


class PluginMaker:
    """Submits plugin requests to the build service, one at a time.

    States are ``idle`` and ``submitting``. A submit while ``submitting`` is
    a no-op; every exit path returns to ``idle``.
    """

    def __init__(self, build_service: BuildService, *, rule_set: RuleSet | None = None) -> None:
        self._build_service = build_service
        self._rule_set = rule_set
        self._submitting = False

    @property
    def submitting(self) -> bool:
        return self._submitting

    async def make_plugin(self, request: PluginRequest) -> PluginBuild | None:
        """Build one plugin, or return ``None`` when a build is already in flight."""

        if self._submitting:
            _log_event(logging.INFO, "busy", request_type=request.request_type)
            return None

        self._submitting = True
        try:
            build = PluginBuild(request_type=request.request_type, archive=b"")
            if request.request_type == "custom_default_settings":
                normalized = normalize_settings_text(request.payload["lines"], self._rule_set)
                body = normalized.text
                build.normalized_text = normalized.text
                build.extractions = list(normalized.classification.extractions)
                _log_event(
                    logging.INFO,
                    "normalized",
                    kept_count=len(normalized.classification.kept),
                    dropped_count=len(normalized.classification.useless),
                )
            else:
                body = request.body()

            build.archive = await self._build_service.build(request.endpoint, body)
            _log_event(
                logging.INFO,
                "built",
                request_type=request.request_type,
                archive_bytes=len(build.archive),
            )
            return build
        finally:
            self._submitting = False


def _log_event(level: int, event: str, **fields: Any) -> None:
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")))
