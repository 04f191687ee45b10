"""Moderation of custom default settings plugin request issues."""

from __future__ import annotations

import json
import logging
from typing import Any

from core.rules.builder import CUSTOM_DEFAULT_SETTINGS, build_flavor_rules
from core.rules.classifier import CRLF, classify_lines, decide_outcome, join_lines, split_lines
from core.rules.models import RuleSet
from core.submission.base import IssueTracker, MarkerWriter
from core.submission.models import ModerationResult

logger = logging.getLogger("plugin_maker.bot")

INVALID_LABEL = "Invalid"


def moderate_issue(
    body: str,
    *,
    tracker: IssueTracker,
    markers: MarkerWriter,
    documentation_url: str,
    rule_set: RuleSet | None = None,
) -> ModerationResult:
    """Accept, reject, or edit a plugin request issue body.

    Rules:
    - no recognized line: comment with the documentation link, close the
      issue with the ``Invalid`` label, lock it, then write ``invalid``
    - some useless lines: replace the body with the kept lines, comment the
      removed lines, then write ``edited``
    - every line recognized: no calls, no marker

    Tracker failures propagate and stop the remaining calls.
    """

    rules = rule_set if rule_set is not None else build_flavor_rules(CUSTOM_DEFAULT_SETTINGS)
    classification = classify_lines(split_lines(body, CRLF), rules)
    outcome = decide_outcome(classification)
    _log_event(
        logging.INFO,
        "classified",
        kept_count=len(classification.kept),
        useless_count=len(classification.useless),
    )

    if outcome == "invalid":
        tracker.create_comment(f"Read {documentation_url}")
        tracker.update(state="closed", labels=[INVALID_LABEL], body=INVALID_LABEL)
        tracker.lock()
        markers.write("invalid")
        result = ModerationResult(outcome=outcome, classification=classification, marker="invalid")
    elif outcome == "edited":
        tracker.update(body=join_lines(classification.kept))
        tracker.create_comment(removed_lines_comment(classification.useless, documentation_url))
        markers.write("edited")
        result = ModerationResult(outcome=outcome, classification=classification, marker="edited")
    else:
        result = ModerationResult(outcome=outcome, classification=classification)

    _log_event(
        logging.INFO,
        "outcome",
        outcome=result.outcome,
        marker=result.marker,
        removed_lines=len(classification.useless) if result.marker == "edited" else 0,
    )
    return result


def removed_lines_comment(useless_lines: list[str], documentation_url: str) -> str:
    """Build the comment listing the lines removed from an issue body."""

    removed = join_lines(useless_lines)
    return (
        f"Useless lines removed:\n```\n{removed}\n```\n\n"
        f"Lines that aren't in {documentation_url} are useless lines."
    )


def _log_event(level: int, event: str, **fields: Any) -> None:
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")))
