"""Line classifier applying a rule set to submitted settings text."""

from __future__ import annotations

from collections.abc import Iterable

from core.rules.models import ClassificationResult, RuleSet, SubmissionOutcome

CRLF = "\r\n"
LF = "\n"


def split_lines(text: str, separator: str = LF) -> list[str]:
    """Split submitted text into lines using the platform separator."""

    return text.split(separator)


def join_lines(lines: Iterable[str]) -> str:
    """Join lines with the canonical newline separator."""

    return LF.join(lines)


def classify_lines(lines: Iterable[str], rule_set: RuleSet) -> ClassificationResult:
    """Partition lines into kept and useless ones.

    Rules:
    - rules are tried in order and the first match wins
    - a kept line records the extraction of its matching rule when the rule
      set was built with extraction enabled
    - no deduplication; identical lines are classified independently
    """

    result = ClassificationResult()
    for line in lines:
        for rule in rule_set:
            matched = rule.match(line)
            if matched is None:
                continue
            result.kept.append(line)
            if rule_set.extract and rule.extracts:
                result.extractions.append(rule.extract(matched))
            break
        else:
            result.useless.append(line)
    return result


def decide_outcome(result: ClassificationResult) -> SubmissionOutcome:
    """Map a classification to the submission outcome."""

    if not result.kept:
        return "invalid"
    if result.useless:
        return "edited"
    return "accepted"
