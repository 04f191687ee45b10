"""Human-readable classification summary rendering for CLI output."""

from __future__ import annotations

from collections import Counter

from core.rules.models import ClassificationResult, SubmissionOutcome

_MAX_LISTED_LINES = 10


def render_classification_summary(
    result: ClassificationResult,
    outcome: SubmissionOutcome,
    *,
    flavor: str,
) -> str:
    """Render one-screen human-readable classification summary."""

    lines: list[str] = []
    lines.append("classification_summary:")
    lines.append(f"flavor={flavor} outcome={outcome}")
    lines.append(f"kept={len(result.kept)} useless={len(result.useless)}")

    if result.extractions:
        type_counter: Counter[str] = Counter(item.type for item in result.extractions)
        types_text = ", ".join(f"{name}={type_counter[name]}" for name in sorted(type_counter))
        lines.append(f"types: {types_text}")

    if result.useless:
        lines.append("useless_lines:")
        for line in result.useless[:_MAX_LISTED_LINES]:
            lines.append(f"  {_printable(line)}")
        hidden = len(result.useless) - _MAX_LISTED_LINES
        if hidden > 0:
            lines.append(f"  ... {hidden} more")
    else:
        lines.append("useless_lines: none")

    return "\n".join(lines)


def _printable(line: str) -> str:
    return repr(line) if not line.strip() else line
