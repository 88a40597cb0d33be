# steps.py
# Pure text handling: planner output -> steps, step -> provider.
# No I/O lives here.

import re
from collections.abc import Iterable

from agent_relay.models import CODE_KEYWORDS, Provider

FALLBACK_LINE_LIMIT = 6

_NUMBERED = re.compile(r"^\d+[.)]\s+", re.ASCII)
_BULLETED = re.compile(r"^[-*]\s+", re.ASCII)


def _strip_matching(lines: list[str], pattern: re.Pattern[str]) -> list[str]:
    return [pattern.sub("", line, count=1).strip() for line in lines if pattern.match(line)]


def extract_steps(plan_text: str | None) -> list[str]:
    """
    Split a planner's free-text answer into ordered steps.

    Priority cascade, first non-empty tier wins:
      1. numbered items ("1. x", "2) y"), prefix stripped
      2. bulleted items ("- x", "* y"), prefix stripped
      3. the first FALLBACK_LINE_LIMIT non-empty lines, verbatim

    Empty or missing text yields []. The caller decides whether that is fatal.
    """
    if not plan_text:
        return []

    lines = [line.strip() for line in plan_text.split("\n")]
    lines = [line for line in lines if line]

    numbered = _strip_matching(lines, _NUMBERED)
    if numbered:
        return numbered

    bulleted = _strip_matching(lines, _BULLETED)
    if bulleted:
        return bulleted

    return lines[:FALLBACK_LINE_LIMIT]


def choose_provider(step_text: str, keywords: Iterable[str] = CODE_KEYWORDS) -> Provider:
    """Route to the code provider when any keyword occurs in the step (case-insensitive)."""
    normalized = step_text.lower()
    if any(keyword.lower() in normalized for keyword in keywords):
        return Provider.CODE
    return Provider.REASONING
