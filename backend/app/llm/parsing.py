"""Parsers for the two-outcome output grammars used by classification prompts.

The rest of the application only ever sees the parsed result, never raw
model text.
"""

import re
from dataclasses import dataclass

CONTRADICTION_MARKER = "CONTRADICTION:"
NO_CONTRADICTION_TOKEN = "NO_CONTRADICTION"
RESOLVED_TOKEN = "RESOLVED"
UNRESOLVED_TOKEN = "UNRESOLVED"

_RESOLVED_RE = re.compile(r"\bRESOLVED\b")
_NEGATED_RESOLVED_RE = re.compile(r"\bUNRESOLVED\b|\bNOT[\s_-]+RESOLVED\b")


@dataclass(frozen=True)
class ContradictionVerdict:
    found: bool
    details: str | None = None


NO_CONTRADICTION = ContradictionVerdict(found=False)


def parse_contradiction(output: str) -> ContradictionVerdict:
    """Marker-prefixed sentence means found; anything else means not found."""
    text = (output or "").strip()
    if not text.upper().startswith(CONTRADICTION_MARKER):
        return NO_CONTRADICTION
    details = text[len(CONTRADICTION_MARKER):].strip()
    return ContradictionVerdict(found=True, details=details or None)


def parse_resolution(output: str) -> bool:
    """True only for an unambiguous RESOLVED; negations and noise are unresolved."""
    text = (output or "").upper()
    if _NEGATED_RESOLVED_RE.search(text):
        return False
    return bool(_RESOLVED_RE.search(text))
