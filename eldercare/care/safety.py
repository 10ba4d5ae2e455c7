"""Local emergency keyword gate for parent messages.

The parent persona already tells the model how to react to emergencies.
This scan makes that reply deterministic for the phrases we know about.
Mentions that are negated within the same clause ("no chest pain",
"I am not confused") do not count.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Regex fragments, matched case-insensitively on word boundaries.
EMERGENCY_PHRASES: dict[str, tuple[str, ...]] = {
    "chest_pain": (
        r"chest pain",
        r"chest hurts",
        r"pain in my chest",
        r"heart pain",
        r"tight chest",
    ),
    "fall": (
        r"i fell(?! (?:asleep|for|in love))",
        r"i have fallen(?! asleep)",
        r"i've fallen(?! asleep)",
        r"had a fall",
        r"fell down",
        r"slipped and fell",
        r"can't get up",
        r"cannot get up",
    ),
    "confusion": (
        r"i am confused",
        r"i'm confused",
        r"i feel confused",
        r"feeling (?:very |so |a bit )?confused",
        r"don't know where i am",
        r"do not know where i am",
        r"can't remember where i am",
    ),
    "breathing": (
        r"can't breathe",
        r"cannot breathe",
        r"breathing problem",
        r"trouble breathing",
        r"difficulty breathing",
        r"short of breath",
        r"shortness of breath",
        r"breathless",
    ),
}

_PATTERNS: dict[str, re.Pattern[str]] = {
    category: re.compile(r"\b(?:" + "|".join(phrases) + r")\b", re.IGNORECASE)
    for category, phrases in EMERGENCY_PHRASES.items()
}

NEGATIONS = frozenset({"no", "not", "never", "without", "nor", "hardly"})
NEGATION_WINDOW = 3

_CLAUSE_BREAK = re.compile(r"[.,;:!?]|\bbut\b|\band\b", re.IGNORECASE)


def _normalize(text: str) -> str:
    return " ".join(text.replace("’", "'").split())


def _is_negated(text: str, start: int) -> bool:
    """True if one of the few words before ``start`` in its clause negates it."""
    clause = _CLAUSE_BREAK.split(text[:start])[-1]
    words = clause.lower().split()[-NEGATION_WINDOW:]
    return any(w in NEGATIONS or w.endswith("n't") for w in words)


def detect_emergency(text: str) -> str | None:
    """Return the emergency category mentioned in ``text``, or None."""
    if not text:
        return None
    normalized = _normalize(text)
    for category, pattern in _PATTERNS.items():
        for match in pattern.finditer(normalized):
            if _is_negated(normalized, match.start()):
                logger.debug("Negated %s mention: %r", category, match.group(0))
                continue
            logger.warning("Emergency phrase detected: %s", category)
            return category
    return None
