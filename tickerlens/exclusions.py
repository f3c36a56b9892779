"""
Exclusion policy for symbol detection.

Two kinds of exclusion live here:
  • Token exclusions – uppercase words that match the symbol grammar but are
    almost always ordinary English, acronyms or currency codes.
  • Tree exclusions – container tags and UI classes whose sub-trees are never
    scanned (code-like content, our own markers, the overlay and toasts).
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Token exclusions
# ---------------------------------------------------------------------------

EXCLUDED_WORDS: frozenset[str] = frozenset(
    {
        # Common English words
        "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER",
        "WAS", "ONE", "OUR", "OUT", "DAY", "GET", "HAS", "HIM", "HIS", "HOW",
        "ITS", "MAY", "NEW", "NOW", "OLD", "SEE", "TWO", "WAY", "WHO", "BOY",
        "DID", "CAR", "LET", "PUT", "SAY", "SHE", "TOO", "USE",
        # Acronyms
        "CEO", "CFO", "COO", "CTO", "USA", "API", "URL", "HTML", "CSS", "PDF",
        "FAQ",
        # Currency codes
        "USD", "EUR", "GBP",
    }
)

# Candidates shorter than this (exchange suffix not counted) are dropped.
MIN_SYMBOL_LENGTH = 2


def is_excluded(token: str) -> bool:
    """True if *token* must never be surfaced as a symbol."""
    if token in EXCLUDED_WORDS:
        return True
    base = token.split(".", 1)[0]
    return len(base) < MIN_SYMBOL_LENGTH


# ---------------------------------------------------------------------------
# Tree exclusions
# ---------------------------------------------------------------------------

# Sub-trees rooted at these tags are neither scanned nor descended into.
EXCLUDED_TAGS: frozenset[str] = frozenset(
    {"script", "style", "code", "pre", "noscript", "iframe", "textarea", "template"}
)

MARKER_CLASS = "stockalert-symbol"
OVERLAY_CLASS = "stockalert-overlay"
TOAST_CLASS = "stockalert-toast"

# Data attribute carrying the marker's symbol; together with MARKER_CLASS this
# is the stable contract page-level tooling relies on.
SYMBOL_ATTR = "data-symbol"
MARKER_SELECTOR = f"span.{MARKER_CLASS}"

# Elements carrying any of these classes are opaque to the scanner.
RESERVED_CLASSES: frozenset[str] = frozenset({MARKER_CLASS, OVERLAY_CLASS, TOAST_CLASS})
