"""Ancestry kind constants and validation helpers for glyphlex."""

from __future__ import annotations

from glyphlex.models import AncestryKind

DEFAULT_ANCESTRY_KIND = AncestryKind.DERIVED.value

ANCESTRY_KINDS: frozenset[str] = frozenset(k.value for k in AncestryKind)

# Short descriptions shown by the command-line tree view.
ANCESTRY_KIND_LABELS: dict[str, str] = {
    "derived": "derived from",
    "borrowed": "borrowed from",
    "compound": "compounded from",
    "blend": "blended from",
    "calque": "calqued on",
    "other": "related to",
}


def is_valid_ancestry_kind(kind: str) -> bool:
    """Check if a string is a valid ancestry kind."""
    return kind in ANCESTRY_KINDS


def describe_kind(kind: str | None) -> str:
    """Human-readable label for an ancestry kind."""
    if kind is None:
        return ""
    return ANCESTRY_KIND_LABELS.get(kind, kind)
