"""Item display-name normalisation used to match item goals."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .api import ItemCatalog

_WHITESPACE = re.compile(r"\s+")
# "Amulet of glory(4)", "Rune platebody (g)", "Toxic blowpipe (empty)"
_PAREN_VARIANT = re.compile(r"^(?P<base>.*?\S)\s*\((?P<variant>[^()]+)\)$")
# "Shark x5", "Coins x 1000"
_QUANTITY_VARIANT = re.compile(r"^(?P<base>.*?\S)\s+x\s*(?P<variant>\d+)$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedItemName:
    base_name: str
    variant: Optional[str] = None


def _clean(name: str) -> str:
    return _WHITESPACE.sub(" ", name).strip()


def parse_item_name(name: str) -> ParsedItemName:
    """Split a display name into its base name and trailing variant.

    A single trailing variant is removed: either a parenthesised suffix such
    as ``(4)``, ``(t)`` or ``(uncharged)``, or a quantity suffix ``x<n>``.
    """
    cleaned = _clean(name or "")
    for pattern in (_PAREN_VARIANT, _QUANTITY_VARIANT):
        match = pattern.match(cleaned)
        if match:
            return ParsedItemName(
                base_name=match.group("base"), variant=match.group("variant").strip()
            )
    return ParsedItemName(base_name=cleaned)


def resolve_base_name(name: str, catalog: Optional["ItemCatalog"] = None) -> str:
    """Canonical base name for ``name``.

    With a catalogue, a full name that is itself a known item is kept when
    stripping its suffix would not give a known item.
    """
    parsed = parse_item_name(name)
    if catalog is None or parsed.variant is None:
        return parsed.base_name
    if catalog.is_known(parsed.base_name):
        return parsed.base_name
    cleaned = _clean(name)
    if catalog.is_known(cleaned):
        return cleaned
    return parsed.base_name


def matches_base_name(
    submitted_item_name: str,
    goal_base_name: str,
    catalog: Optional["ItemCatalog"] = None,
) -> bool:
    """Case-insensitive, variant-agnostic comparison against a goal's base name."""
    base = resolve_base_name(submitted_item_name, catalog)
    expected = _clean(goal_base_name or "")
    if not base or not expected:
        return False
    return base.casefold() == expected.casefold()


__all__ = [
    "ParsedItemName",
    "matches_base_name",
    "parse_item_name",
    "resolve_base_name",
]
