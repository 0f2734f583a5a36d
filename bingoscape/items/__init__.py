"""OSRS item catalogue access and item-name matching."""

from .api import CachedPrice, ItemCatalog, WikiPricesClient
from .naming import ParsedItemName, matches_base_name, parse_item_name, resolve_base_name

__all__ = [
    "CachedPrice",
    "ItemCatalog",
    "ParsedItemName",
    "WikiPricesClient",
    "matches_base_name",
    "parse_item_name",
    "resolve_base_name",
]
