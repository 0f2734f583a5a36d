import os
import time
import logging
from dataclasses import dataclass
from urllib.parse import urljoin
from typing import Any, Iterable, Mapping, Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://prices.runescape.wiki/api/v1/osrs"
PRICE_CACHE_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class CachedPrice:
    high: Optional[int]
    low: Optional[int]
    average: Optional[int]
    timestamp: float


def _average(high: Optional[int], low: Optional[int]) -> Optional[int]:
    if high is not None and low is not None:
        return (high + low) // 2
    if high is not None:
        return high
    return low


class ItemCatalog:
    """Name lookup over the OSRS Wiki item mapping."""

    def __init__(self, items: Iterable[Mapping[str, Any]]):
        self._by_name: dict[str, Mapping[str, Any]] = {}
        for item in items:
            name = item.get("name")
            if name:
                self._by_name.setdefault(name.strip().casefold(), item)

    def __len__(self) -> int:
        return len(self._by_name)

    def is_known(self, name: str) -> bool:
        return name.strip().casefold() in self._by_name

    def get(self, name: str) -> Optional[Mapping[str, Any]]:
        return self._by_name.get(name.strip().casefold())


class WikiPricesClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        cache_ttl: float = PRICE_CACHE_TTL_SECONDS,
    ):
        load_dotenv()
        self.base_url = (
            base_url or os.getenv("OSRS_WIKI_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._price_cache: dict[int, CachedPrice] = {}
        self._last_full_fetch: Optional[float] = None

    # -------- headers --------
    @property
    def headers(self) -> Mapping[str, str]:
        # The Wiki API rejects default library user agents.
        contact = os.getenv("OSRS_WIKI_CONTACT_EMAIL", "unknown@example.com")
        return {"Accept": "application/json", "User-Agent": f"Bingoscape/1.0.0 - {contact}"}

    # -------- core request --------
    def _request(self, method: str, path: str, *, params: Optional[dict] = None) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        try:
            r = self.session.request(
                method=method.upper(),
                url=url,
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"OSRS Wiki request to {path} failed: {e}")
            raise RuntimeError(f"OSRS Wiki request failed: {e}") from e
        return r.json() if r.content else None

    # -------- API callers --------
    def mapping(self) -> list[dict]:
        """Item catalogue: id, name, examine text, limits and icons."""
        return self._request("GET", "/mapping") or []

    def latest(self) -> dict[str, dict]:
        """Latest high/low GE prices keyed by item id (as strings)."""
        payload = self._request("GET", "/latest") or {}
        return payload.get("data", {})

    def load_catalog(self) -> ItemCatalog:
        catalog = ItemCatalog(self.mapping())
        logger.debug(f"Loaded {len(catalog)} catalogued item names")
        return catalog

    # -------- price cache --------
    def _is_cache_stale(self) -> bool:
        if self._last_full_fetch is None:
            return True
        return time.monotonic() - self._last_full_fetch > self.cache_ttl

    def refresh_price_cache(self) -> dict[int, CachedPrice]:
        """Fetch every price with a single ``/latest`` call and cache it."""
        now = time.monotonic()
        prices: dict[int, CachedPrice] = {}
        for item_id, data in self.latest().items():
            high = data.get("high")
            low = data.get("low")
            prices[int(item_id)] = CachedPrice(
                high=high, low=low, average=_average(high, low), timestamp=now
            )
        self._price_cache.update(prices)
        self._last_full_fetch = now
        return prices

    def _ensure_fresh(self) -> None:
        if self._is_cache_stale():
            self.refresh_price_cache()

    def get_item_price(self, item_id: int) -> Optional[CachedPrice]:
        self._ensure_fresh()
        return self._price_cache.get(item_id)

    def get_prices_for_items(self, item_ids: Iterable[int]) -> dict[int, CachedPrice]:
        self._ensure_fresh()
        return {i: self._price_cache[i] for i in item_ids if i in self._price_cache}

    def get_item_average_price(self, item_id: int) -> Optional[int]:
        price = self.get_item_price(item_id)
        return price.average if price is not None else None

    def clear_price_cache(self) -> None:
        self._price_cache.clear()
        self._last_full_fetch = None

    def cache_stats(self) -> dict[str, Any]:
        age = None
        if self._last_full_fetch is not None:
            age = time.monotonic() - self._last_full_fetch
        return {
            "itemCount": len(self._price_cache),
            "cacheAge": age,
            "isStale": self._is_cache_stale(),
        }
