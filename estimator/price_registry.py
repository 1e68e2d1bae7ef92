"""
Original Price Registry — the first observed unit price of every work item.

seed() never overwrites an existing entry, so the registry keeps the price a
work had when it first entered the session no matter how often the estimate is
re-seeded. commit() is the only way to move an anchor.
"""

import logging

logger = logging.getLogger(__name__)


class OriginalPriceRegistry:
    """Append-only map of price key -> original unit price."""

    def __init__(self):
        self._prices: dict[str, float] = {}

    def seed(self, items) -> int:
        """Record prices for keys not seen yet. Returns how many keys were added."""
        added = 0
        for item in items:
            key = item.price_key
            if key not in self._prices:
                self._prices[key] = item.price
                added += 1
        return added

    def seed_sections(self, sections) -> int:
        return self.seed(item for section in sections for item in section.items)

    def get(self, key: str):
        return self._prices.get(key)

    def commit(self, key: str, price: float):
        """Overwrite the anchor for one key after a revised base price was published."""
        logger.info("Original price for %s committed: %s -> %s", key, self._prices.get(key), price)
        self._prices[key] = price

    def as_dict(self) -> dict:
        return dict(self._prices)

    def __contains__(self, key) -> bool:
        return key in self._prices

    def __len__(self) -> int:
        return len(self._prices)
