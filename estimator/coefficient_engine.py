"""
Coefficient Engine — uniform percentage adjustment of work prices.

Prices are always derived from the original price registry, never from the
current (possibly already adjusted) price, so applying +10% and then -5%
yields original * 0.95. Every call re-derives the whole tree.
"""

import math

from .config import settings
from .exceptions import InvalidCoefficientError
from .nodes import round2


def parse_coefficient(value) -> float:
    """
    Parse coefficient input typed by a user ("10", "-5", "2,5").
    Raises InvalidCoefficientError for non-numbers and values outside
    [COEFFICIENT_MIN, COEFFICIENT_MAX].
    """
    try:
        number = float(str(value).strip().replace(",", "."))
    except (ValueError, TypeError):
        raise InvalidCoefficientError(f"Coefficient must be a number, got {value!r}") from None
    if math.isnan(number):
        raise InvalidCoefficientError(f"Coefficient must be a number, got {value!r}")
    if number < settings.COEFFICIENT_MIN:
        raise InvalidCoefficientError(f"Coefficient cannot be below {settings.COEFFICIENT_MIN:g}%")
    if number > settings.COEFFICIENT_MAX:
        raise InvalidCoefficientError(f"Coefficient cannot exceed {settings.COEFFICIENT_MAX:g}%")
    return number


class CoefficientEngine:
    """Applies and resets the pricing coefficient over a list of sections."""

    def __init__(self, registry):
        self.registry = registry
        self.current_coefficient: float = 0

    @staticmethod
    def multiplier(percent: float) -> float:
        return 1 + percent / 100.0

    def preview(self, percent: float, sample: float = 1000.0) -> tuple:
        """(sample, sample adjusted by percent), shown to the user before applying."""
        return sample, round2(sample * self.multiplier(percent))

    def apply(self, sections: list, percent: float):
        multiplier = self.multiplier(percent)
        for section in sections:
            for item in section.items:
                original = self.registry.get(item.price_key)
                if original is None:
                    original = item.price
                item.price = round2(original * multiplier)
                item.recalculate_total()
            section.recalculate_subtotal()
        self.current_coefficient = percent

    def reset(self, sections: list):
        for section in sections:
            for item in section.items:
                original = self.registry.get(item.price_key)
                if original is not None:
                    item.price = original
                    item.recalculate_total()
            section.recalculate_subtotal()
        self.current_coefficient = 0
