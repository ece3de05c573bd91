"""Pricing port: how a substituted order line is priced.

Issue resolution programs against the port; adapters are swapped via
configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LinePrice:
    unit_price: float
    discount: float = 0.0


class PricingPort(ABC):
    """Abstract interface for pricing adapters."""

    @abstractmethod
    def price_substitution(self, product, original_line) -> LinePrice:
        """Price ``product`` as the replacement for ``original_line``.

        Args:
            product: the substitute's ``ProductStock`` record
            original_line: the ``OrderLine`` being replaced
        """
        ...
