"""Pricing adapter abstraction: pluggable pricing of substituted lines."""

import os

_pricing_instance = None


def get_pricing():
    """Return the configured pricing adapter (singleton).

    Uses CataloguePricing by default. Configure via the PRICING_ADAPTER
    environment variable (``catalogue`` or ``keep``).
    """
    global _pricing_instance
    if _pricing_instance is None:
        adapter = os.environ.get("PRICING_ADAPTER", "catalogue")
        if adapter == "catalogue":
            from picking.pricing.catalogue_adapter import CataloguePricing

            _pricing_instance = CataloguePricing()
        elif adapter == "keep":
            from picking.pricing.keep_adapter import KeepLinePricing

            _pricing_instance = KeepLinePricing()
        else:
            raise ValueError(f"Unknown pricing adapter: {adapter}")
    return _pricing_instance


def reset_pricing():
    """Reset the pricing singleton (useful for testing)."""
    global _pricing_instance
    _pricing_instance = None
