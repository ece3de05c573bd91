"""Catalogue pricing: a substitute ships at its own list price."""

from picking.pricing.port import LinePrice, PricingPort


class CataloguePricing(PricingPort):
    def price_substitution(self, product, original_line) -> LinePrice:
        # Line discounts were negotiated for the original product
        return LinePrice(unit_price=product.unit_price or 0.0, discount=0.0)
