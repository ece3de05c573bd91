"""Keep-line pricing: the customer pays what the original line said."""

from picking.pricing.port import LinePrice, PricingPort


class KeepLinePricing(PricingPort):
    def price_substitution(self, product, original_line) -> LinePrice:
        return LinePrice(
            unit_price=original_line.unit_price or 0.0,
            discount=original_line.discount or 0.0,
        )
