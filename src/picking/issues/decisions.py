"""Resolution decisions: what to do with one line of an issue report."""

from dataclasses import dataclass

from protean.exceptions import ValidationError

from picking.errors import InvalidQuantity
from picking.order.order import ResolutionAction


@dataclass(frozen=True)
class ResolutionDecision:
    action: ResolutionAction
    product_id: str | None = None
    quantity: int | None = None

    def __post_init__(self):
        if self.action == ResolutionAction.SUBSTITUTE and not self.product_id:
            raise ValidationError({"product_id": ["A substitution needs a replacement product"]})
        if self.action == ResolutionAction.ADJUST_QUANTITY:
            if self.quantity is None or self.quantity < 0:
                raise InvalidQuantity("Adjusted quantity must be zero or more", self.quantity)

    @classmethod
    def remove(cls):
        return cls(ResolutionAction.REMOVE)

    @classmethod
    def substitute(cls, product_id: str):
        return cls(ResolutionAction.SUBSTITUTE, product_id=product_id)

    @classmethod
    def adjust_quantity(cls, quantity: int):
        return cls(ResolutionAction.ADJUST_QUANTITY, quantity=quantity)

    @classmethod
    def keep(cls):
        return cls(ResolutionAction.KEEP)

    @classmethod
    def from_dict(cls, data: dict):
        try:
            action = ResolutionAction(data.get("action"))
        except ValueError as exc:
            allowed = [a.value for a in ResolutionAction]
            raise ValidationError({"action": [f"Decision action must be one of {allowed}"]}) from exc
        return cls(action, product_id=data.get("product_id"), quantity=data.get("quantity"))

    def to_dict(self) -> dict:
        return {"action": self.action.value, "product_id": self.product_id, "quantity": self.quantity}
