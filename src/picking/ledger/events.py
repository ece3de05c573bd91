"""Stock ledger domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from picking.domain import picking


@picking.event(part_of="StockMovement")
class StockMovementRecorded:
    """A quantity change was appended to a product's ledger."""

    __version__ = 1

    movement_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    movement_type = String(required=True)
    quantity = Integer(required=True)
    balance_before = Integer()
    balance_after = Integer()
    reference_kind = String()
    reference_id = Identifier()
    sequence = Integer(required=True)
    occurred_at = DateTime(required=True)
