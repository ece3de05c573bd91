"""Stock movement recording: command and handler.

Manual adjustments, purchases, returns, sales and transfers all arrive here.
Picking deductions are written by the finish handler through the same
:class:`~picking.ledger.ledger.StockLedger`.
"""

from protean import handle
from protean.fields import Identifier, Integer, String

from picking.domain import picking
from picking.ledger.ledger import StockLedger
from picking.ledger.movement import MovementType, StockMovement, reference_for


@picking.command(part_of="StockMovement")
class RecordStockMovement:
    """Append one quantity change to a product's ledger."""

    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    movement_type = String(required=True, max_length=30, choices=MovementType)
    quantity = Integer(required=True)
    actor_id = Identifier()
    reference_kind = String(max_length=20)
    reference_id = Identifier()
    reason = String(max_length=500)
    location_from = String(max_length=255)
    location_to = String(max_length=255)


@picking.command_handler(part_of=StockMovement)
class StockMovementHandler:
    @handle(RecordStockMovement)
    def record_stock_movement(self, command):
        ledger = StockLedger(command.tenant_id)
        movement = ledger.append(
            product_id=command.product_id,
            movement_type=MovementType(command.movement_type),
            quantity=command.quantity,
            reference=reference_for(command.reference_kind, command.reference_id),
            actor_id=command.actor_id,
            reason=command.reason,
            location_from=command.location_from,
            location_to=command.location_to,
        )
        return str(movement.id)
