"""Product registration: command and handler.

A product enters picking with an opening balance written as an
``inbound_adjustment`` ledger entry, so replaying its ledger from zero
reproduces on-hand from the first day.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from picking.catalogue.product import ProductStock
from picking.domain import picking
from picking.errors import InvalidQuantity
from picking.ledger.ledger import StockLedger
from picking.ledger.movement import MovementType


@picking.command(part_of="ProductStock")
class RegisterProduct:
    """Make a catalogue product known to picking, optionally with opening stock."""

    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    interchange_code = String(max_length=100)
    location = String(max_length=255)
    unit_price = Float(default=0.0)
    initial_quantity = Integer(default=0)
    actor_id = Identifier()


@picking.command_handler(part_of=ProductStock)
class ProductRegistrationHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(ProductStock)
        existing = repo._dao.query.filter(
            tenant_id=command.tenant_id,
            product_id=command.product_id,
        ).all()
        if existing.items:
            raise ValidationError({"product_id": ["Product is already registered"]})

        initial_quantity = command.initial_quantity or 0
        if initial_quantity < 0:
            raise InvalidQuantity("Opening stock cannot be negative", initial_quantity)

        product = ProductStock.register(
            tenant_id=command.tenant_id,
            product_id=command.product_id,
            name=command.name,
            sku=command.sku,
            interchange_code=command.interchange_code,
            location=command.location,
            unit_price=command.unit_price,
        )
        repo.add(product)

        if initial_quantity > 0:
            ledger = StockLedger(command.tenant_id)
            ledger.adopt(product)
            ledger.append(
                product_id=command.product_id,
                movement_type=MovementType.INBOUND_ADJUSTMENT,
                quantity=initial_quantity,
                actor_id=command.actor_id,
                reason="Opening balance",
            )
        return str(product.id)
