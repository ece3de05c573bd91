"""Order line editing: commands issued by the order screens.

Edits are refused while a picking job holds the order, paused or not, and
while an issue report waits for resolution.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from picking.domain import picking
from picking.order.order import SalesOrder, load_order


@picking.command(part_of="SalesOrder")
class ChangeOrderLineQuantity:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True)


@picking.command(part_of="SalesOrder")
class RemoveOrderLine:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    line_id = Identifier(required=True)


@picking.command_handler(part_of=SalesOrder)
class OrderEditingHandler:
    @handle(ChangeOrderLineQuantity)
    def change_line_quantity(self, command):
        order = load_order(command.tenant_id, command.order_id)
        order.change_line_quantity(command.line_id, command.quantity)
        current_domain.repository_for(SalesOrder).add(order)

    @handle(RemoveOrderLine)
    def remove_line(self, command):
        order = load_order(command.tenant_id, command.order_id)
        order.remove_line(command.line_id)
        current_domain.repository_for(SalesOrder).add(order)
