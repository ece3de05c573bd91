"""Sales order registration: command and handler.

Orders arrive from the sales collaborator once confirmed. Each line must name
a product known to picking; missing names, codes and prices are filled in
from the product record.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Text
from protean.utils.globals import current_domain

from picking.catalogue.product import find_product
from picking.domain import logger, picking
from picking.order.order import SalesOrder


@picking.command(part_of="SalesOrder")
class RegisterSalesOrder:
    """Queue a confirmed sales order for picking."""

    tenant_id = Identifier(required=True)
    customer_id = Identifier()
    lines = Text(required=True)  # JSON list of {product_id, quantity, unit_price, discount, ...}
    discount = Float(default=0.0)


@picking.command_handler(part_of=SalesOrder)
class SalesOrderRegistrationHandler:
    @handle(RegisterSalesOrder)
    def register_sales_order(self, command):
        lines_data = []
        for raw in json.loads(command.lines):
            product = find_product(command.tenant_id, raw["product_id"])
            lines_data.append(
                {
                    "product_id": raw["product_id"],
                    "product_name": raw.get("product_name") or product.name,
                    "sku": raw.get("sku") or product.sku,
                    "quantity": raw.get("quantity"),
                    "unit_price": raw.get("unit_price", product.unit_price),
                    "discount": raw.get("discount") or 0.0,
                }
            )

        order = SalesOrder.create(
            tenant_id=command.tenant_id,
            lines_data=lines_data,
            customer_id=command.customer_id,
            discount=command.discount,
        )
        current_domain.repository_for(SalesOrder).add(order)
        logger.info("sales_order_registered", tenant_id=command.tenant_id, order_id=str(order.id))
        return str(order.id)
