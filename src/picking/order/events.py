"""Sales order domain events."""

from protean.fields import DateTime, Float, Identifier, Integer, Text

from picking.domain import picking


@picking.event(part_of="SalesOrder")
class SalesOrderRegistered:
    """A confirmed order entered the picking queue."""

    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    customer_id = Identifier()
    line_count = Integer(required=True)
    total = Float(required=True)
    registered_at = DateTime(required=True)


@picking.event(part_of="SalesOrder")
class OrderLinesShortShipped:
    """Line quantities were reduced to what picking actually fulfilled."""

    __version__ = 1

    order_id = Identifier(required=True)
    job_id = Identifier(required=True)
    adjustments = Text(required=True)  # JSON {order_line_id: new_quantity}
    subtotal = Float(required=True)
    total = Float(required=True)
    adjusted_at = DateTime(required=True)


@picking.event(part_of="SalesOrder")
class OrderHeldForAdjustment:
    """Picking failed; the order waits for a decision on its issue report."""

    __version__ = 1

    order_id = Identifier(required=True)
    job_id = Identifier(required=True)
    held_at = DateTime(required=True)


@picking.event(part_of="SalesOrder")
class OrderIssuesResolved:
    """Corrective edits were applied and the order is eligible for picking again."""

    __version__ = 1

    order_id = Identifier(required=True)
    job_id = Identifier()
    actions = Text(required=True)  # JSON list of applied actions
    subtotal = Float(required=True)
    total = Float(required=True)
    resolved_at = DateTime(required=True)
