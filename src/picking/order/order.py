"""SalesOrder aggregate (CQRS): the order as picking sees it.

The order is owned by the sales collaborator; picking keeps the lines, the
pricing totals and the fulfillment status it needs to lock the order while a
picking job is active and to apply corrective edits afterwards.

State Machine:
    AWAITING_PICKING → IN_PICKING                 (job started or resumed)
    IN_PICKING → AWAITING_PICKING                 (job paused)
    IN_PICKING → PICKED                           (job completed)
    IN_PICKING → PENDING_ADJUSTMENT               (job failed, issue report stored)
    PENDING_ADJUSTMENT → AWAITING_PICKING         (issues resolved)

Line edits from the order screens are accepted only while the order is
AWAITING_PICKING with no active job; a paused job keeps the order locked.
Issue resolution edits are accepted only while PENDING_ADJUSTMENT.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from picking.domain import picking
from picking.errors import (
    DuplicateActiveJob,
    InvalidQuantity,
    InvalidTransition,
    IssueResolutionPending,
    OrderLocked,
    OrderNotEligible,
    OrderNotFound,
    UnknownLine,
)
from picking.order.events import (
    OrderHeldForAdjustment,
    OrderIssuesResolved,
    OrderLinesShortShipped,
    SalesOrderRegistered,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    AWAITING_PICKING = "awaiting_picking"
    IN_PICKING = "in_picking"
    PICKED = "picked"
    PENDING_ADJUSTMENT = "pending_adjustment"


class ResolutionAction(Enum):
    REMOVE = "remove"
    SUBSTITUTE = "substitute"
    ADJUST_QUANTITY = "adjust_quantity"
    KEEP = "keep"


@dataclass(frozen=True)
class LineCorrection:
    """A resolved decision, translated onto one order line."""

    order_line_id: str
    action: ResolutionAction
    quantity: int | None = None
    product_id: str | None = None
    product_name: str | None = None
    sku: str | None = None
    unit_price: float | None = None
    discount: float | None = None

    def to_dict(self) -> dict:
        return {
            "order_line_id": self.order_line_id,
            "action": self.action.value,
            "quantity": self.quantity,
            "product_id": self.product_id,
        }


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@picking.entity(part_of="SalesOrder")
class OrderLine:
    """A product line of the order with its price and discount."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    sku = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@picking.aggregate
class SalesOrder:
    tenant_id = Identifier(required=True)
    customer_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.AWAITING_PICKING.value)
    lines = HasMany(OrderLine)
    discount = Float(default=0.0)
    subtotal = Float(default=0.0)
    total = Float(default=0.0)
    active_job_id = Identifier()
    issue_report = Text()  # JSON issue report of the failed job awaiting resolution
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def issue_report_only_while_pending_adjustment(self):
        pending = self.status == OrderStatus.PENDING_ADJUSTMENT.value
        if pending != bool(self.issue_report):
            raise ValidationError({"issue_report": ["An issue report exists exactly while adjustment is pending"]})

    @invariant.post
    def active_job_only_while_picking_or_paused(self):
        if self.active_job_id and self.status not in (
            OrderStatus.IN_PICKING.value,
            OrderStatus.AWAITING_PICKING.value,
        ):
            raise ValidationError({"active_job_id": ["Only an order being picked can have an active job"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        tenant_id: str,
        lines_data: list[dict],
        customer_id: str | None = None,
        discount: float = 0.0,
    ):
        now = datetime.now(UTC)
        order = cls(
            tenant_id=tenant_id,
            customer_id=customer_id,
            status=OrderStatus.AWAITING_PICKING.value,
            discount=discount or 0.0,
            created_at=now,
            updated_at=now,
        )
        for line_data in lines_data:
            order.add_lines(OrderLine(**line_data))
        order._recalculate_totals()
        order.raise_(
            SalesOrderRegistered(
                order_id=str(order.id),
                tenant_id=tenant_id,
                customer_id=customer_id,
                line_count=len(lines_data),
                total=order.total,
                registered_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _recalculate_totals(self) -> None:
        subtotal = 0.0
        for line in self.lines or []:
            line.total = round(max(0.0, (line.unit_price or 0.0) * line.quantity - (line.discount or 0.0)), 2)
            subtotal += line.total
        self.subtotal = round(subtotal, 2)
        self.total = round(max(0.0, self.subtotal - (self.discount or 0.0)), 2)

    def line(self, line_id: str) -> OrderLine:
        line = next((line for line in (self.lines or []) if str(line.id) == str(line_id)), None)
        if line is None:
            raise UnknownLine(line_id, "order")
        return line

    def assert_editable(self) -> None:
        # A paused job still holds the order
        if self.active_job_id:
            raise OrderLocked(str(self.id), self.status, str(self.active_job_id))
        if self.status != OrderStatus.AWAITING_PICKING.value:
            raise OrderLocked(str(self.id), self.status)

    # -------------------------------------------------------------------
    # Picking lock
    # -------------------------------------------------------------------
    def begin_picking(self, job_id: str) -> None:
        """Lock the order for a newly started picking job."""
        if self.active_job_id:
            raise DuplicateActiveJob(str(self.id), str(self.active_job_id))
        if self.status == OrderStatus.PENDING_ADJUSTMENT.value:
            raise IssueResolutionPending(str(self.id))
        if self.status != OrderStatus.AWAITING_PICKING.value:
            raise OrderNotEligible(str(self.id), self.status)

        with atomic_change(self):
            self.active_job_id = job_id
            self.status = OrderStatus.IN_PICKING.value
            self.updated_at = datetime.now(UTC)

    def release_for_picking(self, job_id: str) -> None:
        """The active job was paused; the order rejoins the queue but stays held by the job."""
        self._assert_active_job(job_id)
        self.status = OrderStatus.AWAITING_PICKING.value
        self.updated_at = datetime.now(UTC)

    def resume_picking(self, job_id: str) -> None:
        self._assert_active_job(job_id)
        self.status = OrderStatus.IN_PICKING.value
        self.updated_at = datetime.now(UTC)

    def _assert_active_job(self, job_id: str) -> None:
        if str(self.active_job_id or "") != str(job_id):
            raise InvalidTransition(self.status, f"picking by job {job_id}")

    def mark_picked(self, job_id: str, fulfilled_quantities: dict[str, int]) -> None:
        """Completed picking: shrink short-shipped lines and await verification."""
        self._assert_active_job(job_id)
        now = datetime.now(UTC)

        adjustments = {}
        for line_id, quantity in fulfilled_quantities.items():
            line = self.line(line_id)
            if 0 < quantity < line.quantity:
                line.quantity = quantity
                adjustments[str(line.id)] = quantity

        with atomic_change(self):
            self.active_job_id = None
            self.status = OrderStatus.PICKED.value
            self._recalculate_totals()
            self.updated_at = now

        if adjustments:
            self.raise_(
                OrderLinesShortShipped(
                    order_id=str(self.id),
                    job_id=job_id,
                    adjustments=json.dumps(adjustments),
                    subtotal=self.subtotal,
                    total=self.total,
                    adjusted_at=now,
                )
            )

    def hold_for_adjustment(self, job_id: str, issue_report: str) -> None:
        """Failed picking: store the issue report and wait for a decision."""
        self._assert_active_job(job_id)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.active_job_id = None
            self.status = OrderStatus.PENDING_ADJUSTMENT.value
            self.issue_report = issue_report
            self.updated_at = now
        self.raise_(
            OrderHeldForAdjustment(
                order_id=str(self.id),
                job_id=job_id,
                held_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Line editing (order screens)
    # -------------------------------------------------------------------
    def change_line_quantity(self, line_id: str, quantity: int) -> None:
        self.assert_editable()
        if quantity is None or quantity < 1:
            raise InvalidQuantity("Order line quantity must be at least 1", quantity)
        self.line(line_id).quantity = quantity
        self._recalculate_totals()
        self.updated_at = datetime.now(UTC)

    def remove_line(self, line_id: str) -> None:
        self.assert_editable()
        self.remove_lines(self.line(line_id))
        self._recalculate_totals()
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Issue resolution
    # -------------------------------------------------------------------
    def resolve_issues(self, job_id: str | None, corrections: list[LineCorrection]) -> None:
        """Apply corrective edits, clear the issue report and re-queue the order."""
        if self.status != OrderStatus.PENDING_ADJUSTMENT.value:
            raise InvalidTransition(self.status, OrderStatus.AWAITING_PICKING.value)

        now = datetime.now(UTC)
        with atomic_change(self):
            for correction in corrections:
                self._apply_correction(correction)
            self._recalculate_totals()
            self.issue_report = None
            self.status = OrderStatus.AWAITING_PICKING.value
            self.updated_at = now

        self.raise_(
            OrderIssuesResolved(
                order_id=str(self.id),
                job_id=job_id,
                actions=json.dumps([c.to_dict() for c in corrections]),
                subtotal=self.subtotal,
                total=self.total,
                resolved_at=now,
            )
        )

    def _apply_correction(self, correction: LineCorrection) -> None:
        line = self.line(correction.order_line_id)
        if correction.action == ResolutionAction.REMOVE:
            self.remove_lines(line)
        elif correction.action == ResolutionAction.ADJUST_QUANTITY:
            if correction.quantity == 0:
                self.remove_lines(line)
            else:
                line.quantity = correction.quantity
        elif correction.action == ResolutionAction.SUBSTITUTE:
            line.product_id = correction.product_id
            line.product_name = correction.product_name
            line.sku = correction.sku
            line.unit_price = correction.unit_price
            line.discount = correction.discount


def load_order(tenant_id: str, order_id: str) -> SalesOrder:
    """Fetch a tenant's order; another tenant's order reads as not found."""
    try:
        order = current_domain.repository_for(SalesOrder).get(order_id)
    except ObjectNotFoundError as exc:
        raise OrderNotFound(order_id) from exc
    if str(order.tenant_id) != str(tenant_id):
        raise OrderNotFound(order_id)
    return order
