"""PickingJob aggregate (CQRS): one fulfillment attempt for one sales order.

The job owns one PickingLineItem per order line. Operators record an outcome
per line; nothing touches the stock ledger until the job is finished, when
every fulfilled quantity is deducted in one batch.

State Machine:
    IN_PROGRESS → PAUSED → IN_PROGRESS   (any number of times)
    IN_PROGRESS → COMPLETED | FAILED_MISSING | FAILED_DAMAGED   (exactly once)

Terminal jobs are immutable except for ``resolved_at``, set when the issue
report of a failed job has been acted on.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from picking.domain import picking
from picking.errors import (
    InvalidOutcome,
    InvalidQuantity,
    InvalidTransition,
    JobAlreadyTerminal,
    JobNotFinished,
    JobNotFound,
    JobNotInProgress,
    LineAlreadyRecorded,
    NoFulfillableLines,
    UnknownLine,
    UnprocessedLines,
)
from picking.job.events import (
    LineOutcomeRecorded,
    LineOutcomeReset,
    PickingFinished,
    PickingIssuesResolved,
    PickingPaused,
    PickingResumed,
    PickingStarted,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PickingJobStatus(Enum):
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED_MISSING = "failed_missing"
    FAILED_DAMAGED = "failed_damaged"


class LineItemStatus(Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    MISSING = "missing"
    DAMAGED = "damaged"
    SUBSTITUTED = "substituted"


_VALID_TRANSITIONS = {
    PickingJobStatus.IN_PROGRESS: {
        PickingJobStatus.PAUSED,
        PickingJobStatus.COMPLETED,
        PickingJobStatus.FAILED_MISSING,
        PickingJobStatus.FAILED_DAMAGED,
    },
    PickingJobStatus.PAUSED: {PickingJobStatus.IN_PROGRESS},
    PickingJobStatus.COMPLETED: set(),  # terminal
    PickingJobStatus.FAILED_MISSING: set(),  # terminal
    PickingJobStatus.FAILED_DAMAGED: set(),  # terminal
}

ACTIVE_STATUSES = {PickingJobStatus.IN_PROGRESS.value, PickingJobStatus.PAUSED.value}
TERMINAL_STATUSES = {
    PickingJobStatus.COMPLETED.value,
    PickingJobStatus.FAILED_MISSING.value,
    PickingJobStatus.FAILED_DAMAGED.value,
}

# Outcomes that ship stock to the customer
_SHIPPING_OUTCOMES = {LineItemStatus.FULFILLED.value, LineItemStatus.SUBSTITUTED.value}


@dataclass(frozen=True)
class PickingStats:
    total: int
    pending: int
    fulfilled: int
    partial: int
    substituted: int
    missing: int
    damaged: int


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@picking.entity(part_of="PickingJob")
class PickingLineItem:
    """Fulfillment record for one order line.

    A substitution keeps the original ``product_id`` for traceability and
    records the replacement in ``substituted_product_id``.
    """

    order_line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    sku = String(max_length=100)
    quantity_requested = Integer(required=True, min_value=1)
    quantity_fulfilled = Integer(default=0, min_value=0)
    status = String(
        max_length=20,
        choices=LineItemStatus,
        default=LineItemStatus.PENDING.value,
    )
    substituted_product_id = Identifier()
    notes = Text()
    recorded_at = DateTime()

    def deducted_product_id(self) -> str:
        """The product whose stock leaves the shelf for this line."""
        return str(self.substituted_product_id or self.product_id)

    def is_partial(self) -> bool:
        return self.status in _SHIPPING_OUTCOMES and 0 < (self.quantity_fulfilled or 0) < self.quantity_requested


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@picking.aggregate
class PickingJob:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = Identifier(required=True)
    status = String(
        max_length=20,
        choices=PickingJobStatus,
        default=PickingJobStatus.IN_PROGRESS.value,
    )
    line_items = HasMany(PickingLineItem)
    started_at = DateTime()
    paused_at = DateTime()
    paused_seconds = Float(default=0.0)  # accumulated over every pause/resume cycle
    finished_at = DateTime()
    finished_by = Identifier()
    resolved_at = DateTime()

    @invariant.post
    def fulfilled_never_exceeds_requested(self):
        for item in self.line_items or []:
            if (item.quantity_fulfilled or 0) > item.quantity_requested:
                raise ValidationError(
                    {"quantity_fulfilled": [f"Line {item.id} fulfils more than the {item.quantity_requested} requested"]}
                )

    @invariant.post
    def quantities_agree_with_line_status(self):
        for item in self.line_items or []:
            shipped = item.quantity_fulfilled or 0
            if shipped > 0 and item.status not in _SHIPPING_OUTCOMES:
                raise ValidationError({"status": [f"Line {item.id} is {item.status} but records a fulfilled quantity"]})
            if shipped == 0 and item.status in _SHIPPING_OUTCOMES:
                raise ValidationError({"quantity_fulfilled": [f"Line {item.id} is {item.status} with nothing picked"]})

    @invariant.post
    def substitutions_name_a_different_product(self):
        for item in self.line_items or []:
            if item.status != LineItemStatus.SUBSTITUTED.value:
                continue
            if not item.substituted_product_id or item.substituted_product_id == item.product_id:
                raise ValidationError({"substituted_product_id": [f"Line {item.id} needs a different product"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, tenant_id: str, order_id: str, operator_id: str, order_lines: list):
        """Open a job with one pending line item per order line."""
        if not order_lines:
            raise NoFulfillableLines(order_id)

        now = datetime.now(UTC)
        job = cls(
            tenant_id=tenant_id,
            order_id=order_id,
            operator_id=operator_id,
            status=PickingJobStatus.IN_PROGRESS.value,
            started_at=now,
        )
        job._materialize(order_lines)
        job.raise_(
            PickingStarted(
                job_id=str(job.id),
                tenant_id=tenant_id,
                order_id=order_id,
                operator_id=operator_id,
                line_count=len(order_lines),
                started_at=now,
            )
        )
        return job

    def _materialize(self, order_lines: list) -> None:
        for line in order_lines:
            self.add_line_items(
                PickingLineItem(
                    order_line_id=str(line.id),
                    product_id=str(line.product_id),
                    product_name=line.product_name,
                    sku=line.sku,
                    quantity_requested=line.quantity,
                )
            )

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _assert_can_transition(self, target_status: PickingJobStatus) -> None:
        if self.is_terminal():
            raise JobAlreadyTerminal(str(self.id), self.status)
        current = PickingJobStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target_status.value)

    def _assert_in_progress(self) -> None:
        if self.is_terminal():
            raise JobAlreadyTerminal(str(self.id), self.status)
        if self.status != PickingJobStatus.IN_PROGRESS.value:
            raise JobNotInProgress(str(self.id), self.status)

    def line_item(self, line_id: str) -> PickingLineItem:
        item = next((i for i in (self.line_items or []) if str(i.id) == str(line_id)), None)
        if item is None:
            raise UnknownLine(line_id, "picking job")
        return item

    # -------------------------------------------------------------------
    # Pause / resume
    # -------------------------------------------------------------------
    def pause(self, operator_id: str | None = None) -> bool:
        """Pause the job. Returns False when it was already paused."""
        if self.status == PickingJobStatus.PAUSED.value:
            return False
        self._assert_can_transition(PickingJobStatus.PAUSED)

        now = datetime.now(UTC)
        self.status = PickingJobStatus.PAUSED.value
        self.paused_at = now
        self.raise_(
            PickingPaused(
                job_id=str(self.id),
                order_id=str(self.order_id),
                operator_id=operator_id,
                paused_at=now,
            )
        )
        return True

    def resume(self, order_lines: list, operator_id: str | None = None) -> bool:
        """Resume a paused job. Returns False when it was already in progress.

        Line items are rebuilt from ``order_lines`` only when the job has none,
        so recorded progress is never overwritten.
        """
        if self.status == PickingJobStatus.IN_PROGRESS.value:
            return False
        self._assert_can_transition(PickingJobStatus.IN_PROGRESS)

        regenerated = 0
        if not self.line_items:
            if not order_lines:
                raise NoFulfillableLines(str(self.order_id))
            self._materialize(order_lines)
            regenerated = len(order_lines)

        now = datetime.now(UTC)
        paused_for = (now - self.paused_at).total_seconds() if self.paused_at else 0.0
        self.status = PickingJobStatus.IN_PROGRESS.value
        self.paused_at = None
        self.paused_seconds = (self.paused_seconds or 0.0) + paused_for
        self.raise_(
            PickingResumed(
                job_id=str(self.id),
                order_id=str(self.order_id),
                operator_id=operator_id,
                regenerated_lines=regenerated,
                paused_seconds=paused_for,
                resumed_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Line outcomes
    # -------------------------------------------------------------------
    def record_outcome(
        self,
        line_id: str,
        status: str,
        quantity: int | None = None,
        substitute_product_id: str | None = None,
        notes: str | None = None,
    ) -> PickingLineItem:
        """Record what happened to a line. Stock is checked by the caller."""
        item, quantity = self.prepare_outcome(line_id, status, quantity, substitute_product_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            item.status = status
            item.quantity_fulfilled = quantity
            item.substituted_product_id = substitute_product_id if status == LineItemStatus.SUBSTITUTED.value else None
            item.notes = notes
            item.recorded_at = now

        self.raise_(
            LineOutcomeRecorded(
                job_id=str(self.id),
                line_id=str(item.id),
                product_id=str(item.product_id),
                status=status,
                quantity_requested=item.quantity_requested,
                quantity_fulfilled=quantity,
                substituted_product_id=item.substituted_product_id,
                notes=notes,
                recorded_at=now,
            )
        )
        return item

    def prepare_outcome(
        self,
        line_id: str,
        status: str,
        quantity: int | None,
        substitute_product_id: str | None,
    ) -> tuple[PickingLineItem, int]:
        """Check an outcome can be recorded; return the line and the quantity to store."""
        self._assert_in_progress()
        item = self.line_item(line_id)
        if item.status != LineItemStatus.PENDING.value:
            raise LineAlreadyRecorded(str(item.id), item.status)

        valid = {s.value for s in LineItemStatus} - {LineItemStatus.PENDING.value}
        if status not in valid:
            raise InvalidOutcome("status", f"Outcome must be one of {sorted(valid)}")

        if status in _SHIPPING_OUTCOMES:
            if quantity is None or quantity < 1:
                raise InvalidQuantity("A fulfilled line needs a quantity of at least 1", quantity)
            if quantity > item.quantity_requested:
                raise InvalidQuantity(
                    f"Quantity {quantity} exceeds the {item.quantity_requested} requested",
                    quantity,
                )
            if status == LineItemStatus.SUBSTITUTED.value:
                if not substitute_product_id:
                    raise InvalidOutcome("substitute_product_id", "A substitution needs a replacement product")
                if str(substitute_product_id) == str(item.product_id):
                    raise InvalidOutcome("substitute_product_id", "A product cannot substitute itself")
            return item, quantity

        if quantity:
            raise InvalidQuantity(f"A {status} line cannot record a fulfilled quantity", quantity)
        return item, 0

    def reset_outcome(self, line_id: str) -> PickingLineItem:
        """Put a recorded line back to pending so the operator can correct it."""
        self._assert_in_progress()
        item = self.line_item(line_id)
        previous = item.status
        if previous == LineItemStatus.PENDING.value:
            return item

        now = datetime.now(UTC)
        with atomic_change(self):
            item.status = LineItemStatus.PENDING.value
            item.quantity_fulfilled = 0
            item.substituted_product_id = None
            item.notes = None
            item.recorded_at = None

        self.raise_(
            LineOutcomeReset(
                job_id=str(self.id),
                line_id=str(item.id),
                previous_status=previous,
                reset_at=now,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Finish
    # -------------------------------------------------------------------
    def pending_line_ids(self) -> list[str]:
        return [str(i.id) for i in (self.line_items or []) if i.status == LineItemStatus.PENDING.value]

    def deducting_items(self) -> list[PickingLineItem]:
        """Line items that take stock off the shelf, in pick order."""
        return [i for i in (self.line_items or []) if (i.quantity_fulfilled or 0) > 0]

    def stock_requirements(self) -> dict[str, int]:
        """Total quantity to deduct per product."""
        requirements: dict[str, int] = {}
        for item in self.deducting_items():
            product_id = item.deducted_product_id()
            requirements[product_id] = requirements.get(product_id, 0) + item.quantity_fulfilled
        return requirements

    def assert_can_finish(self) -> None:
        if self.is_terminal():
            raise JobAlreadyTerminal(str(self.id), self.status)
        if self.status != PickingJobStatus.IN_PROGRESS.value:
            raise InvalidTransition(self.status, PickingJobStatus.COMPLETED.value)
        pending = self.pending_line_ids()
        if pending:
            raise UnprocessedLines(pending)

    def outcome_status(self) -> PickingJobStatus:
        statuses = {i.status for i in (self.line_items or [])}
        if LineItemStatus.DAMAGED.value in statuses:
            return PickingJobStatus.FAILED_DAMAGED
        if LineItemStatus.MISSING.value in statuses:
            return PickingJobStatus.FAILED_MISSING
        return PickingJobStatus.COMPLETED

    def finish(self, operator_id: str) -> PickingJobStatus:
        """Move to the terminal status the line outcomes call for."""
        self.assert_can_finish()
        target = self.outcome_status()
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        self.status = target.value
        self.finished_at = now
        self.finished_by = operator_id

        stats = self.stats()
        self.raise_(
            PickingFinished(
                job_id=str(self.id),
                order_id=str(self.order_id),
                status=target.value,
                finished_by=operator_id,
                fulfilled_lines=stats.fulfilled + stats.substituted,
                missing_lines=stats.missing,
                damaged_lines=stats.damaged,
                partial_lines=stats.partial,
                finished_at=now,
            )
        )
        return target

    def picking_seconds(self) -> float | None:
        """Time spent picking, start to finish, without the time spent paused."""
        if self.finished_at is None or self.started_at is None:
            return None
        elapsed = (self.finished_at - self.started_at).total_seconds()
        return max(0.0, elapsed - (self.paused_seconds or 0.0))

    def mark_resolved(self) -> None:
        """Link the job to the resolution of its issue report."""
        if not self.is_terminal():
            raise JobNotFinished(str(self.id), self.status)
        now = datetime.now(UTC)
        self.resolved_at = now
        self.raise_(
            PickingIssuesResolved(
                job_id=str(self.id),
                order_id=str(self.order_id),
                resolved_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------
    def stats(self) -> PickingStats:
        items = self.line_items or []

        def count(status: LineItemStatus) -> int:
            return sum(1 for i in items if i.status == status.value)

        return PickingStats(
            total=len(items),
            pending=count(LineItemStatus.PENDING),
            fulfilled=count(LineItemStatus.FULFILLED),
            partial=sum(1 for i in items if i.is_partial()),
            substituted=count(LineItemStatus.SUBSTITUTED),
            missing=count(LineItemStatus.MISSING),
            damaged=count(LineItemStatus.DAMAGED),
        )


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def load_job(tenant_id: str, job_id: str) -> PickingJob:
    """Fetch a tenant's picking job; another tenant's job reads as not found."""
    try:
        job = current_domain.repository_for(PickingJob).get(job_id)
    except ObjectNotFoundError as exc:
        raise JobNotFound(job_id) from exc
    if str(job.tenant_id) != str(tenant_id):
        raise JobNotFound(job_id)
    return job


def jobs_for_order(tenant_id: str, order_id: str) -> list[PickingJob]:
    repo = current_domain.repository_for(PickingJob)
    jobs = repo._dao.query.filter(tenant_id=tenant_id, order_id=order_id).all().items
    return sorted(jobs, key=lambda j: j.started_at)


def active_job_for_order(tenant_id: str, order_id: str) -> PickingJob | None:
    active = [job for job in jobs_for_order(tenant_id, order_id) if job.is_active()]
    return active[0] if active else None
