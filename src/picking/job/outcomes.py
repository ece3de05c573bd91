"""Line outcomes: record or reset what happened to one line of a pick list.

Shipping outcomes (fulfilled, substituted) are checked against the current
balance of the product that will leave the shelf. Nothing is deducted here;
deductions are batched when the job is finished.
"""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from picking.domain import picking
from picking.errors import InsufficientStock
from picking.job.job import LineItemStatus, PickingJob, load_job
from picking.ledger.projector import StockProjector


@picking.command(part_of="PickingJob")
class RecordLineOutcome:
    """Record a line as fulfilled, substituted, missing or damaged."""

    tenant_id = Identifier(required=True)
    job_id = Identifier(required=True)
    line_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    quantity = Integer()
    substitute_product_id = Identifier()
    notes = Text()
    operator_id = Identifier()


@picking.command(part_of="PickingJob")
class ResetLineOutcome:
    """Return a recorded line to pending while the job is still in progress."""

    tenant_id = Identifier(required=True)
    job_id = Identifier(required=True)
    line_id = Identifier(required=True)
    operator_id = Identifier()


@picking.command_handler(part_of=PickingJob)
class LineOutcomeHandler:
    @handle(RecordLineOutcome)
    def record_line_outcome(self, command):
        job = load_job(command.tenant_id, command.job_id)
        item, quantity = job.prepare_outcome(
            command.line_id,
            command.status,
            command.quantity,
            command.substitute_product_id,
        )

        if quantity > 0:
            product_id = (
                command.substitute_product_id
                if command.status == LineItemStatus.SUBSTITUTED.value
                else str(item.product_id)
            )
            available = StockProjector(command.tenant_id).current_balance(product_id)
            if quantity > available:
                raise InsufficientStock(product_id, quantity, available)

        job.record_outcome(
            command.line_id,
            command.status,
            quantity,
            command.substitute_product_id,
            command.notes,
        )
        current_domain.repository_for(PickingJob).add(job)
        return str(item.id)

    @handle(ResetLineOutcome)
    def reset_line_outcome(self, command):
        job = load_job(command.tenant_id, command.job_id)
        job.reset_outcome(command.line_id)
        current_domain.repository_for(PickingJob).add(job)
