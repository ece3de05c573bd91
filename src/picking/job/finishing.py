"""Finish picking: close a job and deduct what was picked, all or nothing.

Stock is validated for every deducting line, grouped per product, before the
first ledger entry is written. One ``outbound_picking`` entry is then appended
per deducting line item, referencing the job. A completed job short-ships its
partial lines on the order; a failed job stores its issue report on the order
and holds it for adjustment. Job, order, products and ledger entries commit in
one unit of work.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from picking.domain import logger, picking
from picking.issues.report import issue_report_for
from picking.job.job import PickingJob, PickingJobStatus, load_job
from picking.ledger.ledger import StockLedger
from picking.ledger.movement import MovementType, ReferenceKind, reference_for
from picking.order.order import SalesOrder, load_order


@picking.command(part_of="PickingJob")
class FinishPicking:
    tenant_id = Identifier(required=True)
    job_id = Identifier(required=True)
    operator_id = Identifier(required=True)


@picking.command_handler(part_of=PickingJob)
class FinishPickingHandler:
    @handle(FinishPicking)
    def finish_picking(self, command):
        job = load_job(command.tenant_id, command.job_id)
        job.assert_can_finish()
        order = load_order(command.tenant_id, str(job.order_id))

        ledger = StockLedger(command.tenant_id)
        ledger.ensure_available(job.stock_requirements())

        reference = reference_for(ReferenceKind.PICKING_JOB.value, str(job.id))
        for item in job.deducting_items():
            ledger.append(
                product_id=item.deducted_product_id(),
                movement_type=MovementType.OUTBOUND_PICKING,
                quantity=item.quantity_fulfilled,
                reference=reference,
                actor_id=command.operator_id,
            )

        status = job.finish(command.operator_id)
        if status == PickingJobStatus.COMPLETED:
            order.mark_picked(
                str(job.id),
                {str(item.order_line_id): item.quantity_fulfilled for item in job.line_items if item.is_partial()},
            )
        else:
            report = issue_report_for(job, on_hand=ledger.balances())
            order.hold_for_adjustment(str(job.id), report.to_json())

        current_domain.repository_for(PickingJob).add(job)
        current_domain.repository_for(SalesOrder).add(order)
        logger.info(
            "picking_finished",
            tenant_id=command.tenant_id,
            job_id=str(job.id),
            order_id=str(job.order_id),
            status=status.value,
            deductions=len(job.deducting_items()),
        )
        return status.value
