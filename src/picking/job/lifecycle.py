"""Picking job lifecycle: start, pause and resume commands and handler.

Starting is idempotent per order: while a job is in progress or paused, a
second start returns that job. Pausing releases the order back to the picking
queue without losing any recorded line outcomes.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from picking.domain import logger, picking
from picking.job.job import PickingJob, active_job_for_order, load_job
from picking.order.order import SalesOrder, load_order


@picking.command(part_of="PickingJob")
class StartPicking:
    """Open a picking job for an order, or return the one already open."""

    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = Identifier(required=True)


@picking.command(part_of="PickingJob")
class PausePicking:
    tenant_id = Identifier(required=True)
    job_id = Identifier(required=True)
    operator_id = Identifier()


@picking.command(part_of="PickingJob")
class ResumePicking:
    tenant_id = Identifier(required=True)
    job_id = Identifier(required=True)
    operator_id = Identifier()


@picking.command_handler(part_of=PickingJob)
class PickingLifecycleHandler:
    @handle(StartPicking)
    def start_picking(self, command):
        order = load_order(command.tenant_id, command.order_id)

        existing = active_job_for_order(command.tenant_id, command.order_id)
        if existing is not None:
            return str(existing.id)

        job = PickingJob.create(
            tenant_id=command.tenant_id,
            order_id=command.order_id,
            operator_id=command.operator_id,
            order_lines=list(order.lines or []),
        )
        order.begin_picking(str(job.id))

        current_domain.repository_for(PickingJob).add(job)
        current_domain.repository_for(SalesOrder).add(order)
        logger.info(
            "picking_started",
            tenant_id=command.tenant_id,
            order_id=command.order_id,
            job_id=str(job.id),
            lines=len(job.line_items),
        )
        return str(job.id)

    @handle(PausePicking)
    def pause_picking(self, command):
        job = load_job(command.tenant_id, command.job_id)
        if job.pause(command.operator_id):
            order = load_order(command.tenant_id, str(job.order_id))
            order.release_for_picking(str(job.id))
            current_domain.repository_for(PickingJob).add(job)
            current_domain.repository_for(SalesOrder).add(order)
            logger.info("picking_paused", tenant_id=command.tenant_id, job_id=str(job.id))
        return job.status

    @handle(ResumePicking)
    def resume_picking(self, command):
        job = load_job(command.tenant_id, command.job_id)
        order = load_order(command.tenant_id, str(job.order_id))
        if job.resume(list(order.lines or []), command.operator_id):
            order.resume_picking(str(job.id))
            current_domain.repository_for(PickingJob).add(job)
            current_domain.repository_for(SalesOrder).add(order)
            logger.info("picking_resumed", tenant_id=command.tenant_id, job_id=str(job.id))
        return job.status
