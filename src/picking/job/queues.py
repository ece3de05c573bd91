"""Work queues: what is waiting to be picked and what is on the floor, per tenant."""

from protean.utils.globals import current_domain

from picking.job.job import PickingJob, PickingJobStatus
from picking.order.order import OrderStatus, SalesOrder


def orders_awaiting_picking(tenant_id: str) -> list[SalesOrder]:
    """Orders ready for a picker, oldest first. Includes orders whose job is paused."""
    repo = current_domain.repository_for(SalesOrder)
    orders = repo._dao.query.filter(tenant_id=tenant_id, status=OrderStatus.AWAITING_PICKING.value).all().items
    return sorted(orders, key=lambda o: o.created_at)


def orders_pending_adjustment(tenant_id: str) -> list[SalesOrder]:
    repo = current_domain.repository_for(SalesOrder)
    orders = repo._dao.query.filter(tenant_id=tenant_id, status=OrderStatus.PENDING_ADJUSTMENT.value).all().items
    return sorted(orders, key=lambda o: o.updated_at)


def jobs_by_status(tenant_id: str, status: PickingJobStatus | str | None = None) -> list[PickingJob]:
    """A tenant's picking jobs, optionally filtered by status, oldest first."""
    criteria = {"tenant_id": tenant_id}
    if status is not None:
        criteria["status"] = PickingJobStatus(status).value
    repo = current_domain.repository_for(PickingJob)
    jobs = repo._dao.query.filter(**criteria).all().items
    return sorted(jobs, key=lambda j: j.started_at)
