"""Picking times: how long orders wait for a picker and how long picking takes.

Per job: wait (order registered to job started), picking (job started to
finished, time spent paused excluded) and total (order registered to job
finished). Jobs are selected by when their order was registered. Averages are
taken over the jobs that have a value, so unfinished jobs count towards the
wait average only.
"""

from dataclasses import dataclass, field
from datetime import datetime

from protean.utils.globals import current_domain

from picking.job.job import PickingJob
from picking.order.order import SalesOrder


@dataclass(frozen=True)
class PickingTimeRow:
    job_id: str
    order_id: str
    operator_id: str
    status: str
    order_created_at: datetime | None
    started_at: datetime | None
    finished_at: datetime | None
    wait_minutes: float | None
    picking_minutes: float | None
    paused_minutes: float
    total_minutes: float | None


@dataclass(frozen=True)
class PickingTimesReport:
    start: datetime | None
    end: datetime | None
    operator_id: str | None
    rows: list[PickingTimeRow] = field(default_factory=list)
    total_jobs: int = 0
    finished_jobs: int = 0
    average_wait_minutes: float | None = None
    average_picking_minutes: float | None = None
    average_total_minutes: float | None = None


def _minutes(seconds: float | None) -> float | None:
    return None if seconds is None else round(seconds / 60, 2)


def _between(earlier: datetime | None, later: datetime | None) -> float | None:
    if earlier is None or later is None:
        return None
    return max(0.0, (later - earlier).total_seconds())


def _average(values: list[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    return round(sum(present) / len(present), 2) if present else None


def picking_time_row(job: PickingJob, order: SalesOrder) -> PickingTimeRow:
    return PickingTimeRow(
        job_id=str(job.id),
        order_id=str(job.order_id),
        operator_id=str(job.operator_id),
        status=job.status,
        order_created_at=order.created_at,
        started_at=job.started_at,
        finished_at=job.finished_at,
        wait_minutes=_minutes(_between(order.created_at, job.started_at)),
        picking_minutes=_minutes(job.picking_seconds()),
        paused_minutes=_minutes(job.paused_seconds or 0.0),
        total_minutes=_minutes(_between(order.created_at, job.finished_at)),
    )


def picking_times(
    tenant_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    operator_id: str | None = None,
) -> PickingTimesReport:
    """Timings of a tenant's picking jobs for orders registered in ``[start, end]``, newest order first."""
    orders = {
        str(order.id): order
        for order in current_domain.repository_for(SalesOrder)._dao.query.filter(tenant_id=tenant_id).all().items
        if (start is None or order.created_at >= start) and (end is None or order.created_at <= end)
    }

    criteria = {"tenant_id": tenant_id}
    if operator_id is not None:
        criteria["operator_id"] = operator_id
    jobs = current_domain.repository_for(PickingJob)._dao.query.filter(**criteria).all().items

    rows = [picking_time_row(job, orders[str(job.order_id)]) for job in jobs if str(job.order_id) in orders]
    rows.sort(key=lambda row: (row.order_created_at, row.started_at), reverse=True)

    return PickingTimesReport(
        start=start,
        end=end,
        operator_id=operator_id,
        rows=rows,
        total_jobs=len(rows),
        finished_jobs=sum(1 for row in rows if row.finished_at is not None),
        average_wait_minutes=_average([row.wait_minutes for row in rows]),
        average_picking_minutes=_average([row.picking_minutes for row in rows]),
        average_total_minutes=_average([row.total_minutes for row in rows]),
    )
