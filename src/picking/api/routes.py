"""FastAPI routes for the Picking domain.

Every route takes the tenant from the ``X-Tenant-ID`` header. Writes go
through :mod:`picking.operations` so they run inside the same critical
sections as any other caller.
"""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Header, Query

from picking import operations
from picking.api.schemas import (
    BalanceReportResponse,
    ChangeLineQuantityRequest,
    FinishPickingRequest,
    ImportCountResponse,
    ImportLegacyHistoryRequest,
    IssueReportResponse,
    JobIdResponse,
    LineItemIdResponse,
    LineItemResponse,
    LineOutcomeRequest,
    MovementIdResponse,
    MovementResponse,
    OperatorRequest,
    OrderIdResponse,
    OrderLineResponse,
    OrderResponse,
    PickingJobResponse,
    PickingStatsResponse,
    PickingTimesResponse,
    PickStopResponse,
    ProductIdResponse,
    RecordMovementRequest,
    RegisterOrderRequest,
    RegisterProductRequest,
    ReplayCheckResponse,
    ResolutionRequest,
    StartPickingRequest,
    StatusResponse,
    StockResponse,
)
from picking.catalogue.product import find_product
from picking.errors import NoActiveIssueReport, UnknownMovementType
from picking.issues.report import IssueReport
from picking.job.job import PickingJobStatus, load_job
from picking.job.pick_path import pick_path_for
from picking.job.queues import jobs_by_status, orders_awaiting_picking
from picking.job.times import picking_times
from picking.ledger.ledger import query_movements
from picking.ledger.movement import MovementType
from picking.ledger.projector import StockProjector
from picking.order.order import load_order

product_router = APIRouter(prefix="/products", tags=["products"])
order_router = APIRouter(prefix="/orders", tags=["orders"])
picking_router = APIRouter(prefix="/picking-jobs", tags=["picking"])


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------
def _movement_response(movement) -> MovementResponse:
    reference = movement.reference
    return MovementResponse(
        movement_id=str(movement.id),
        product_id=str(movement.product_id),
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        balance_before=movement.balance_before,
        balance_after=movement.balance_after,
        occurred_at=movement.occurred_at,
        sequence=movement.sequence,
        reference_kind=reference.kind if reference else None,
        reference_id=reference.ref_id if reference else None,
        actor_id=movement.actor_id,
        reason=movement.reason,
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        customer_id=order.customer_id,
        status=order.status,
        active_job_id=str(order.active_job_id) if order.active_job_id else None,
        subtotal=order.subtotal,
        discount=order.discount,
        total=order.total,
        lines=[
            OrderLineResponse(
                line_id=str(line.id),
                product_id=str(line.product_id),
                product_name=line.product_name,
                sku=line.sku,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                total=line.total,
            )
            for line in order.lines or []
        ],
        created_at=order.created_at,
    )


def _job_response(job) -> PickingJobResponse:
    return PickingJobResponse(
        job_id=str(job.id),
        order_id=str(job.order_id),
        operator_id=str(job.operator_id),
        status=job.status,
        started_at=job.started_at,
        paused_at=job.paused_at,
        finished_at=job.finished_at,
        finished_by=job.finished_by,
        resolved_at=job.resolved_at,
        line_items=[
            LineItemResponse(
                line_item_id=str(item.id),
                order_line_id=str(item.order_line_id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                sku=item.sku,
                quantity_requested=item.quantity_requested,
                quantity_fulfilled=item.quantity_fulfilled or 0,
                status=item.status,
                substituted_product_id=item.substituted_product_id,
                notes=item.notes,
            )
            for item in job.line_items or []
        ],
    )


def _movement_types(raw_types: list[str] | None) -> list[MovementType] | None:
    if not raw_types:
        return None
    types = []
    for raw in raw_types:
        try:
            types.append(MovementType(raw))
        except ValueError as exc:
            raise UnknownMovementType(raw) from exc
    return types


# ---------------------------------------------------------------------------
# Products and ledger
# ---------------------------------------------------------------------------
@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, x_tenant_id: str = Header()) -> ProductIdResponse:
    """Make a product known to picking, with an optional opening balance."""
    operations.register_product(
        tenant_id=x_tenant_id,
        product_id=body.product_id,
        name=body.name,
        sku=body.sku,
        interchange_code=body.interchange_code,
        location=body.location,
        unit_price=body.unit_price,
        initial_quantity=body.initial_quantity,
        actor_id=body.actor_id,
    )
    return ProductIdResponse(product_id=body.product_id)


@product_router.get("/{product_id}/stock", response_model=StockResponse)
async def get_stock(product_id: str, x_tenant_id: str = Header()) -> StockResponse:
    product = find_product(x_tenant_id, product_id)
    return StockResponse(
        product_id=str(product.product_id),
        name=product.name,
        sku=product.sku,
        location=product.location,
        is_active=product.is_active,
        on_hand=product.on_hand or 0,
    )


@product_router.post("/{product_id}/movements", status_code=201, response_model=MovementIdResponse)
async def record_movement(
    product_id: str,
    body: RecordMovementRequest,
    x_tenant_id: str = Header(),
) -> MovementIdResponse:
    """Append a purchase, return, sale, manual, adjustment or transfer entry."""
    if body.movement_type not in {t.value for t in MovementType}:
        raise UnknownMovementType(body.movement_type)
    movement_id = operations.record_stock_movement(
        tenant_id=x_tenant_id,
        product_id=product_id,
        movement_type=body.movement_type,
        quantity=body.quantity,
        actor_id=body.actor_id,
        reference_kind=body.reference_kind,
        reference_id=body.reference_id,
        reason=body.reason,
        location_from=body.location_from,
        location_to=body.location_to,
    )
    return MovementIdResponse(movement_id=movement_id)


@product_router.get("/{product_id}/movements", response_model=list[MovementResponse])
async def list_movements(
    product_id: str,
    x_tenant_id: str = Header(),
    start: datetime | None = None,
    end: datetime | None = None,
    movement_type: list[str] | None = Query(None),
    actor_id: str | None = None,
    reference_kind: str | None = None,
    reference_id: str | None = None,
) -> list[MovementResponse]:
    find_product(x_tenant_id, product_id)
    movements = query_movements(
        x_tenant_id,
        product_id=product_id,
        start=start,
        end=end,
        movement_types=_movement_types(movement_type),
        actor_id=actor_id,
        reference_kind=reference_kind,
        reference_id=reference_id,
    )
    return [_movement_response(m) for m in movements]


@product_router.post("/{product_id}/legacy-history", status_code=201, response_model=ImportCountResponse)
async def import_legacy_history(
    product_id: str,
    body: ImportLegacyHistoryRequest,
    x_tenant_id: str = Header(),
) -> ImportCountResponse:
    """Backfill a product's history from the legacy system."""
    count = operations.import_legacy_history(
        tenant_id=x_tenant_id,
        product_id=product_id,
        movements=[m.model_dump() for m in body.movements],
        current_on_hand=body.current_on_hand,
        actor_id=body.actor_id,
    )
    return ImportCountResponse(imported=count)


@product_router.get("/{product_id}/balance-report", response_model=BalanceReportResponse)
async def balance_report(
    product_id: str,
    x_tenant_id: str = Header(),
    start: datetime | None = None,
    end: datetime | None = None,
) -> BalanceReportResponse:
    report = StockProjector(x_tenant_id).reconstruct_balances(product_id, start, end)
    return BalanceReportResponse(**asdict(report))


@product_router.get("/{product_id}/replay-check", response_model=ReplayCheckResponse)
async def replay_check(product_id: str, x_tenant_id: str = Header()) -> ReplayCheckResponse:
    check = StockProjector(x_tenant_id).verify_replay(product_id)
    return ReplayCheckResponse(**asdict(check), consistent=check.consistent)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def register_order(body: RegisterOrderRequest, x_tenant_id: str = Header()) -> OrderIdResponse:
    lines = [line.model_dump(exclude_none=True) for line in body.lines]
    order_id = operations.register_sales_order(
        tenant_id=x_tenant_id,
        lines=lines,
        customer_id=body.customer_id,
        discount=body.discount,
    )
    return OrderIdResponse(order_id=order_id)


@order_router.get("/awaiting-picking", response_model=list[OrderResponse])
async def awaiting_picking(x_tenant_id: str = Header()) -> list[OrderResponse]:
    return [_order_response(order) for order in orders_awaiting_picking(x_tenant_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, x_tenant_id: str = Header()) -> OrderResponse:
    return _order_response(load_order(x_tenant_id, order_id))


@order_router.put("/{order_id}/lines/{line_id}", response_model=StatusResponse)
async def change_line_quantity(
    order_id: str,
    line_id: str,
    body: ChangeLineQuantityRequest,
    x_tenant_id: str = Header(),
) -> StatusResponse:
    operations.change_order_line_quantity(x_tenant_id, order_id, line_id, body.quantity)
    return StatusResponse()


@order_router.delete("/{order_id}/lines/{line_id}", response_model=StatusResponse)
async def remove_line(order_id: str, line_id: str, x_tenant_id: str = Header()) -> StatusResponse:
    operations.remove_order_line(x_tenant_id, order_id, line_id)
    return StatusResponse()


@order_router.get("/{order_id}/issue-report", response_model=IssueReportResponse)
async def get_issue_report(order_id: str, x_tenant_id: str = Header()) -> IssueReportResponse:
    """The issue report stored on the order when its picking job failed."""
    order = load_order(x_tenant_id, order_id)
    if not order.issue_report:
        raise NoActiveIssueReport(order_id)
    return IssueReportResponse(**asdict(IssueReport.from_json(order.issue_report)))


@order_router.post("/{order_id}/resolution", response_model=StatusResponse)
async def apply_resolution(order_id: str, body: ResolutionRequest, x_tenant_id: str = Header()) -> StatusResponse:
    status = operations.apply_resolution(
        tenant_id=x_tenant_id,
        order_id=order_id,
        decisions={line_id: decision.model_dump() for line_id, decision in body.decisions.items()},
        operator_id=body.operator_id,
    )
    return StatusResponse(status=status)


# ---------------------------------------------------------------------------
# Picking jobs
# ---------------------------------------------------------------------------
@picking_router.post("", status_code=201, response_model=JobIdResponse)
async def start_picking(body: StartPickingRequest, x_tenant_id: str = Header()) -> JobIdResponse:
    """Open a picking job for an order, or return the one already open."""
    job_id = operations.start_picking(x_tenant_id, body.order_id, body.operator_id)
    return JobIdResponse(job_id=job_id)


@picking_router.get("", response_model=list[PickingJobResponse])
async def list_jobs(
    x_tenant_id: str = Header(),
    status: PickingJobStatus | None = None,
) -> list[PickingJobResponse]:
    return [_job_response(job) for job in jobs_by_status(x_tenant_id, status)]


@picking_router.get("/times", response_model=PickingTimesResponse)
async def picking_times_report(
    x_tenant_id: str = Header(),
    start: datetime | None = None,
    end: datetime | None = None,
    operator_id: str | None = None,
) -> PickingTimesResponse:
    """Wait, picking and total times for jobs of orders registered in the range."""
    report = picking_times(x_tenant_id, start, end, operator_id)
    return PickingTimesResponse(**asdict(report))


@picking_router.get("/{job_id}", response_model=PickingJobResponse)
async def get_job(job_id: str, x_tenant_id: str = Header()) -> PickingJobResponse:
    return _job_response(load_job(x_tenant_id, job_id))


@picking_router.put("/{job_id}/pause", response_model=StatusResponse)
async def pause_picking(job_id: str, body: OperatorRequest, x_tenant_id: str = Header()) -> StatusResponse:
    status = operations.pause_picking(x_tenant_id, job_id, body.operator_id)
    return StatusResponse(status=status)


@picking_router.put("/{job_id}/resume", response_model=StatusResponse)
async def resume_picking(job_id: str, body: OperatorRequest, x_tenant_id: str = Header()) -> StatusResponse:
    status = operations.resume_picking(x_tenant_id, job_id, body.operator_id)
    return StatusResponse(status=status)


@picking_router.put("/{job_id}/finish", response_model=StatusResponse)
async def finish_picking(job_id: str, body: FinishPickingRequest, x_tenant_id: str = Header()) -> StatusResponse:
    """Deduct picked stock and close the job as completed or failed."""
    status = operations.finish_picking(x_tenant_id, job_id, body.operator_id)
    return StatusResponse(status=status)


@picking_router.put("/{job_id}/lines/{line_id}/outcome", response_model=LineItemIdResponse)
async def record_line_outcome(
    job_id: str,
    line_id: str,
    body: LineOutcomeRequest,
    x_tenant_id: str = Header(),
) -> LineItemIdResponse:
    item_id = operations.record_line_outcome(
        tenant_id=x_tenant_id,
        job_id=job_id,
        line_id=line_id,
        status=body.status,
        quantity=body.quantity,
        substitute_product_id=body.substitute_product_id,
        notes=body.notes,
        operator_id=body.operator_id,
    )
    return LineItemIdResponse(line_item_id=item_id)


@picking_router.delete("/{job_id}/lines/{line_id}/outcome", response_model=StatusResponse)
async def reset_line_outcome(job_id: str, line_id: str, x_tenant_id: str = Header()) -> StatusResponse:
    operations.reset_line_outcome(x_tenant_id, job_id, line_id)
    return StatusResponse(status="pending")


@picking_router.get("/{job_id}/pick-path", response_model=list[PickStopResponse])
async def get_pick_path(job_id: str, x_tenant_id: str = Header()) -> list[PickStopResponse]:
    return [
        PickStopResponse(
            line_item_id=stop.line_item_id,
            product_id=stop.product_id,
            product_name=stop.product_name,
            sku=stop.sku,
            quantity_requested=stop.quantity_requested,
            status=stop.status,
            location=stop.location.label(),
        )
        for stop in pick_path_for(x_tenant_id, job_id)
    ]


@picking_router.get("/{job_id}/stats", response_model=PickingStatsResponse)
async def get_stats(job_id: str, x_tenant_id: str = Header()) -> PickingStatsResponse:
    return PickingStatsResponse(**asdict(load_job(x_tenant_id, job_id).stats()))
