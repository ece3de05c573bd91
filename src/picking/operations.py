"""Serialized entry points for picking, the stock ledger and issue resolution.

Each function takes the critical sections its command needs, processes the
command synchronously so the unit of work commits inside them, and records an
audit entry once the commit has succeeded.

    stock mutations            product section
    job transitions, edits     order section
    finish                     order section, then every deducted product's
                               section in sorted product order

Processing commands directly through ``current_domain.process`` skips these
sections and is only safe for single-threaded callers.
"""

import json

from protean.utils.globals import current_domain

from picking.audit import get_audit_trail
from picking.catalogue.registration import RegisterProduct
from picking.issues.resolution import ApplyResolution
from picking.job.finishing import FinishPicking
from picking.job.job import load_job
from picking.job.lifecycle import PausePicking, ResumePicking, StartPicking
from picking.job.outcomes import RecordLineOutcome, ResetLineOutcome
from picking.ledger.legacy import ImportLegacyHistory
from picking.ledger.recording import RecordStockMovement
from picking.locks import order_locks, product_locks
from picking.order.editing import ChangeOrderLineQuantity, RemoveOrderLine
from picking.order.registration import RegisterSalesOrder


def _audit(tenant_id, action, subject_kind, subject_id, actor_id=None, **details):
    get_audit_trail().record(
        tenant_id=tenant_id,
        action=action,
        subject_kind=subject_kind,
        subject_id=str(subject_id),
        actor_id=actor_id,
        details=details,
    )


def _order_of(tenant_id: str, job_id: str) -> str:
    # A job's order never changes, so it is safe to read before locking
    return str(load_job(tenant_id, job_id).order_id)


# ---------------------------------------------------------------------------
# Catalogue and ledger
# ---------------------------------------------------------------------------
def register_product(
    tenant_id: str,
    product_id: str,
    name: str,
    sku: str | None = None,
    interchange_code: str | None = None,
    location: str | None = None,
    unit_price: float = 0.0,
    initial_quantity: int = 0,
    actor_id: str | None = None,
) -> str:
    with product_locks.hold(tenant_id, product_id):
        result = current_domain.process(
            RegisterProduct(
                tenant_id=tenant_id,
                product_id=product_id,
                name=name,
                sku=sku,
                interchange_code=interchange_code,
                location=location,
                unit_price=unit_price,
                initial_quantity=initial_quantity,
                actor_id=actor_id,
            ),
            asynchronous=False,
        )
    _audit(tenant_id, "product_registered", "product", product_id, actor_id, initial_quantity=initial_quantity)
    return result


def record_stock_movement(
    tenant_id: str,
    product_id: str,
    movement_type: str,
    quantity: int,
    actor_id: str | None = None,
    reference_kind: str | None = None,
    reference_id: str | None = None,
    reason: str | None = None,
    location_from: str | None = None,
    location_to: str | None = None,
) -> str:
    """Append one ledger entry under the product's critical section."""
    with product_locks.hold(tenant_id, product_id):
        movement_id = current_domain.process(
            RecordStockMovement(
                tenant_id=tenant_id,
                product_id=product_id,
                movement_type=movement_type,
                quantity=quantity,
                actor_id=actor_id,
                reference_kind=reference_kind,
                reference_id=reference_id,
                reason=reason,
                location_from=location_from,
                location_to=location_to,
            ),
            asynchronous=False,
        )
    _audit(
        tenant_id,
        "stock_movement_recorded",
        "product",
        product_id,
        actor_id,
        movement_id=movement_id,
        movement_type=movement_type,
        quantity=quantity,
    )
    return movement_id


def import_legacy_history(
    tenant_id: str,
    product_id: str,
    movements: list[dict],
    current_on_hand: int,
    actor_id: str | None = None,
) -> int:
    with product_locks.hold(tenant_id, product_id):
        count = current_domain.process(
            ImportLegacyHistory(
                tenant_id=tenant_id,
                product_id=product_id,
                movements=json.dumps(movements),
                current_on_hand=current_on_hand,
                actor_id=actor_id,
            ),
            asynchronous=False,
        )
    _audit(tenant_id, "legacy_history_imported", "product", product_id, actor_id, entries=count)
    return count


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def register_sales_order(
    tenant_id: str,
    lines: list[dict],
    customer_id: str | None = None,
    discount: float = 0.0,
) -> str:
    order_id = current_domain.process(
        RegisterSalesOrder(
            tenant_id=tenant_id,
            customer_id=customer_id,
            lines=json.dumps(lines),
            discount=discount,
        ),
        asynchronous=False,
    )
    _audit(tenant_id, "sales_order_registered", "order", order_id, lines=len(lines))
    return order_id


def change_order_line_quantity(tenant_id: str, order_id: str, line_id: str, quantity: int) -> None:
    with order_locks.hold(tenant_id, order_id):
        current_domain.process(
            ChangeOrderLineQuantity(tenant_id=tenant_id, order_id=order_id, line_id=line_id, quantity=quantity),
            asynchronous=False,
        )
    _audit(tenant_id, "order_line_changed", "order", order_id, line_id=line_id, quantity=quantity)


def remove_order_line(tenant_id: str, order_id: str, line_id: str) -> None:
    with order_locks.hold(tenant_id, order_id):
        current_domain.process(
            RemoveOrderLine(tenant_id=tenant_id, order_id=order_id, line_id=line_id),
            asynchronous=False,
        )
    _audit(tenant_id, "order_line_removed", "order", order_id, line_id=line_id)


# ---------------------------------------------------------------------------
# Picking
# ---------------------------------------------------------------------------
def start_picking(tenant_id: str, order_id: str, operator_id: str) -> str:
    with order_locks.hold(tenant_id, order_id):
        job_id = current_domain.process(
            StartPicking(tenant_id=tenant_id, order_id=order_id, operator_id=operator_id),
            asynchronous=False,
        )
    _audit(tenant_id, "picking_started", "picking_job", job_id, operator_id, order_id=order_id)
    return job_id


def pause_picking(tenant_id: str, job_id: str, operator_id: str | None = None) -> str:
    with order_locks.hold(tenant_id, _order_of(tenant_id, job_id)):
        status = current_domain.process(
            PausePicking(tenant_id=tenant_id, job_id=job_id, operator_id=operator_id),
            asynchronous=False,
        )
    _audit(tenant_id, "picking_paused", "picking_job", job_id, operator_id)
    return status


def resume_picking(tenant_id: str, job_id: str, operator_id: str | None = None) -> str:
    with order_locks.hold(tenant_id, _order_of(tenant_id, job_id)):
        status = current_domain.process(
            ResumePicking(tenant_id=tenant_id, job_id=job_id, operator_id=operator_id),
            asynchronous=False,
        )
    _audit(tenant_id, "picking_resumed", "picking_job", job_id, operator_id)
    return status


def record_line_outcome(
    tenant_id: str,
    job_id: str,
    line_id: str,
    status: str,
    quantity: int | None = None,
    substitute_product_id: str | None = None,
    notes: str | None = None,
    operator_id: str | None = None,
) -> str:
    with order_locks.hold(tenant_id, _order_of(tenant_id, job_id)):
        item_id = current_domain.process(
            RecordLineOutcome(
                tenant_id=tenant_id,
                job_id=job_id,
                line_id=line_id,
                status=status,
                quantity=quantity,
                substitute_product_id=substitute_product_id,
                notes=notes,
                operator_id=operator_id,
            ),
            asynchronous=False,
        )
    _audit(
        tenant_id,
        "line_outcome_recorded",
        "picking_job",
        job_id,
        operator_id,
        line_id=line_id,
        status=status,
        quantity=quantity,
    )
    return item_id


def reset_line_outcome(tenant_id: str, job_id: str, line_id: str, operator_id: str | None = None) -> None:
    with order_locks.hold(tenant_id, _order_of(tenant_id, job_id)):
        current_domain.process(
            ResetLineOutcome(tenant_id=tenant_id, job_id=job_id, line_id=line_id, operator_id=operator_id),
            asynchronous=False,
        )
    _audit(tenant_id, "line_outcome_reset", "picking_job", job_id, operator_id, line_id=line_id)


def finish_picking(tenant_id: str, job_id: str, operator_id: str) -> str:
    """Finish a job under its order's section and every deducted product's section."""
    with order_locks.hold(tenant_id, _order_of(tenant_id, job_id)):
        # Outcomes cannot change while the order section is held
        product_ids = load_job(tenant_id, job_id).stock_requirements().keys()
        with product_locks.hold_many(tenant_id, product_ids):
            status = current_domain.process(
                FinishPicking(tenant_id=tenant_id, job_id=job_id, operator_id=operator_id),
                asynchronous=False,
            )
    _audit(tenant_id, "picking_finished", "picking_job", job_id, operator_id, status=status)
    return status


# ---------------------------------------------------------------------------
# Issue resolution
# ---------------------------------------------------------------------------
def apply_resolution(
    tenant_id: str,
    order_id: str,
    decisions: dict[str, dict],
    operator_id: str | None = None,
) -> str:
    """Apply decisions keyed by picking line item id to an order's pending issue report."""
    with order_locks.hold(tenant_id, order_id):
        status = current_domain.process(
            ApplyResolution(
                tenant_id=tenant_id,
                order_id=order_id,
                decisions=json.dumps(decisions),
                operator_id=operator_id,
            ),
            asynchronous=False,
        )
    _audit(tenant_id, "issues_resolved", "order", order_id, operator_id, decisions=len(decisions))
    return status
