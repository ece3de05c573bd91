"""Picking job domain events: immutable facts about picking progress."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from picking.domain import picking


@picking.event(part_of="PickingJob")
class PickingStarted:
    """A picking job was opened for an order."""

    __version__ = 1

    job_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = Identifier(required=True)
    line_count = Integer(required=True)
    started_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class PickingPaused:
    __version__ = 1

    job_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = Identifier()
    paused_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class PickingResumed:
    __version__ = 1

    job_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = Identifier()
    regenerated_lines = Integer(default=0)
    paused_seconds = Float(default=0.0)
    resumed_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class LineOutcomeRecorded:
    """An operator recorded what happened to one line of the pick list."""

    __version__ = 1

    job_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    status = String(required=True)
    quantity_requested = Integer(required=True)
    quantity_fulfilled = Integer(required=True)
    substituted_product_id = Identifier()
    notes = Text()
    recorded_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class LineOutcomeReset:
    __version__ = 1

    job_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_status = String(required=True)
    reset_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class PickingFinished:
    """The job reached a terminal status and its deductions were written."""

    __version__ = 1

    job_id = Identifier(required=True)
    order_id = Identifier(required=True)
    status = String(required=True)
    finished_by = Identifier()
    fulfilled_lines = Integer(required=True)
    missing_lines = Integer(required=True)
    damaged_lines = Integer(required=True)
    partial_lines = Integer(required=True)
    finished_at = DateTime(required=True)


@picking.event(part_of="PickingJob")
class PickingIssuesResolved:
    """The failed job's issue report was acted on."""

    __version__ = 1

    job_id = Identifier(required=True)
    order_id = Identifier(required=True)
    resolved_at = DateTime(required=True)
