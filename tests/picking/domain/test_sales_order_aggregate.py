"""Tests for the SalesOrder aggregate: totals, picking lock and corrections."""

import json

import pytest
from picking.errors import (
    DuplicateActiveJob,
    InvalidQuantity,
    InvalidTransition,
    IssueResolutionPending,
    OrderLocked,
    OrderNotEligible,
    UnknownLine,
)
from picking.order.events import OrderIssuesResolved, OrderLinesShortShipped
from picking.order.order import LineCorrection, OrderStatus, ResolutionAction, SalesOrder


@pytest.fixture()
def order():
    return SalesOrder.create(
        tenant_id="tenant-a",
        customer_id="cust-1",
        lines_data=[
            {"product_id": "prod-1", "product_name": "Windshield", "quantity": 2, "unit_price": 100.0, "discount": 10.0},
            {"product_id": "prod-2", "product_name": "Mirror", "quantity": 3, "unit_price": 20.0},
        ],
        discount=5.0,
    )


def _line(order, product_id):
    return next(line for line in order.lines if line.product_id == product_id)


class TestTotals:
    def test_line_and_order_totals(self, order):
        assert _line(order, "prod-1").total == 190.0
        assert _line(order, "prod-2").total == 60.0
        assert order.subtotal == 250.0
        assert order.total == 245.0

    def test_totals_never_go_negative(self):
        order = SalesOrder.create(
            tenant_id="tenant-a",
            lines_data=[{"product_id": "prod-1", "quantity": 1, "unit_price": 5.0, "discount": 50.0}],
            discount=100.0,
        )
        assert order.subtotal == 0.0
        assert order.total == 0.0


class TestPickingLock:
    def test_begin_picking_locks_the_order(self, order):
        order.begin_picking("job-1")
        assert order.status == OrderStatus.IN_PICKING.value
        assert order.active_job_id == "job-1"

    def test_second_job_is_refused_with_the_existing_id(self, order):
        order.begin_picking("job-1")
        with pytest.raises(DuplicateActiveJob) as exc:
            order.begin_picking("job-2")
        assert exc.value.job_id == "job-1"

    def test_locked_order_refuses_edits(self, order):
        order.begin_picking("job-1")
        with pytest.raises(OrderLocked):
            order.change_line_quantity(str(_line(order, "prod-1").id), 1)
        with pytest.raises(OrderLocked):
            order.remove_line(str(_line(order, "prod-1").id))

    def test_paused_order_stays_locked(self, order):
        order.begin_picking("job-1")
        order.release_for_picking("job-1")
        assert order.status == OrderStatus.AWAITING_PICKING.value

        with pytest.raises(OrderLocked) as exc:
            order.change_line_quantity(str(_line(order, "prod-2").id), 1)
        assert exc.value.job_id == "job-1"
        with pytest.raises(OrderLocked):
            order.remove_line(str(_line(order, "prod-2").id))

    def test_unheld_order_is_editable(self, order):
        order.change_line_quantity(str(_line(order, "prod-2").id), 1)
        assert order.subtotal == 210.0

    def test_only_the_active_job_can_release(self, order):
        order.begin_picking("job-1")
        with pytest.raises(InvalidTransition):
            order.release_for_picking("job-2")

    def test_picked_order_is_not_eligible(self, order):
        order.begin_picking("job-1")
        order.mark_picked("job-1", {})
        with pytest.raises(OrderNotEligible):
            order.begin_picking("job-2")

    def test_pending_adjustment_must_be_resolved_first(self, order):
        order.begin_picking("job-1")
        order.hold_for_adjustment("job-1", json.dumps({"job_id": "job-1"}))
        with pytest.raises(IssueResolutionPending):
            order.begin_picking("job-2")


class TestMarkPicked:
    def test_short_shipped_lines_shrink(self, order):
        order.begin_picking("job-1")
        order._events.clear()
        order.mark_picked("job-1", {str(_line(order, "prod-2").id): 1})

        assert order.status == OrderStatus.PICKED.value
        assert order.active_job_id is None
        assert _line(order, "prod-2").quantity == 1
        assert order.subtotal == 210.0
        assert isinstance(order._events[-1], OrderLinesShortShipped)

    def test_full_pick_raises_no_short_ship_event(self, order):
        order.begin_picking("job-1")
        order._events.clear()
        order.mark_picked("job-1", {})
        assert not any(isinstance(e, OrderLinesShortShipped) for e in order._events)


class TestResolveIssues:
    @pytest.fixture()
    def held(self, order):
        order.begin_picking("job-1")
        order.hold_for_adjustment("job-1", json.dumps({"job_id": "job-1"}))
        order._events.clear()
        return order

    def test_hold_stores_report(self, held):
        assert held.status == OrderStatus.PENDING_ADJUSTMENT.value
        assert held.issue_report is not None
        assert held.active_job_id is None

    def test_remove_and_adjust(self, held):
        held.resolve_issues(
            "job-1",
            [
                LineCorrection(str(_line(held, "prod-1").id), ResolutionAction.REMOVE),
                LineCorrection(str(_line(held, "prod-2").id), ResolutionAction.ADJUST_QUANTITY, quantity=2),
            ],
        )
        assert [line.product_id for line in held.lines] == ["prod-2"]
        assert held.subtotal == 40.0
        assert held.total == 35.0
        assert held.status == OrderStatus.AWAITING_PICKING.value
        assert held.issue_report is None
        assert isinstance(held._events[-1], OrderIssuesResolved)

    def test_adjust_to_zero_deletes_the_line(self, held):
        held.resolve_issues(
            "job-1",
            [LineCorrection(str(_line(held, "prod-2").id), ResolutionAction.ADJUST_QUANTITY, quantity=0)],
        )
        assert [line.product_id for line in held.lines] == ["prod-1"]

    def test_substitute_rewrites_the_line(self, held):
        line_id = str(_line(held, "prod-1").id)
        held.resolve_issues(
            "job-1",
            [
                LineCorrection(
                    line_id,
                    ResolutionAction.SUBSTITUTE,
                    product_id="prod-7",
                    product_name="Windshield (alt)",
                    sku="PB-7",
                    unit_price=80.0,
                    discount=0.0,
                )
            ],
        )
        line = held.line(line_id)
        assert line.product_id == "prod-7"
        assert line.total == 160.0

    def test_resolution_needs_pending_adjustment(self, order):
        with pytest.raises(InvalidTransition):
            order.resolve_issues("job-1", [])

    def test_order_line_quantity_must_be_positive(self, order):
        with pytest.raises(InvalidQuantity):
            order.change_line_quantity(str(_line(order, "prod-1").id), 0)

    def test_unknown_order_line_is_rejected(self, order):
        with pytest.raises(UnknownLine) as exc:
            order.remove_line("no-such-line")
        assert exc.value.owner == "order"
        assert len(order.lines) == 2
