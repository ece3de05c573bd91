"""Application tests for the audit trail and tenant isolation."""

import pytest
from picking import operations
from picking.audit import get_audit_trail
from picking.catalogue.product import find_product
from picking.errors import InsufficientStock, JobNotFound, OrderNotFound, ProductNotFound
from picking.job.queues import orders_awaiting_picking
from picking.ledger.projector import StockProjector

TENANT = "tenant-a"
OTHER = "tenant-b"


class TestAuditTrail:
    def test_committed_operations_are_audited(self, stock_product, sales_order, line_ids):
        stock_product("p1", 5)
        order_id = sales_order(("p1", 1))
        job_id = operations.start_picking(TENANT, order_id, "op-1")
        operations.record_line_outcome(TENANT, job_id, line_ids(job_id)["p1"], "fulfilled", 1, operator_id="op-1")
        operations.finish_picking(TENANT, job_id, "op-1")

        trail = get_audit_trail()
        actions = [entry.action for entry in trail.entries(tenant_id=TENANT)]
        assert actions == [
            "product_registered",
            "sales_order_registered",
            "picking_started",
            "line_outcome_recorded",
            "picking_finished",
        ]
        finished = trail.entries(action="picking_finished")[0]
        assert finished.subject_id == job_id
        assert finished.actor_id == "op-1"
        assert finished.details == {"status": "completed"}

    def test_rejected_operations_are_not_audited(self, stock_product):
        stock_product("p1", 1)
        with pytest.raises(InsufficientStock):
            operations.record_stock_movement(TENANT, "p1", "outbound_sale", 2)
        assert get_audit_trail().entries(action="stock_movement_recorded") == []


class TestTenantIsolation:
    def test_same_product_id_per_tenant(self, stock_product):
        stock_product("p1", 10)
        stock_product("p1", 3, tenant_id=OTHER)
        operations.record_stock_movement(OTHER, "p1", "outbound_sale", 1)

        assert StockProjector(TENANT).current_balance("p1") == 10
        assert StockProjector(OTHER).current_balance("p1") == 2

    def test_other_tenants_product_reads_as_missing(self, stock_product):
        stock_product("p1", 10)
        with pytest.raises(ProductNotFound):
            find_product(OTHER, "p1")

    def test_other_tenants_order_and_job_read_as_missing(self, stock_product, sales_order):
        stock_product("p1", 10)
        order_id = sales_order(("p1", 1))
        job_id = operations.start_picking(TENANT, order_id, "op-1")

        with pytest.raises(OrderNotFound):
            operations.start_picking(OTHER, order_id, "op-9")
        with pytest.raises(JobNotFound):
            operations.pause_picking(OTHER, job_id)

    def test_queues_are_per_tenant(self, stock_product, sales_order):
        stock_product("p1", 10)
        stock_product("p1", 10, tenant_id=OTHER)
        sales_order(("p1", 1))
        other_order = sales_order(("p1", 1), tenant_id=OTHER)

        assert [str(o.id) for o in orders_awaiting_picking(OTHER)] == [other_order]
