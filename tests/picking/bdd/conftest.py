"""Shared BDD fixtures and step definitions for picking and issue resolution."""

import pytest
from picking import operations
from picking.catalogue.product import find_product
from picking.job.job import load_job
from picking.order.order import load_order
from pytest_bdd import given, parsers, then, when

TENANT = "tenant-bdd"


@pytest.fixture()
def floor():
    """What the scenario has put on the warehouse floor so far."""
    return {"order_id": None, "job_id": None, "error": None}


def _line_item_for(floor, product_id):
    job = load_job(TENANT, floor["job_id"])
    return next(item for item in job.line_items if item.product_id == product_id)


def _attempt(floor, action, *args, **kwargs):
    """Run an operation, capturing any rejection for a later Then step."""
    floor["error"] = None
    try:
        return action(*args, **kwargs)
    except Exception as exc:
        floor["error"] = exc
        return None


@pytest.fixture()
def line_item(floor):
    """Look up the current job's line item for a product."""
    return lambda product_id: _line_item_for(floor, product_id)


@pytest.fixture()
def attempt(floor):
    return lambda action, *args, **kwargs: _attempt(floor, action, *args, **kwargs)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" with {quantity:d} units in stock'))
def product_in_stock(product_id, quantity):
    operations.register_product(
        TENANT,
        product_id,
        f"Product {product_id}",
        sku=product_id.upper(),
        initial_quantity=quantity,
    )


@given(parsers.cfparse('product "{product_id}" with {quantity:d} units in stock and interchange code "{code}"'))
def interchangeable_product_in_stock(product_id, quantity, code):
    operations.register_product(
        TENANT,
        product_id,
        f"Product {product_id}",
        sku=product_id.upper(),
        interchange_code=code,
        initial_quantity=quantity,
    )


@given(parsers.cfparse('an order for {first_qty:d} of "{first}" and {second_qty:d} of "{second}"'))
def order_for_two_products(floor, first_qty, first, second_qty, second):
    floor["order_id"] = operations.register_sales_order(
        TENANT,
        lines=[
            {"product_id": first, "quantity": first_qty},
            {"product_id": second, "quantity": second_qty},
        ],
        customer_id="cust-bdd",
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("picking starts")
@given("picking has started")
def picking_starts(floor):
    floor["job_id"] = operations.start_picking(TENANT, floor["order_id"], "picker-1")


@when(parsers.cfparse('the operator fulfils {quantity:d} of "{product_id}"'))
def operator_fulfils(floor, quantity, product_id):
    item = _line_item_for(floor, product_id)
    _attempt(floor, operations.record_line_outcome, TENANT, floor["job_id"], str(item.id), "fulfilled", quantity)


@when(parsers.cfparse('the operator reports "{product_id}" as {status}'))
def operator_reports(floor, product_id, status):
    item = _line_item_for(floor, product_id)
    _attempt(floor, operations.record_line_outcome, TENANT, floor["job_id"], str(item.id), status)


@when("the operator pauses the job")
def operator_pauses(floor):
    operations.pause_picking(TENANT, floor["job_id"], "picker-1")


@when("the operator resumes the job")
def operator_resumes(floor):
    operations.resume_picking(TENANT, floor["job_id"], "picker-1")


@when("the operator finishes the job")
def operator_finishes(floor):
    _attempt(floor, operations.finish_picking, TENANT, floor["job_id"], "picker-1")


@when(parsers.cfparse('{quantity:d} units of "{product_id}" are sold at the counter'))
def counter_sale(product_id, quantity):
    operations.record_stock_movement(TENANT, product_id, "outbound_sale", quantity, actor_id="counter")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the job is "{status}"'))
def job_status_is(floor, status):
    assert load_job(TENANT, floor["job_id"]).status == status


@then(parsers.cfparse('the order is "{status}"'))
def order_status_is(floor, status):
    assert load_order(TENANT, floor["order_id"]).status == status


@then(parsers.cfparse('product "{product_id}" has {quantity:d} units on hand'))
def product_on_hand(product_id, quantity):
    assert find_product(TENANT, product_id).on_hand == quantity


@then(parsers.cfparse('the line for "{product_id}" is {status}'))
def line_status_is(floor, product_id, status):
    assert _line_item_for(floor, product_id).status == status


@then(parsers.cfparse('the request is rejected with {error_name}'))
def request_rejected(floor, error_name):
    assert floor["error"] is not None, "Expected the request to be rejected"
    assert type(floor["error"]).__name__ == error_name
