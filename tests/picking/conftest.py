import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def picking_bed():
    from picking.domain import picking

    bed = DomainFixture(picking)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(picking_bed):
    with picking_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


TENANT = "tenant-a"


@pytest.fixture()
def tenant():
    return TENANT


@pytest.fixture()
def stock_product():
    """Register a product with opening stock; returns its product id."""
    from picking import operations

    def _register(product_id, quantity=10, tenant_id=TENANT, **kwargs):
        operations.register_product(
            tenant_id=tenant_id,
            product_id=product_id,
            name=kwargs.pop("name", f"Product {product_id}"),
            sku=kwargs.pop("sku", f"SKU-{product_id}"),
            initial_quantity=quantity,
            **kwargs,
        )
        return product_id

    return _register


@pytest.fixture()
def sales_order():
    """Register an order from ``(product_id, quantity)`` pairs; returns its id."""
    from picking import operations

    def _register(*lines, tenant_id=TENANT, discount=0.0):
        return operations.register_sales_order(
            tenant_id=tenant_id,
            lines=[{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines],
            customer_id="cust-001",
            discount=discount,
        )

    return _register


@pytest.fixture()
def line_ids():
    """Map product id to picking line item id for a job."""
    from picking.job.job import load_job

    def _lookup(job_id, tenant_id=TENANT):
        job = load_job(tenant_id, job_id)
        return {str(item.product_id): str(item.id) for item in job.line_items}

    return _lookup
