"""Tests for the error families and the values they carry."""

from picking.errors import (
    ConflictError,
    DuplicateActiveJob,
    InsufficientStock,
    JobNotFound,
    NotFoundError,
    OrderLocked,
    ProductNotFound,
    UnknownLineItem,
)
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class TestNotFound:
    def test_messages_name_the_missing_object(self):
        exc = ProductNotFound("p1")
        assert exc.messages == {"_entity": ["Product p1 does not exist"]}
        assert exc.identifier == "p1"

    def test_rooted_in_protean_not_found(self):
        assert isinstance(JobNotFound("job-1"), NotFoundError)
        assert isinstance(JobNotFound("job-1"), ObjectNotFoundError)


class TestConflicts:
    def test_insufficient_stock_carries_quantities(self):
        exc = InsufficientStock("p1", requested=5, available=2)
        assert exc.messages == {"stock": ["Product p1 has 2 on hand, 5 requested"]}
        assert exc.details == {"product_id": "p1", "requested": 5, "available": 2}
        assert isinstance(exc, InvalidOperationError)

    def test_duplicate_job_carries_the_existing_job(self):
        exc = DuplicateActiveJob("o1", "job-1")
        assert exc.details["job_id"] == "job-1"
        assert "order_id" in exc.messages

    def test_order_locked_by_a_job(self):
        exc = OrderLocked("o1", "awaiting_picking", "job-1")
        assert exc.messages == {"status": ["Order o1 is held by picking job job-1 and cannot be edited"]}
        assert exc.details["job_id"] == "job-1"

    def test_order_locked_by_status(self):
        exc = OrderLocked("o1", "picked")
        assert exc.messages == {"status": ["Order o1 is picked and cannot be edited"]}
        assert isinstance(exc, ConflictError)


def test_validation_errors_keep_protean_messages():
    exc = UnknownLineItem("li-9")
    assert isinstance(exc, ValidationError)
    assert "line_item_id" in exc.messages
