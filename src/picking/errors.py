"""Error taxonomy for picking, the stock ledger and issue resolution.

Three families, each rooted in a Protean exception so the FastAPI
integration maps them to HTTP statuses:

    ValidationError       bad input shape, rejected before any write (400)
    NotFoundError         unknown product/order/job, or another tenant's (404)
    ConflictError         state conflicts, rejected with no partial effect (409)

Ledger/projector inconsistencies are never raised; they are reported as
warnings on the balance report.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class InvalidQuantity(ValidationError):
    def __init__(self, message: str, quantity=None):
        self.quantity = quantity
        super().__init__({"quantity": [message]})


class UnknownLineItem(ValidationError):
    def __init__(self, line_item_id: str):
        self.line_item_id = line_item_id
        super().__init__({"line_item_id": [f"Line item {line_item_id} is not part of the issue report"]})


class UnknownMovementType(ValidationError):
    def __init__(self, raw_type: str):
        self.raw_type = raw_type
        super().__init__({"movement_type": [f"Unrecognized movement type '{raw_type}'"]})


class UnknownLine(ValidationError):
    """A line id that does not belong to the order or picking job it was sent to."""

    def __init__(self, line_id: str, owner: str):
        self.line_id = line_id
        self.owner = owner
        super().__init__({"line_id": [f"Line {line_id} not found in this {owner}"]})


class InvalidOutcome(ValidationError):
    def __init__(self, field: str, message: str):
        super().__init__({field: [message]})


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class NotFoundError(ObjectNotFoundError):
    kind = "object"

    def __init__(self, identifier: str):
        self.identifier = identifier
        messages = {"_entity": [f"{self.kind} {identifier} does not exist"]}
        super().__init__(messages)
        self.messages = messages


class ProductNotFound(NotFoundError):
    kind = "Product"


class OrderNotFound(NotFoundError):
    kind = "Order"


class JobNotFound(NotFoundError):
    kind = "Picking job"


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------
class ConflictError(InvalidOperationError):
    """A state conflict. ``details`` holds the typed values a client needs to react."""

    def __init__(self, field: str, message: str, **details):
        super().__init__({field: [message]})
        self.messages = {field: [message]}
        self.details = details


class InsufficientStock(ConflictError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            "stock",
            f"Product {product_id} has {available} on hand, {requested} requested",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class DuplicateActiveJob(ConflictError):
    def __init__(self, order_id: str, job_id: str):
        self.order_id = order_id
        self.job_id = job_id
        super().__init__(
            "order_id",
            f"Order {order_id} already has active picking job {job_id}",
            order_id=order_id,
            job_id=job_id,
        )


class JobAlreadyTerminal(ConflictError):
    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(
            "status",
            f"Picking job {job_id} is already {status}",
            job_id=job_id,
            status=status,
        )


class InvalidTransition(ConflictError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            "status",
            f"Cannot transition from {current} to {target}",
            current=current,
            target=target,
        )


class JobNotInProgress(ConflictError):
    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(
            "status",
            f"Picking job {job_id} is {status}, outcomes need an in-progress job",
            job_id=job_id,
            status=status,
        )


class JobNotFinished(ConflictError):
    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(
            "status",
            f"Picking job {job_id} is still {status}",
            job_id=job_id,
            status=status,
        )


class LineAlreadyRecorded(ConflictError):
    def __init__(self, line_id: str, status: str):
        self.line_id = line_id
        self.status = status
        super().__init__(
            "line_id",
            f"Line item {line_id} was already recorded as {status}",
            line_id=line_id,
            status=status,
        )


class UnprocessedLines(ConflictError):
    def __init__(self, line_ids: list[str]):
        self.line_ids = line_ids
        super().__init__(
            "lines",
            f"{len(line_ids)} line item(s) are still pending",
            line_ids=line_ids,
        )


class NoFulfillableLines(ConflictError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("order_id", f"Order {order_id} has no lines to pick", order_id=order_id)


class NoActiveIssueReport(ConflictError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(
            "order_id",
            f"Order {order_id} has no pending issue report",
            order_id=order_id,
        )


class IssueResolutionPending(ConflictError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(
            "order_id",
            f"Order {order_id} must be resolved before picking again",
            order_id=order_id,
        )


class OrderNotEligible(ConflictError):
    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(
            "status",
            f"Order {order_id} is {status} and cannot be picked",
            order_id=order_id,
            status=status,
        )


class OrderLocked(ConflictError):
    def __init__(self, order_id: str, status: str, job_id: str | None = None):
        self.order_id = order_id
        self.status = status
        self.job_id = job_id
        held_by = f"held by picking job {job_id}" if job_id else status
        super().__init__(
            "status",
            f"Order {order_id} is {held_by} and cannot be edited",
            order_id=order_id,
            status=status,
            job_id=job_id,
        )


class LedgerNotEmpty(ConflictError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(
            "product_id",
            f"Product {product_id} already has ledger entries",
            product_id=product_id,
        )
