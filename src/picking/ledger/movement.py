"""StockMovement aggregate: one immutable entry of the stock ledger.

Entries are never edited: corrections are new entries. Each entry records the
on-hand balance before and after it was applied, and a per-product ``sequence``
allocated inside the product's critical section so that
``(occurred_at, sequence)`` totally orders a product's history.

Entries imported from the legacy system carry no balances; the stock
projector reconstructs them by replay.
"""

from datetime import datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, ValueObject

from picking.domain import picking
from picking.ledger.events import StockMovementRecorded


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class MovementType(Enum):
    INBOUND_PURCHASE = "inbound_purchase"
    INBOUND_MANUAL = "inbound_manual"
    INBOUND_ADJUSTMENT = "inbound_adjustment"
    INBOUND_RETURN_CUSTOMER = "inbound_return_customer"
    INBOUND_RETURN_SUPPLIER = "inbound_return_supplier"
    OUTBOUND_SALE = "outbound_sale"
    OUTBOUND_MANUAL = "outbound_manual"
    OUTBOUND_ADJUSTMENT = "outbound_adjustment"
    OUTBOUND_PICKING = "outbound_picking"
    TRANSFER = "transfer"

    @property
    def sign(self) -> int:
        if self is MovementType.TRANSFER:
            return 0
        return 1 if self.value.startswith("inbound_") else -1

    @property
    def is_adjustment(self) -> bool:
        return self in (MovementType.INBOUND_ADJUSTMENT, MovementType.OUTBOUND_ADJUSTMENT)


class ReferenceKind(Enum):
    NONE = "none"
    SALE = "sale"
    PICKING_JOB = "picking_job"
    INVOICE = "invoice"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@picking.value_object(part_of="StockMovement")
class MovementReference:
    """What caused a movement, as a tagged variant: a kind plus an id."""

    kind = String(max_length=20, choices=ReferenceKind, default=ReferenceKind.NONE.value)
    ref_id = Identifier()

    @invariant.post
    def kinded_references_carry_an_id(self):
        if self.kind != ReferenceKind.NONE.value and not self.ref_id:
            raise ValidationError({"ref_id": [f"A {self.kind} reference needs an id"]})
        if self.kind == ReferenceKind.NONE.value and self.ref_id:
            raise ValidationError({"ref_id": ["A reference of kind none cannot carry an id"]})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@picking.aggregate
class StockMovement:
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    movement_type = String(required=True, max_length=30, choices=MovementType)
    quantity = Integer(required=True, min_value=1)
    balance_before = Integer()
    balance_after = Integer()
    reference = ValueObject(MovementReference)
    actor_id = Identifier()
    reason = String(max_length=500)
    location_from = String(max_length=255)
    location_to = String(max_length=255)
    legacy_type = String(max_length=50)
    occurred_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)

    @classmethod
    def record(
        cls,
        tenant_id: str,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        balance_before: int | None,
        balance_after: int | None,
        sequence: int,
        occurred_at: datetime,
        reference: MovementReference | None = None,
        actor_id: str | None = None,
        reason: str | None = None,
        location_from: str | None = None,
        location_to: str | None = None,
        legacy_type: str | None = None,
    ):
        reference = reference or MovementReference(kind=ReferenceKind.NONE.value)
        movement = cls(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=movement_type.value,
            quantity=quantity,
            balance_before=balance_before,
            balance_after=balance_after,
            reference=reference,
            actor_id=actor_id,
            reason=reason,
            location_from=location_from,
            location_to=location_to,
            legacy_type=legacy_type,
            occurred_at=occurred_at,
            sequence=sequence,
        )
        movement.raise_(
            StockMovementRecorded(
                movement_id=str(movement.id),
                tenant_id=tenant_id,
                product_id=product_id,
                movement_type=movement_type.value,
                quantity=quantity,
                balance_before=balance_before,
                balance_after=balance_after,
                reference_kind=reference.kind,
                reference_id=reference.ref_id,
                sequence=sequence,
                occurred_at=occurred_at,
            )
        )
        return movement

    @invariant.post
    def transfers_name_both_locations(self):
        if self.legacy_type:
            return
        if self.movement_type == MovementType.TRANSFER.value and not (self.location_from and self.location_to):
            raise ValidationError({"location": ["A transfer needs both a source and a destination location"]})

    @invariant.post
    def balances_match_quantity(self):
        if self.has_balances() and self.balance_after - self.balance_before != self.signed_quantity():
            raise ValidationError({"balance_after": ["Balance change does not match the movement quantity"]})

    def signed_quantity(self) -> int:
        return MovementType(self.movement_type).sign * (self.quantity or 0)

    def has_balances(self) -> bool:
        return self.balance_before is not None and self.balance_after is not None

    def ordering_key(self):
        return (self.occurred_at, self.sequence)


def reference_for(kind: str | None, ref_id: str | None) -> MovementReference:
    """Build a reference value object, validating the kind."""
    kind = kind or ReferenceKind.NONE.value
    if kind not in {k.value for k in ReferenceKind}:
        raise ValidationError({"reference_kind": [f"Unknown reference kind '{kind}'"]})
    return MovementReference(kind=kind, ref_id=ref_id or None)
