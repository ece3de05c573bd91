"""ProductStock aggregate: the on-hand figure the stock ledger maintains.

Product master data lives with the catalogue collaborator; this aggregate keeps
only what picking needs: identity, codes, bin location, list price and the
on-hand quantity. ``on_hand`` changes only alongside ledger entries: through
:meth:`apply_movement`, which the stock ledger calls while holding the
product's critical section, or :meth:`apply_backfill` for legacy history.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from picking.domain import picking
from picking.errors import InsufficientStock, ProductNotFound


@picking.aggregate
class ProductStock:
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    interchange_code = String(max_length=100)
    location = String(max_length=255)
    unit_price = Float(default=0.0)
    is_active = Boolean(default=True)
    on_hand = Integer(default=0, min_value=0)
    last_sequence = Integer(default=0)
    last_movement_at = DateTime()
    registered_at = DateTime()

    @classmethod
    def register(
        cls,
        tenant_id: str,
        product_id: str,
        name: str,
        sku: str | None = None,
        interchange_code: str | None = None,
        location: str | None = None,
        unit_price: float = 0.0,
    ):
        return cls(
            tenant_id=tenant_id,
            product_id=product_id,
            name=name,
            sku=sku,
            interchange_code=interchange_code,
            location=location,
            unit_price=unit_price or 0.0,
            on_hand=0,
            last_sequence=0,
            registered_at=datetime.now(UTC),
        )

    def apply_movement(self, signed_quantity: int, occurred_at: datetime | None = None) -> tuple[int, int, int, datetime]:
        """Apply a signed quantity change and allocate the next ordering key.

        Returns ``(balance_before, balance_after, sequence, occurred_at)``.
        ``occurred_at`` never moves backwards relative to the previous movement.
        """
        before = self.on_hand or 0
        after = before + signed_quantity
        if after < 0:
            raise InsufficientStock(str(self.product_id), -signed_quantity, before)

        moment = occurred_at or datetime.now(UTC)
        if self.last_movement_at is not None and moment < self.last_movement_at:
            moment = self.last_movement_at

        self.on_hand = after
        self.last_sequence = (self.last_sequence or 0) + 1
        self.last_movement_at = moment
        return before, after, self.last_sequence, moment

    def allocate_sequence(self) -> int:
        """Allocate an ordering key without touching the balance (history backfill)."""
        self.last_sequence = (self.last_sequence or 0) + 1
        return self.last_sequence

    def apply_backfill(self, net_quantity: int, last_movement_at: datetime | None) -> None:
        """Move on-hand by the net of backfilled entries, which carry no balances themselves."""
        if (self.on_hand or 0) + net_quantity < 0:
            raise InsufficientStock(str(self.product_id), -net_quantity, self.on_hand or 0)
        self.on_hand = (self.on_hand or 0) + net_quantity
        if last_movement_at is not None:
            self.last_movement_at = last_movement_at


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def find_product(tenant_id: str, product_id: str) -> ProductStock:
    """Return the tenant's product stock record or raise ``ProductNotFound``."""
    repo = current_domain.repository_for(ProductStock)
    results = repo._dao.query.filter(tenant_id=tenant_id, product_id=product_id).all().items
    if not results:
        raise ProductNotFound(product_id)
    return results[0]


def find_interchangeable(tenant_id: str, interchange_code: str | None, exclude_product_id: str) -> list[ProductStock]:
    """Active, in-stock products sharing a manufacturer/interchange code."""
    if not interchange_code:
        return []
    repo = current_domain.repository_for(ProductStock)
    results = repo._dao.query.filter(tenant_id=tenant_id, interchange_code=interchange_code).all().items
    candidates = [
        p for p in results if p.product_id != exclude_product_id and p.is_active and (p.on_hand or 0) > 0
    ]
    return sorted(candidates, key=lambda p: (-(p.on_hand or 0), p.name))
