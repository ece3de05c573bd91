"""Stock ledger: the only path that changes a product's on-hand quantity.

``StockLedger`` is a unit-of-work helper used inside command handlers. It
loads each product once, applies movements to the loaded aggregate, and
stages both the new ledger entry and the updated product in their
repositories; the enclosing unit of work commits them together. Callers hold
the product's critical section (:mod:`picking.locks`) around the whole unit of
work.
"""

from collections.abc import Iterator
from datetime import datetime

from protean.utils.globals import current_domain

from picking.catalogue.product import ProductStock, find_product
from picking.domain import logger
from picking.errors import InsufficientStock, InvalidQuantity
from picking.ledger.movement import MovementReference, MovementType, StockMovement


class StockLedger:
    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        self._products: dict[str, ProductStock] = {}

    def product(self, product_id: str) -> ProductStock:
        """The tenant's product, loaded once per ledger instance."""
        if product_id not in self._products:
            self._products[product_id] = find_product(self.tenant_id, product_id)
        return self._products[product_id]

    def adopt(self, product: ProductStock) -> None:
        """Track a product staged earlier in the same unit of work."""
        self._products[product.product_id] = product

    def balances(self) -> dict[str, int]:
        """On-hand of every product this ledger has touched, including staged changes."""
        return {product_id: product.on_hand or 0 for product_id, product in self._products.items()}

    def ensure_available(self, requirements: dict[str, int]) -> None:
        """Check every product can cover its total requirement before any write."""
        for product_id, requested in sorted(requirements.items()):
            available = self.product(product_id).on_hand or 0
            if requested > available:
                raise InsufficientStock(product_id, requested, available)

    def append(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        reference: MovementReference | None = None,
        actor_id: str | None = None,
        reason: str | None = None,
        location_from: str | None = None,
        location_to: str | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovement:
        """Read on-hand, compute the new balance, write the entry, update on-hand."""
        if quantity is None or quantity <= 0:
            raise InvalidQuantity("Movement quantity must be a positive integer", quantity)

        product = self.product(product_id)
        before, after, sequence, moment = product.apply_movement(movement_type.sign * quantity, occurred_at)

        movement = StockMovement.record(
            tenant_id=self.tenant_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            balance_before=before,
            balance_after=after,
            sequence=sequence,
            occurred_at=moment,
            reference=reference,
            actor_id=actor_id,
            reason=reason,
            location_from=location_from,
            location_to=location_to,
        )
        current_domain.repository_for(StockMovement).add(movement)
        current_domain.repository_for(ProductStock).add(product)

        logger.info(
            "stock_movement_appended",
            tenant_id=self.tenant_id,
            product_id=product_id,
            movement_type=movement_type.value,
            quantity=quantity,
            balance_before=before,
            balance_after=after,
            sequence=sequence,
        )
        return movement


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def within_range(movement: StockMovement, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and movement.occurred_at < start:
        return False
    if end is not None and movement.occurred_at > end:
        return False
    return True


def product_history(tenant_id: str, product_id: str) -> list[StockMovement]:
    """Every entry for a product, in ledger order."""
    repo = current_domain.repository_for(StockMovement)
    entries = repo._dao.query.filter(tenant_id=tenant_id, product_id=product_id).all().items
    return sorted(entries, key=lambda m: m.ordering_key())


def query(
    tenant_id: str,
    product_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Iterator[StockMovement]:
    """Lazily yield a product's entries within ``[start, end]`` in ledger order.

    Each call re-reads the ledger, so a fresh call sees entries appended after
    the previous one was exhausted.
    """
    for movement in product_history(tenant_id, product_id):
        if within_range(movement, start, end):
            yield movement


def query_movements(
    tenant_id: str,
    product_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    movement_types: list[MovementType] | None = None,
    actor_id: str | None = None,
    reference_kind: str | None = None,
    reference_id: str | None = None,
) -> list[StockMovement]:
    """Filtered movement listing across products, for reporting screens."""
    criteria = {"tenant_id": tenant_id}
    if product_id:
        criteria["product_id"] = product_id
    if actor_id:
        criteria["actor_id"] = actor_id

    repo = current_domain.repository_for(StockMovement)
    entries = repo._dao.query.filter(**criteria).all().items

    wanted_types = {t.value for t in movement_types} if movement_types else None
    results = []
    for movement in entries:
        if not within_range(movement, start, end):
            continue
        if wanted_types is not None and movement.movement_type not in wanted_types:
            continue
        reference = movement.reference
        if reference_kind and (reference is None or reference.kind != reference_kind):
            continue
        if reference_id and (reference is None or reference.ref_id != reference_id):
            continue
        results.append(movement)
    return sorted(results, key=lambda m: m.ordering_key())
