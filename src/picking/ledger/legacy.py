"""Legacy ledger ingestion: type mapping and history backfill.

The legacy system stored free-form movement type strings and only started
recording before/after balances partway through its life. Legacy strings are
mapped onto :class:`MovementType` here and nowhere else; an unrecognized
string is rejected rather than propagated.

Backfilled entries carry no balances. When the legacy figure for on-hand
differs from what the history adds up to, the difference is appended through
the ledger as an adjustment entry, so replaying from zero always reproduces
on-hand. A history that dips below zero gets an opening adjustment first.
"""

import json
from datetime import UTC, datetime

from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from picking.catalogue.product import ProductStock, find_product
from picking.domain import logger, picking
from picking.errors import InvalidQuantity, LedgerNotEmpty, UnknownMovementType
from picking.ledger.ledger import StockLedger, product_history
from picking.ledger.movement import MovementType, StockMovement, reference_for

LEGACY_TYPE_MAP = {
    "entrada_compra": MovementType.INBOUND_PURCHASE,
    "entrada_manual": MovementType.INBOUND_MANUAL,
    "entrada_ajuste": MovementType.INBOUND_ADJUSTMENT,
    "entrada_devolucao": MovementType.INBOUND_RETURN_CUSTOMER,
    "entrada_devolucao_cliente": MovementType.INBOUND_RETURN_CUSTOMER,
    "entrada_devolucao_fornecedor": MovementType.INBOUND_RETURN_SUPPLIER,
    "saida_venda": MovementType.OUTBOUND_SALE,
    "saida_manual": MovementType.OUTBOUND_MANUAL,
    "saida_ajuste": MovementType.OUTBOUND_ADJUSTMENT,
    "saida_separacao": MovementType.OUTBOUND_PICKING,
    "transferencia": MovementType.TRANSFER,
    "in": MovementType.INBOUND_MANUAL,
    "out": MovementType.OUTBOUND_MANUAL,
}

LEGACY_OPENING_REASON = "Legacy opening balance"
LEGACY_RECONCILIATION_REASON = "Legacy on-hand reconciliation"


def normalize_movement_type(raw_type: str, quantity: int) -> tuple[MovementType, int]:
    """Map a legacy type string and signed quantity to a type and positive quantity."""
    key = (raw_type or "").strip().lower()
    if not quantity:
        raise InvalidQuantity("Legacy movement quantity cannot be zero", quantity)

    if key == "ajuste":
        kind = MovementType.INBOUND_ADJUSTMENT if quantity > 0 else MovementType.OUTBOUND_ADJUSTMENT
        return kind, abs(quantity)

    if key in LEGACY_TYPE_MAP:
        return LEGACY_TYPE_MAP[key], abs(quantity)

    # Already-normalized values pass through unchanged
    try:
        return MovementType(key), abs(quantity)
    except ValueError as exc:
        raise UnknownMovementType(raw_type) from exc


def _parse_timestamp(value: str) -> datetime:
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


@picking.command(part_of="StockMovement")
class ImportLegacyHistory:
    """Backfill a product's historical movements from the legacy system."""

    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    movements = Text(required=True)  # JSON list of {type, quantity, occurred_at, ...}
    current_on_hand = Integer(required=True, min_value=0)
    actor_id = Identifier()


@picking.command_handler(part_of=StockMovement)
class LegacyImportHandler:
    @handle(ImportLegacyHistory)
    def import_legacy_history(self, command):
        product = find_product(command.tenant_id, command.product_id)
        if product_history(command.tenant_id, command.product_id):
            raise LedgerNotEmpty(command.product_id)

        rows = []
        for raw in json.loads(command.movements):
            movement_type, quantity = normalize_movement_type(raw.get("type"), int(raw.get("quantity") or 0))
            rows.append((_parse_timestamp(raw["occurred_at"]), movement_type, quantity, raw))
        rows.sort(key=lambda row: row[0])

        # An opening balance keeps the replayed history from dipping below zero
        running = lowest = 0
        for _, movement_type, quantity, _ in rows:
            running += movement_type.sign * quantity
            lowest = min(lowest, running)
        opening = -lowest

        repo = current_domain.repository_for(StockMovement)
        if opening:
            repo.add(
                StockMovement.record(
                    tenant_id=command.tenant_id,
                    product_id=command.product_id,
                    movement_type=MovementType.INBOUND_ADJUSTMENT,
                    quantity=opening,
                    balance_before=None,
                    balance_after=None,
                    sequence=product.allocate_sequence(),
                    occurred_at=rows[0][0],
                    actor_id=command.actor_id,
                    reason=LEGACY_OPENING_REASON,
                )
            )
        for occurred_at, movement_type, quantity, raw in rows:
            movement = StockMovement.record(
                tenant_id=command.tenant_id,
                product_id=command.product_id,
                movement_type=movement_type,
                quantity=quantity,
                balance_before=None,
                balance_after=None,
                sequence=product.allocate_sequence(),
                occurred_at=occurred_at,
                reference=reference_for(raw.get("reference_kind"), raw.get("reference_id")),
                actor_id=raw.get("actor_id"),
                reason=raw.get("reason"),
                location_from=raw.get("location_from"),
                location_to=raw.get("location_to"),
                legacy_type=raw.get("type"),
            )
            repo.add(movement)

        product.apply_backfill(opening + running, rows[-1][0] if rows else None)

        # The legacy figure wins; the gap becomes an adjustment entry
        gap = command.current_on_hand - (product.on_hand or 0)
        ledger = StockLedger(command.tenant_id)
        ledger.adopt(product)
        if gap:
            ledger.append(
                command.product_id,
                MovementType.INBOUND_ADJUSTMENT if gap > 0 else MovementType.OUTBOUND_ADJUSTMENT,
                abs(gap),
                actor_id=command.actor_id,
                reason=LEGACY_RECONCILIATION_REASON,
            )
        else:
            current_domain.repository_for(ProductStock).add(product)

        logger.info(
            "legacy_history_imported",
            tenant_id=command.tenant_id,
            product_id=command.product_id,
            entries=len(rows),
            opening=opening,
            reconciled=gap,
            on_hand=product.on_hand,
        )
        return len(rows)
