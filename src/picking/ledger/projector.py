"""Stock projector: current and historical balances derived from the ledger.

``current_balance`` reads the product's on-hand figure directly.
``reconstruct_balances`` produces a running before/after balance for every
entry in a time range. Entries written by the ledger carry their own balances
and are used as-is; legacy entries without balances are reconstructed by
walking back from current on-hand through everything after the range, then
forward through the range.

Reports never raise on bad history. A balance that reconstructs below zero is
clamped, and the report is flagged ``inconsistent`` with a warning.
Reconstruction is synchronous and side-effect free, so callers with a
single-threaded host can hand it to a worker thread.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime

from picking.catalogue.product import find_product
from picking.domain import logger
from picking.ledger.ledger import product_history, within_range
from picking.ledger.movement import MovementType, StockMovement


@dataclass(frozen=True)
class BalanceRow:
    """One ledger entry with its balance before and after."""

    movement_id: str
    movement_type: str
    quantity: int
    occurred_at: datetime
    sequence: int
    balance_before: int
    balance_after: int
    reconstructed: bool = False
    reference_kind: str | None = None
    reference_id: str | None = None
    actor_id: str | None = None


@dataclass(frozen=True)
class BalanceReport:
    product_id: str
    start: datetime | None
    end: datetime | None
    opening_balance: int
    closing_balance: int
    rows: list[BalanceRow] = field(default_factory=list)
    total_inbound: int = 0
    total_outbound: int = 0
    total_adjustments: int = 0
    inconsistent: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReplayCheck:
    """Outcome of replaying a product's whole ledger from zero."""

    product_id: str
    on_hand: int
    replayed_balance: int
    entry_count: int
    mismatched_entries: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return self.replayed_balance == self.on_hand and not self.mismatched_entries


def _row(movement: StockMovement, before: int, after: int, reconstructed: bool) -> BalanceRow:
    reference = movement.reference
    return BalanceRow(
        movement_id=str(movement.id),
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        occurred_at=movement.occurred_at,
        sequence=movement.sequence,
        balance_before=before,
        balance_after=after,
        reconstructed=reconstructed,
        reference_kind=reference.kind if reference else None,
        reference_id=reference.ref_id if reference else None,
        actor_id=movement.actor_id,
    )


def _totals(entries: list[StockMovement]) -> tuple[int, int, int]:
    inbound = outbound = adjustments = 0
    for movement in entries:
        kind = MovementType(movement.movement_type)
        if kind.is_adjustment:
            adjustments += movement.signed_quantity()
        elif kind.sign > 0:
            inbound += movement.quantity
        elif kind.sign < 0:
            outbound += movement.quantity
    return inbound, outbound, adjustments


class StockProjector:
    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id

    def current_balance(self, product_id: str) -> int:
        """Authoritative on-hand quantity for a product."""
        return find_product(self.tenant_id, product_id).on_hand or 0

    def reconstruct_balances(
        self,
        product_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> BalanceReport:
        product = find_product(self.tenant_id, product_id)
        history = product_history(self.tenant_id, product_id)
        in_range = [m for m in history if within_range(m, start, end)]
        after_end = [m for m in history if end is not None and m.occurred_at > end]

        warnings: list[str] = []
        rows: list[BalanceRow] = []

        # Balance at the end of the range, walked back from on-hand
        closing = product.on_hand or 0
        for movement in reversed(after_end):
            closing -= movement.signed_quantity()
        opening = closing - sum(m.signed_quantity() for m in in_range)

        if in_range and all(m.has_balances() for m in in_range):
            previous = None
            for movement in in_range:
                if previous is not None and previous.balance_after != movement.balance_before:
                    warnings.append(
                        f"Entry {movement.id} starts at {movement.balance_before} "
                        f"but the previous entry ended at {previous.balance_after}"
                    )
                rows.append(_row(movement, movement.balance_before, movement.balance_after, False))
                previous = movement
            opening = in_range[0].balance_before
            closing = in_range[-1].balance_after
        else:
            running = opening
            for movement in in_range:
                before, after = running, running + movement.signed_quantity()
                running = after
                if movement.has_balances():
                    if (movement.balance_before, movement.balance_after) != (before, after):
                        warnings.append(
                            f"Entry {movement.id} records {movement.balance_before}->{movement.balance_after}, "
                            f"replay gives {before}->{after}"
                        )
                    rows.append(_row(movement, movement.balance_before, movement.balance_after, False))
                else:
                    rows.append(_row(movement, before, after, True))

        clamped = []
        for row in rows:
            if row.balance_before < 0 or row.balance_after < 0:
                warnings.append(f"Entry {row.movement_id} reconstructs to a negative balance")
                row = replace(row, balance_before=max(0, row.balance_before), balance_after=max(0, row.balance_after))
            clamped.append(row)
        if opening < 0 or closing < 0:
            warnings.append("Range boundary reconstructs to a negative balance")
            opening, closing = max(0, opening), max(0, closing)

        inbound, outbound, adjustments = _totals(in_range)
        report = BalanceReport(
            product_id=product_id,
            start=start,
            end=end,
            opening_balance=opening,
            closing_balance=closing,
            rows=clamped,
            total_inbound=inbound,
            total_outbound=outbound,
            total_adjustments=adjustments,
            inconsistent=bool(warnings),
            warnings=warnings,
        )
        if report.inconsistent:
            logger.warning(
                "balance_report_inconsistent",
                tenant_id=self.tenant_id,
                product_id=product_id,
                warnings=len(warnings),
            )
        return report

    def verify_replay(self, product_id: str) -> ReplayCheck:
        """Replay every entry from zero and compare with stored balances and on-hand."""
        product = find_product(self.tenant_id, product_id)
        history = product_history(self.tenant_id, product_id)

        balance = 0
        mismatched = []
        for movement in history:
            expected = balance + movement.signed_quantity()
            if movement.has_balances() and (movement.balance_before, movement.balance_after) != (balance, expected):
                mismatched.append(str(movement.id))
            balance = expected

        return ReplayCheck(
            product_id=product_id,
            on_hand=product.on_hand or 0,
            replayed_balance=balance,
            entry_count=len(history),
            mismatched_entries=mismatched,
        )
