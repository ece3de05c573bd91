"""Application tests for product registration, stock movements and legacy import."""

import pytest
from picking import operations
from picking.catalogue.product import find_product
from picking.errors import InsufficientStock, LedgerNotEmpty, ProductNotFound, UnknownMovementType
from picking.ledger.ledger import product_history, query_movements
from picking.ledger.legacy import LEGACY_OPENING_REASON, LEGACY_RECONCILIATION_REASON
from picking.ledger.movement import MovementType
from picking.ledger.projector import StockProjector
from protean.exceptions import ValidationError

TENANT = "tenant-a"


def _legacy(kind, quantity, occurred_at, **extra):
    return {"type": kind, "quantity": quantity, "occurred_at": occurred_at, **extra}


class TestRegisterProduct:
    def test_opening_stock_is_a_ledger_entry(self, stock_product):
        stock_product("p1", 12)

        history = product_history(TENANT, "p1")
        assert find_product(TENANT, "p1").on_hand == 12
        assert len(history) == 1
        assert history[0].movement_type == MovementType.INBOUND_ADJUSTMENT.value
        assert (history[0].balance_before, history[0].balance_after) == (0, 12)
        assert history[0].reason == "Opening balance"

    def test_product_without_stock_has_an_empty_ledger(self, stock_product):
        stock_product("p1", 0)
        assert product_history(TENANT, "p1") == []

    def test_duplicate_registration_is_rejected(self, stock_product):
        stock_product("p1", 1)
        with pytest.raises(ValidationError) as exc:
            stock_product("p1", 1)
        assert "product_id" in exc.value.messages

    def test_negative_opening_stock_is_rejected(self):
        with pytest.raises(ValidationError):
            operations.register_product(TENANT, "p1", "Mirror", initial_quantity=-1)


class TestRecordStockMovement:
    def test_outbound_sale_reduces_on_hand(self, stock_product):
        stock_product("p1", 10)
        operations.record_stock_movement(TENANT, "p1", "outbound_sale", 4, actor_id="clerk-1")

        latest = product_history(TENANT, "p1")[-1]
        assert find_product(TENANT, "p1").on_hand == 6
        assert (latest.balance_before, latest.balance_after) == (10, 6)
        assert latest.actor_id == "clerk-1"

    def test_inbound_purchase_increases_on_hand(self, stock_product):
        stock_product("p1", 0)
        operations.record_stock_movement(TENANT, "p1", "inbound_purchase", 7, reference_kind="invoice", reference_id="nf-9")

        entry = product_history(TENANT, "p1")[0]
        assert find_product(TENANT, "p1").on_hand == 7
        assert entry.reference.kind == "invoice"
        assert entry.reference.ref_id == "nf-9"

    def test_insufficient_stock_writes_nothing(self, stock_product):
        stock_product("p1", 3)
        with pytest.raises(InsufficientStock) as exc:
            operations.record_stock_movement(TENANT, "p1", "outbound_manual", 4)

        assert (exc.value.requested, exc.value.available) == (4, 3)
        assert find_product(TENANT, "p1").on_hand == 3
        assert len(product_history(TENANT, "p1")) == 1

    def test_transfer_keeps_on_hand(self, stock_product):
        stock_product("p1", 10)
        operations.record_stock_movement(TENANT, "p1", "transfer", 4, location_from="A-01-1", location_to="B-02-3")

        entry = product_history(TENANT, "p1")[-1]
        assert find_product(TENANT, "p1").on_hand == 10
        assert (entry.balance_before, entry.balance_after) == (10, 10)
        assert entry.location_to == "B-02-3"

    def test_transfer_needs_both_locations(self, stock_product):
        stock_product("p1", 10)
        with pytest.raises(ValidationError):
            operations.record_stock_movement(TENANT, "p1", "transfer", 4, location_from="A-01-1")

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_quantity_must_be_positive(self, stock_product, quantity):
        stock_product("p1", 10)
        with pytest.raises(ValidationError):
            operations.record_stock_movement(TENANT, "p1", "outbound_sale", quantity)

    def test_unknown_movement_type_is_rejected(self, stock_product):
        stock_product("p1", 10)
        with pytest.raises(ValidationError):
            operations.record_stock_movement(TENANT, "p1", "saida_misteriosa", 1)

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            operations.record_stock_movement(TENANT, "ghost", "inbound_manual", 1)

    def test_sequences_increase_per_product(self, stock_product):
        stock_product("p1", 10)
        for _ in range(3):
            operations.record_stock_movement(TENANT, "p1", "outbound_sale", 1)
        assert [m.sequence for m in product_history(TENANT, "p1")] == [1, 2, 3, 4]

    def test_query_movements_filters(self, stock_product):
        stock_product("p1", 10)
        stock_product("p2", 10)
        operations.record_stock_movement(TENANT, "p1", "outbound_sale", 1, actor_id="clerk-1")
        operations.record_stock_movement(TENANT, "p2", "outbound_sale", 1, actor_id="clerk-2")

        sales = query_movements(TENANT, movement_types=[MovementType.OUTBOUND_SALE])
        assert {m.product_id for m in sales} == {"p1", "p2"}
        by_clerk = query_movements(TENANT, actor_id="clerk-2")
        assert [m.product_id for m in by_clerk] == ["p2"]


class TestImportLegacyHistory:
    def test_backfills_entries_without_balances(self, stock_product):
        stock_product("p1", 0)
        count = operations.import_legacy_history(
            TENANT,
            "p1",
            [
                _legacy("saida_venda", 3, "2024-02-01T10:00:00"),
                _legacy("entrada_compra", 10, "2024-01-01T09:00:00"),
                _legacy("ajuste", -2, "2024-03-01T08:00:00"),
            ],
            current_on_hand=5,
        )

        history = product_history(TENANT, "p1")
        assert count == 3
        assert [m.movement_type for m in history] == [
            MovementType.INBOUND_PURCHASE.value,
            MovementType.OUTBOUND_SALE.value,
            MovementType.OUTBOUND_ADJUSTMENT.value,
        ]
        assert all(not m.has_balances() for m in history)
        assert history[0].legacy_type == "entrada_compra"
        assert find_product(TENANT, "p1").on_hand == 5

    def test_later_movements_follow_the_legacy_history(self, stock_product):
        stock_product("p1", 0)
        operations.import_legacy_history(TENANT, "p1", [_legacy("entrada_compra", 4, "2024-01-01T09:00:00")], 4)
        operations.record_stock_movement(TENANT, "p1", "outbound_sale", 1)

        history = product_history(TENANT, "p1")
        assert [m.sequence for m in history] == [1, 2]
        assert (history[-1].balance_before, history[-1].balance_after) == (4, 3)

    def test_gap_to_legacy_on_hand_is_an_adjustment_entry(self, stock_product):
        stock_product("p1", 0)
        operations.import_legacy_history(TENANT, "p1", [_legacy("entrada_compra", 5, "2024-01-01T09:00:00")], 8)

        history = product_history(TENANT, "p1")
        reconciliation = history[-1]
        assert reconciliation.movement_type == MovementType.INBOUND_ADJUSTMENT.value
        assert (reconciliation.quantity, reconciliation.balance_before, reconciliation.balance_after) == (3, 5, 8)
        assert reconciliation.reason == LEGACY_RECONCILIATION_REASON
        assert find_product(TENANT, "p1").on_hand == 8

        check = StockProjector(TENANT).verify_replay("p1")
        assert check.consistent
        assert check.replayed_balance == 8

    def test_surplus_history_is_adjusted_down(self, stock_product):
        stock_product("p1", 0)
        operations.import_legacy_history(TENANT, "p1", [_legacy("entrada_compra", 5, "2024-01-01T09:00:00")], 2)

        reconciliation = product_history(TENANT, "p1")[-1]
        assert reconciliation.movement_type == MovementType.OUTBOUND_ADJUSTMENT.value
        assert (reconciliation.balance_before, reconciliation.balance_after) == (5, 2)
        assert StockProjector(TENANT).verify_replay("p1").consistent

    def test_history_dipping_below_zero_gets_an_opening_balance(self, stock_product):
        stock_product("p1", 0)
        operations.import_legacy_history(
            TENANT,
            "p1",
            [
                _legacy("saida_venda", 3, "2024-01-01T09:00:00"),
                _legacy("entrada_compra", 2, "2024-02-01T09:00:00"),
            ],
            current_on_hand=4,
        )

        history = product_history(TENANT, "p1")
        assert [(m.movement_type, m.quantity) for m in history] == [
            (MovementType.INBOUND_ADJUSTMENT.value, 3),
            (MovementType.OUTBOUND_SALE.value, 3),
            (MovementType.INBOUND_PURCHASE.value, 2),
            (MovementType.INBOUND_ADJUSTMENT.value, 2),
        ]
        assert history[0].reason == LEGACY_OPENING_REASON
        assert StockProjector(TENANT).verify_replay("p1").consistent
        assert not StockProjector(TENANT).reconstruct_balances("p1").inconsistent

    def test_ledger_must_be_empty(self, stock_product):
        stock_product("p1", 5)
        with pytest.raises(LedgerNotEmpty):
            operations.import_legacy_history(TENANT, "p1", [_legacy("entrada_compra", 4, "2024-01-01T09:00:00")], 4)

    def test_unknown_legacy_type_imports_nothing(self, stock_product):
        stock_product("p1", 0)
        with pytest.raises(UnknownMovementType):
            operations.import_legacy_history(
                TENANT,
                "p1",
                [
                    _legacy("entrada_compra", 4, "2024-01-01T09:00:00"),
                    _legacy("perdido_no_caminho", 1, "2024-01-02T09:00:00"),
                ],
                3,
            )
        assert product_history(TENANT, "p1") == []
