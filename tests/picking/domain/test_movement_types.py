"""Tests for MovementType semantics and legacy type normalization."""

import pytest
from picking.errors import InvalidQuantity, UnknownMovementType
from picking.ledger.legacy import normalize_movement_type
from picking.ledger.movement import MovementType


class TestMovementTypeSign:
    @pytest.mark.parametrize(
        "movement_type",
        [
            MovementType.INBOUND_PURCHASE,
            MovementType.INBOUND_MANUAL,
            MovementType.INBOUND_ADJUSTMENT,
            MovementType.INBOUND_RETURN_CUSTOMER,
            MovementType.INBOUND_RETURN_SUPPLIER,
        ],
    )
    def test_inbound_types_add_stock(self, movement_type):
        assert movement_type.sign == 1

    @pytest.mark.parametrize(
        "movement_type",
        [
            MovementType.OUTBOUND_SALE,
            MovementType.OUTBOUND_MANUAL,
            MovementType.OUTBOUND_ADJUSTMENT,
            MovementType.OUTBOUND_PICKING,
        ],
    )
    def test_outbound_types_remove_stock(self, movement_type):
        assert movement_type.sign == -1

    def test_transfer_leaves_balance_unchanged(self):
        assert MovementType.TRANSFER.sign == 0

    def test_only_adjustments_are_adjustments(self):
        adjustments = {t for t in MovementType if t.is_adjustment}
        assert adjustments == {MovementType.INBOUND_ADJUSTMENT, MovementType.OUTBOUND_ADJUSTMENT}


class TestLegacyNormalization:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("entrada_compra", MovementType.INBOUND_PURCHASE),
            ("entrada_devolucao", MovementType.INBOUND_RETURN_CUSTOMER),
            ("entrada_devolucao_fornecedor", MovementType.INBOUND_RETURN_SUPPLIER),
            ("saida_venda", MovementType.OUTBOUND_SALE),
            ("saida_separacao", MovementType.OUTBOUND_PICKING),
            ("transferencia", MovementType.TRANSFER),
            ("in", MovementType.INBOUND_MANUAL),
            ("out", MovementType.OUTBOUND_MANUAL),
        ],
    )
    def test_legacy_strings_map_to_movement_types(self, raw, expected):
        movement_type, quantity = normalize_movement_type(raw, 4)
        assert movement_type == expected
        assert quantity == 4

    def test_legacy_strings_are_case_and_space_insensitive(self):
        movement_type, _ = normalize_movement_type("  Saida_Venda ", 1)
        assert movement_type == MovementType.OUTBOUND_SALE

    def test_negative_legacy_quantity_becomes_positive(self):
        movement_type, quantity = normalize_movement_type("saida_manual", -3)
        assert movement_type == MovementType.OUTBOUND_MANUAL
        assert quantity == 3

    def test_signed_adjustment_chooses_direction(self):
        assert normalize_movement_type("ajuste", 5) == (MovementType.INBOUND_ADJUSTMENT, 5)
        assert normalize_movement_type("ajuste", -2) == (MovementType.OUTBOUND_ADJUSTMENT, 2)

    def test_normalized_values_pass_through(self):
        assert normalize_movement_type("outbound_sale", 2) == (MovementType.OUTBOUND_SALE, 2)

    def test_unknown_type_is_rejected(self):
        with pytest.raises(UnknownMovementType) as exc:
            normalize_movement_type("perda_misteriosa", 1)
        assert exc.value.raw_type == "perda_misteriosa"
        assert "movement_type" in exc.value.messages

    def test_zero_quantity_is_rejected(self):
        with pytest.raises(InvalidQuantity):
            normalize_movement_type("entrada_compra", 0)
