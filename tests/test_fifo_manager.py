"""
Test Group: FIFO Lot Queue

Tests the FifoLedger and build_fifo_lots:
- Lot creation with frozen unit costs in ARS, USD and native currency
- Consumption from the oldest lot, partial head replacement
- Oversell across multiple lots
- Immutability of lots already handed out
"""

import pytest
from decimal import Decimal

from argfolio.domain.enums import MovementType
from argfolio.domain.results import Lot
from argfolio.engine.fifo_manager import FifoLedger, build_fifo_lots
from tests.support.builders import buy, make_movement, sell


def _ledger_with_three_lots() -> FifoLedger:
    ledger = FifoLedger(native_currency="USD")
    ledger.add_lot(buy("L1", "btc", "3", "10", when="2024-01-01T10:00:00Z", trade_currency="USD", fx_rate="1000"))
    ledger.add_lot(buy("L2", "btc", "4", "20", when="2024-02-01T10:00:00Z", trade_currency="USD", fx_rate="1000"))
    ledger.add_lot(buy("L3", "btc", "5", "30", when="2024-03-01T10:00:00Z", trade_currency="USD", fx_rate="1000"))
    return ledger


# =============================================================================
# Lot Creation
# =============================================================================

class TestLotCreation:
    """Lots freeze their unit cost at acquisition."""

    def test_usd_lot_unit_costs(self):
        ledger = FifoLedger(native_currency="USD")
        lot = ledger.add_lot(buy("L1", "btc", "2", "50", trade_currency="USD", fx_rate="1200"))

        assert lot.lot_id == "L1"
        assert lot.remaining_quantity == Decimal("2")
        assert lot.original_quantity == Decimal("2")
        assert lot.unit_cost_usd == Decimal("50")
        assert lot.unit_cost_ars == Decimal("60000")
        assert lot.unit_cost_native == Decimal("50")
        assert lot.fx_at_trade == Decimal("1200")

    def test_ars_native_lot_uses_ars_unit_cost(self):
        ledger = FifoLedger(native_currency="ARS")
        lot = ledger.add_lot(buy("L1", "aapl", "4", "1000", trade_currency="ARS", fx_rate="1000"))

        assert lot.unit_cost_native == Decimal("1000")
        assert lot.unit_cost_usd == Decimal("1")

    def test_dividend_lot_has_zero_cost(self):
        ledger = FifoLedger(native_currency="ARS")
        lot = ledger.add_lot(make_movement("D1", MovementType.DIVIDEND, instrument_id="aapl",
                                           quantity="1", unit_price="1000"))

        assert lot.remaining_quantity == Decimal("1")
        assert lot.unit_cost_native == Decimal("0")
        assert lot.total_cost_ars == Decimal("0")

    def test_non_positive_quantity_creates_no_lot(self):
        ledger = FifoLedger()

        assert ledger.add_lot(buy("L1", "btc", "0", "100", trade_currency="USD")) is None
        assert ledger.open_lots() == ()

    def test_negative_price_creates_zero_cost_lot(self, caplog):
        ledger = FifoLedger(native_currency="USD")
        lot = ledger.add_lot(buy("L1", "btc", "1", "-5", trade_currency="USD", fx_rate="1000"))

        assert lot.remaining_quantity == Decimal("1")
        assert lot.unit_cost_native == Decimal("0")
        assert lot.unit_cost_ars == Decimal("0")
        assert "negative trade amount" in caplog.text

    def test_lot_rejects_negative_remaining(self):
        with pytest.raises(ValueError):
            Lot("L1", "2024-01-01", Decimal("-1"), Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"))


# =============================================================================
# Consumption
# =============================================================================

class TestConsumption:
    """Oldest-first consumption."""

    def test_full_consumption_of_oldest_lot(self):
        ledger = _ledger_with_three_lots()

        consumed = ledger.consume(Decimal("3"))

        assert [c.lot_id for c in consumed] == ["L1"]
        assert [lot.lot_id for lot in ledger.open_lots()] == ["L2", "L3"]
        assert ledger.open_lots()[0].remaining_quantity == Decimal("4")

    def test_partial_consumption_replaces_head_with_reduced_copy(self):
        ledger = _ledger_with_three_lots()
        lots_before = ledger.open_lots()

        ledger.consume(Decimal("1"))

        assert ledger.open_lots()[0].lot_id == "L1"
        assert ledger.open_lots()[0].remaining_quantity == Decimal("2")
        assert ledger.open_lots()[0].original_quantity == Decimal("3")
        # Lots handed out earlier are unchanged
        assert lots_before[0].remaining_quantity == Decimal("3")

    def test_consumption_spanning_lots(self):
        ledger = _ledger_with_three_lots()

        consumed = ledger.consume(Decimal("10"))

        assert [(c.lot_id, c.consumed_quantity) for c in consumed] == [
            ("L1", Decimal("3")), ("L2", Decimal("4")), ("L3", Decimal("3")),
        ]
        assert ledger.total_quantity() == Decimal("2")
        assert ledger.total_cost_usd() == Decimal("60")
        assert ledger.total_cost_ars() == Decimal("60000")

    def test_oversell_empties_queue_and_warns(self, caplog):
        ledger = _ledger_with_three_lots()

        consumed = ledger.consume(Decimal("20"), source_id="Movement S1")

        assert sum(c.consumed_quantity for c in consumed) == Decimal("12")
        assert ledger.open_lots() == ()
        assert "Movement S1" in caplog.text

    def test_totals_are_remaining_times_unit_cost(self):
        ledger = _ledger_with_three_lots()

        assert ledger.total_quantity() == Decimal("12")
        assert ledger.total_cost_usd() == Decimal("3") * 10 + Decimal("4") * 20 + Decimal("5") * 30


# =============================================================================
# build_fifo_lots
# =============================================================================

class TestBuildFifoLots:
    """Position state produced from a movement list."""

    def test_lots_in_chronological_order(self):
        state = build_fifo_lots([
            buy("L2", "btc", "1", "200", when="2024-02-01T10:00:00Z", trade_currency="USD"),
            buy("L1", "btc", "1", "100", when="2024-01-01T10:00:00Z", trade_currency="USD"),
        ])

        assert [lot.lot_id for lot in state.lots] == ["L1", "L2"]

    def test_sell_consumes_oldest(self):
        state = build_fifo_lots([
            buy("L1", "btc", "1", "100", when="2024-01-01T10:00:00Z", trade_currency="USD"),
            buy("L2", "btc", "1", "200", when="2024-02-01T10:00:00Z", trade_currency="USD"),
            sell("S1", "btc", "1", "300", when="2024-03-01T10:00:00Z", trade_currency="USD"),
        ])

        assert state.quantity == Decimal("1")
        assert state.cost_basis_usd == Decimal("200")
        assert [lot.lot_id for lot in state.lots] == ["L2"]

    def test_closed_position_snapshot_is_empty(self):
        state = build_fifo_lots([
            buy("L1", "btc", "1", "100", when="2024-01-01T10:00:00Z", trade_currency="USD"),
            sell("S1", "btc", "1", "300", when="2024-03-01T10:00:00Z", trade_currency="USD"),
        ])

        assert state.quantity == Decimal("0")
        assert state.cost_basis_usd == Decimal("0")
        assert state.lots == ()

    def test_quantity_matches_sum_of_lots(self):
        state = build_fifo_lots([
            buy("L1", "btc", "0.5", "100", when="2024-01-01T10:00:00Z", trade_currency="USD"),
            buy("L2", "btc", "0.25", "200", when="2024-02-01T10:00:00Z", trade_currency="USD"),
            sell("S1", "btc", "0.6", "300", when="2024-03-01T10:00:00Z", trade_currency="USD"),
        ])

        assert state.quantity == sum(lot.remaining_quantity for lot in state.lots)
        assert state.quantity == Decimal("0.15")
