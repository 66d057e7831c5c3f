"""
Test Group: Portfolio Totals

Portfolio used by most tests (fx fixture: OFICIAL 900, MEP 990/1000, CRIPTO 1100):
    broker    AAPL 10 @ 12000 ARS, priced 15000
    exchange  BTC 0.5 @ 40000 USD, priced 60000
    cash      ARS 100000 and USD 200 in 'bank'
"""

import pytest
from decimal import Decimal

from argfolio.config import PortfolioPreferences
from argfolio.domain.enums import AssetCategory, CostBasisMethod
from argfolio.domain.instruments import Instrument
from argfolio.domain.results import Holding, HoldingAggregated, PnLBucket, RealizedPnLResult
from argfolio.engine.cost_basis import compute_holdings
from argfolio.engine.currency_exposure import compute_exposure, is_usd_exposed
from argfolio.engine.totals import aggregate_holdings, compute_totals
from argfolio.utils.type_utils import get_calculation_context
from tests.support.builders import buy

PRICES = {"aapl": Decimal("15000"), "btc": Decimal("60000")}
CASH = {"bank": {"ARS": Decimal("100000"), "USD": Decimal("200")}}


@pytest.fixture
def holdings(instruments, accounts):
    return compute_holdings([
        buy("B1", "aapl", "10", "12000", account_id="broker", fx_rate="1000"),
        buy("B2", "btc", "0.5", "40000", account_id="exchange", trade_currency="USD", fx_rate="1000"),
    ], instruments, accounts)


def _by_id(aggregates):
    return {a.instrument_id: a for a in aggregates}


# =============================================================================
# Totals
# =============================================================================

class TestTotals:
    """Portfolio-wide sums are sums of per-instrument valuations."""

    def test_totals_sum_each_category_rule(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH)

        # 150000 (AAPL) + 33000000 (BTC) + 100000 (ARS cash) + 180000 (USD cash)
        assert totals.total_ars == Decimal("33430000")
        items = [item for summary in totals.categories for item in summary.items]
        assert totals.total_usd == sum((item.value_usd for item in items), Decimal("0"))
        assert totals.total_ars == sum((item.value_ars for item in items), Decimal("0"))

    def test_liquidity(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH)

        assert totals.liquidity_ars == Decimal("100000")
        assert totals.liquidity_usd == Decimal("200")

    def test_unrealized_pnl(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH)
        by_id = _by_id(item for summary in totals.categories for item in summary.items)

        aapl = by_id["aapl"]
        assert aapl.unrealized_pnl_ars == Decimal("30000")
        assert aapl.unrealized_pnl == Decimal("30000")
        assert aapl.unrealized_pnl_pct == Decimal("25")
        btc = by_id["btc"]
        assert btc.unrealized_pnl_usd == Decimal("10000")
        assert btc.unrealized_pnl_pct == Decimal("50")
        # Cash carries no unrealized PnL
        assert totals.unrealized_pnl_ars == aapl.unrealized_pnl_ars + btc.unrealized_pnl_ars

    def test_realized_pnl_passed_through(self, holdings, fx_rates):
        realized = RealizedPnLResult(realized_ars=Decimal("123"), realized_usd=Decimal("4"),
                                     by_account={"broker": PnLBucket(ars=Decimal("123"))})

        totals = compute_totals(holdings, PRICES, fx_rates, realized_pnl=realized)

        assert totals.realized_pnl_ars == Decimal("123")
        assert totals.realized_pnl_usd == Decimal("4")
        assert totals.realized_pnl_by_account["broker"].ars == Decimal("123")

    def test_missing_price_values_cedear_at_zero(self, holdings, fx_rates):
        totals = compute_totals(holdings, {"btc": Decimal("60000")}, fx_rates)
        aapl = _by_id(item for summary in totals.categories for item in summary.items)["aapl"]

        assert aapl.value_ars == Decimal("0")
        assert aapl.current_value is None
        assert aapl.unrealized_pnl is None


# =============================================================================
# Cash Injection
# =============================================================================

class TestCashInjection:
    """Ledger cash folded into totals."""

    def test_cash_summed_across_accounts(self, holdings, fx_rates):
        cash = {"bank": {"ARS": Decimal("100")}, "broker": {"ARS": Decimal("50")}}

        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=cash)

        assert totals.liquidity_ars == Decimal("150")

    def test_dust_balances_skipped(self, holdings, fx_rates):
        cash = {"bank": {"ARS": Decimal("0.005"), "USD": Decimal("0.001")}}

        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=cash)

        assert totals.liquidity_ars == Decimal("0")
        assert totals.liquidity_usd == Decimal("0")

    def test_other_currency_cash_folds_into_usd(self, holdings, fx_rates, caplog):
        cash = {"exchange": {"USDT": Decimal("50")}}

        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=cash)

        assert totals.liquidity_usd == Decimal("50")
        assert "Cash balance in USDT for account 'exchange' folded into USD cash" in caplog.text

    def test_cash_tracking_can_be_disabled(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH,
                                preferences=PortfolioPreferences(track_cash_balances=False))

        assert totals.liquidity_ars == Decimal("0")
        assert totals.total_ars == Decimal("33150000")

    def test_cash_category_holdings_are_ignored(self, holdings, instruments, accounts, fx_rates):
        cash_holding = Holding("cash-ars", "bank", instruments["cash-ars"], accounts["bank"],
                               method=CostBasisMethod.AVERAGE_COST, quantity=Decimal("999999"),
                               cost_basis_native=Decimal("999999"), cost_basis_ars=Decimal("999999"),
                               cost_basis_usd=Decimal("0"), avg_cost_native=Decimal("1"),
                               avg_cost_ars=Decimal("1"), avg_cost_usd=Decimal("0"))

        totals = compute_totals(holdings + [cash_holding], PRICES, fx_rates, cash_balances=CASH)

        assert totals.liquidity_ars == Decimal("100000")


# =============================================================================
# Aggregation, Categories and Top Positions
# =============================================================================

class TestBreakdown:
    """Per-instrument aggregation and presentation lists."""

    def test_same_instrument_aggregated_across_accounts(self, instruments, accounts):
        holdings = compute_holdings([
            buy("B1", "aapl", "10", "100", account_id="broker"),
            buy("B2", "aapl", "5", "400", account_id="bank"),
        ], instruments, accounts)

        aggregate = aggregate_holdings(holdings, PRICES, get_calculation_context())["aapl"]

        assert aggregate.total_quantity == Decimal("15")
        assert aggregate.total_cost_basis == Decimal("3000")
        assert len(aggregate.by_account) == 2

    def test_category_labels(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH)
        labels = {summary.category: summary.label for summary in totals.categories}

        assert labels[AssetCategory.CEDEAR] == "Cedears"
        assert labels[AssetCategory.CRYPTO] == "Criptomonedas"
        assert labels[AssetCategory.ARS_CASH] == "Pesos"

    def test_top_positions_exclude_cash_and_sort_by_value(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances={"bank": {"ARS": Decimal("1e9")}})

        assert [p.instrument_id for p in totals.top_positions] == ["btc", "aapl"]

    def test_top_positions_limit(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates,
                                preferences=PortfolioPreferences(top_positions_limit=1))

        assert [p.instrument_id for p in totals.top_positions] == ["btc"]


# =============================================================================
# Currency Exposure
# =============================================================================

class TestCurrencyExposure:
    """ARS-real vs USD-real split."""

    def test_exposure_split(self, holdings, fx_rates):
        totals = compute_totals(holdings, PRICES, fx_rates, cash_balances=CASH)
        exposure = totals.exposure

        # AAPL 150 + BTC 30000 + USD cash 200
        assert exposure.usd_real == Decimal("30350")
        assert exposure.ars_real == Decimal("100000")
        assert exposure.fx_mep_buy == Decimal("990")
        assert exposure.usd_eq_ars == Decimal("30350") * Decimal("990")
        assert exposure.total_eq == exposure.ars_real + exposure.usd_eq_ars
        assert abs(exposure.pct_ars + exposure.pct_usd - Decimal("1")) < Decimal("1e-20")

    def test_fci_follows_native_currency(self, instruments, accounts, fx_rates):
        holdings = compute_holdings([
            buy("B1", "fci-usd", "10", "1", trade_currency="USD"),
            buy("B2", "fci-ars", "10", "1"),
        ], instruments, accounts)
        aggregates = aggregate_holdings(holdings, {}, get_calculation_context())

        assert is_usd_exposed(aggregates["fci-usd"])
        assert not is_usd_exposed(aggregates["fci-ars"])

    def test_empty_portfolio_has_zero_percentages(self):
        exposure = compute_exposure([], Decimal("1000"))

        assert exposure.total_eq == Decimal("0")
        assert exposure.pct_ars == Decimal("0")
        assert exposure.pct_usd == Decimal("0")

    def test_wallet_counts_as_ars(self):
        wallet = HoldingAggregated("mp", Instrument("mp", "MP", category=AssetCategory.WALLET, native_currency="USD"))

        assert not is_usd_exposed(wallet)
