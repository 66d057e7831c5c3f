# argfolio/engine/totals.py
import logging
from decimal import Decimal, Context
from typing import Dict, Iterable, List, Mapping, Optional

import argfolio.config as global_config
from argfolio.config import PortfolioPreferences
from argfolio.domain.enums import AssetCategory, CASH_CATEGORIES, FxType
from argfolio.domain.fx_rates import FxRates
from argfolio.domain.instruments import Instrument
from argfolio.domain.results import (
    CategorySummary, Holding, HoldingAggregated, PortfolioTotals, RealizedPnLResult
)
from argfolio.engine.currency_exposure import compute_exposure
from argfolio.engine.valuation import calculate_valuation
from argfolio.utils.type_utils import get_calculation_context, safe_divide

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')

_CASH_INSTRUMENTS: Dict[str, Instrument] = {
    "ARS": Instrument(global_config.CANONICAL_CASH_ARS_ID, "ARS", category=AssetCategory.ARS_CASH,
                      native_currency="ARS", name="Pesos Argentinos"),
    "USD": Instrument(global_config.CANONICAL_CASH_USD_ID, "USD", category=AssetCategory.USD_CASH,
                      native_currency="USD", name="Dólar Estadounidense"),
}


def aggregate_holdings(holdings: Iterable[Holding], current_prices: Mapping[str, Decimal],
                       ctx: Context) -> Dict[str, HoldingAggregated]:
    """
    Sums per-account holdings into one aggregate per instrument. Cash-category
    holdings are skipped: the cash ledger is the authoritative source for cash.
    """
    aggregates: Dict[str, HoldingAggregated] = {}
    for holding in holdings:
        if holding.instrument.category in CASH_CATEGORIES:
            continue
        aggregate = aggregates.get(holding.instrument_id)
        if aggregate is None:
            aggregate = HoldingAggregated(holding.instrument_id, holding.instrument,
                                          current_price=current_prices.get(holding.instrument_id))
            aggregates[holding.instrument_id] = aggregate
        aggregate.total_quantity = ctx.add(aggregate.total_quantity, holding.quantity)
        aggregate.total_cost_basis = ctx.add(aggregate.total_cost_basis, holding.cost_basis_native)
        aggregate.total_cost_basis_ars = ctx.add(aggregate.total_cost_basis_ars, holding.cost_basis_ars)
        aggregate.total_cost_basis_usd = ctx.add(aggregate.total_cost_basis_usd, holding.cost_basis_usd)
        aggregate.by_account.append(holding)
    return aggregates


def inject_cash_balances(aggregates: Dict[str, HoldingAggregated],
                         cash_balances: Mapping[str, Mapping[str, Decimal]],
                         fx_rates: FxRates,
                         dust_threshold: Decimal,
                         ctx: Context):
    """
    Adds ledger cash as synthetic ARS/USD cash aggregates, summed across accounts.
    Cash is carried at its own current value, so it shows no unrealized PnL.
    """
    for account_id, balances in cash_balances.items():
        for currency, balance in balances.items():
            if abs(balance) < dust_threshold:
                continue
            if currency not in _CASH_INSTRUMENTS:
                logger.warning(f"Cash balance in {currency} for account '{account_id}' folded into USD cash at 1:1.")
            instrument = _CASH_INSTRUMENTS["ARS" if currency == "ARS" else "USD"]
            aggregate = aggregates.get(instrument.id)
            if aggregate is None:
                aggregate = HoldingAggregated(instrument.id, instrument, current_price=ONE)
                aggregates[instrument.id] = aggregate
            aggregate.total_quantity = ctx.add(aggregate.total_quantity, balance)
            aggregate.total_cost_basis = ctx.add(aggregate.total_cost_basis, balance)
            logger.debug(f"Injected {currency} cash {balance} from account '{account_id}'.")

    for currency, instrument in _CASH_INSTRUMENTS.items():
        aggregate = aggregates.get(instrument.id)
        if aggregate is None:
            continue
        valuation = calculate_valuation(aggregate.total_quantity, ONE, instrument.category, currency, fx_rates)
        aggregate.total_cost_basis_ars = valuation.value_ars
        aggregate.total_cost_basis_usd = valuation.value_usd


def revalue_aggregate(aggregate: HoldingAggregated, fx_rates: FxRates, ctx: Context):
    quantity = aggregate.total_quantity
    aggregate.avg_cost = safe_divide(aggregate.total_cost_basis, quantity, ctx)
    aggregate.avg_cost_ars = safe_divide(aggregate.total_cost_basis_ars, quantity, ctx)
    aggregate.avg_cost_usd = safe_divide(aggregate.total_cost_basis_usd, quantity, ctx)

    aggregate.valuation = calculate_valuation(quantity, aggregate.current_price, aggregate.instrument.category,
                                              aggregate.instrument.native_currency, fx_rates)

    if aggregate.current_price is not None:
        aggregate.current_value = ctx.multiply(quantity, aggregate.current_price)
        aggregate.unrealized_pnl = ctx.subtract(aggregate.current_value, aggregate.total_cost_basis)
        aggregate.unrealized_pnl_pct = (
            ctx.multiply(ctx.divide(aggregate.unrealized_pnl, aggregate.total_cost_basis), HUNDRED)
            if aggregate.total_cost_basis > ZERO else ZERO
        )

    aggregate.unrealized_pnl_ars = ctx.subtract(aggregate.value_ars, aggregate.total_cost_basis_ars)
    aggregate.unrealized_pnl_usd = ctx.subtract(aggregate.value_usd, aggregate.total_cost_basis_usd)


def build_category_summaries(aggregates: Iterable[HoldingAggregated], ctx: Context) -> List[CategorySummary]:
    summaries: Dict[AssetCategory, CategorySummary] = {}
    for aggregate in aggregates:
        category = aggregate.instrument.category
        summary = summaries.get(category)
        if summary is None:
            summary = CategorySummary(category=category,
                                      label=global_config.CATEGORY_LABELS.get(category.name, category.name))
            summaries[category] = summary
        summary.total_ars = ctx.add(summary.total_ars, aggregate.value_ars)
        summary.total_usd = ctx.add(summary.total_usd, aggregate.value_usd)
        summary.items.append(aggregate)
    return list(summaries.values())


def select_top_positions(aggregates: Iterable[HoldingAggregated], limit: int) -> List[HoldingAggregated]:
    """Largest non-cash positions by ARS value. Ties keep aggregation order."""
    candidates = [a for a in aggregates
                  if a.value_ars > ZERO and a.instrument.category not in CASH_CATEGORIES]
    return sorted(candidates, key=lambda a: a.value_ars, reverse=True)[:limit]


def compute_totals(holdings: Iterable[Holding],
                   current_prices: Mapping[str, Decimal],
                   fx_rates: FxRates,
                   cash_balances: Optional[Mapping[str, Mapping[str, Decimal]]] = None,
                   realized_pnl: Optional[RealizedPnLResult] = None,
                   preferences: Optional[PortfolioPreferences] = None) -> PortfolioTotals:
    """
    Portfolio-wide totals, liquidity, category breakdown, top positions and
    currency exposure.

    Every aggregate is valued through its own category rule first; the ARS and
    USD totals are sums of those per-instrument values. No single rate is ever
    applied to a summed native-currency pool.
    """
    preferences = preferences or PortfolioPreferences()
    ctx = get_calculation_context()

    aggregates = aggregate_holdings(holdings, current_prices, ctx)
    if preferences.track_cash_balances and cash_balances:
        inject_cash_balances(aggregates, cash_balances, fx_rates, preferences.cash_dust_threshold, ctx)

    totals = PortfolioTotals()
    for aggregate in aggregates.values():
        revalue_aggregate(aggregate, fx_rates, ctx)

        totals.total_ars = ctx.add(totals.total_ars, aggregate.value_ars)
        totals.total_usd = ctx.add(totals.total_usd, aggregate.value_usd)
        totals.unrealized_pnl_ars = ctx.add(totals.unrealized_pnl_ars, aggregate.unrealized_pnl_ars)
        totals.unrealized_pnl_usd = ctx.add(totals.unrealized_pnl_usd, aggregate.unrealized_pnl_usd)

        if aggregate.instrument.category == AssetCategory.ARS_CASH:
            totals.liquidity_ars = ctx.add(totals.liquidity_ars, aggregate.value_ars)
        elif aggregate.instrument.category == AssetCategory.USD_CASH:
            totals.liquidity_usd = ctx.add(totals.liquidity_usd, aggregate.value_usd)

    if realized_pnl is not None:
        totals.realized_pnl_ars = realized_pnl.realized_ars
        totals.realized_pnl_usd = realized_pnl.realized_usd
        totals.realized_pnl_by_account = dict(realized_pnl.by_account)

    totals.categories = build_category_summaries(aggregates.values(), ctx)
    totals.top_positions = select_top_positions(aggregates.values(), preferences.top_positions_limit)
    totals.exposure = compute_exposure(aggregates.values(), fx_rates.quote_for(FxType.MEP).bid)

    logger.info(f"Portfolio totals: ARS {totals.total_ars}, USD {totals.total_usd} "
                f"across {len(aggregates)} instrument(s).")
    return totals
