# argfolio/engine/realized_pnl.py
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

import argfolio.config as global_config
from argfolio.domain.enums import (
    AssetCategory, CASH_CATEGORIES, POSITION_INCREASING_TYPES, POSITION_DECREASING_TYPES,
    ZERO_COST_INCOME_TYPES, PNL_REPORTING_TYPES
)
from argfolio.domain.fx_rates import FxRates
from argfolio.domain.movements import Movement
from argfolio.domain.results import (
    Holding, PnLBucket, PooledPosition, RealizedPnLResult, RealizedSale, UnrealizedPnLResult
)
from argfolio.engine.trade_costs import resolve_trade_amount
from argfolio.engine.valuation import calculate_valuation
from argfolio.utils.sorting_utils import sort_movements_chronologically
from argfolio.utils.type_utils import decimal_or_zero, get_calculation_context

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

# Categories whose valuation does not depend on a market price.
_PRICE_OPTIONAL_CATEGORIES = CASH_CATEGORIES | {AssetCategory.STABLE}


def _bucket_pnl(buckets: Dict[str, PnLBucket], key: str, currency: str, pnl: Decimal):
    bucket = buckets.setdefault(key, PnLBucket())
    if currency == "ARS":
        bucket.ars += pnl
    else:
        bucket.usd += pnl


def compute_realized_pnl(movements: Iterable[Movement]) -> RealizedPnLResult:
    """
    Realized PnL from disposals, using weighted average cost.

    Runs its own pass over the ledger with a single pool per (instrument, account).
    Every decreasing movement consumes the pool at the current average cost, but
    only SELL and SELL_USD report the resulting gain. The gain is bucketed as ARS
    when the trade currency is ARS and as USD otherwise.
    """
    ctx = get_calculation_context()
    result = RealizedPnLResult()

    for mov in sort_movements_chronologically(movements):
        if mov.is_cash_only:
            continue

        key = (mov.instrument_id, mov.account_id)
        position = result.positions.setdefault(key, PooledPosition())
        quantity = decimal_or_zero(mov.quantity)

        if mov.type in POSITION_INCREASING_TYPES or mov.type in ZERO_COST_INCOME_TYPES:
            if quantity > ZERO:
                position.quantity = ctx.add(position.quantity, quantity)
                if mov.type not in ZERO_COST_INCOME_TYPES:
                    position.cost_basis = ctx.add(position.cost_basis, resolve_trade_amount(mov, ctx))

        elif mov.type in POSITION_DECREASING_TYPES:
            if quantity <= ZERO:
                continue
            if position.quantity <= ZERO:
                if mov.type in PNL_REPORTING_TYPES:
                    logger.warning(f"Movement {mov.id}: sale of {mov.instrument_id} in account {mov.account_id} "
                                   f"with no recorded position. No PnL reported.")
                continue

            avg_cost = position.avg_cost
            sold_quantity = min(quantity, position.quantity)
            proceeds = ctx.multiply(sold_quantity, decimal_or_zero(mov.unit_price))
            cost = ctx.multiply(sold_quantity, avg_cost)
            pnl = ctx.subtract(proceeds, cost)

            if mov.type in PNL_REPORTING_TYPES:
                currency = "ARS" if mov.trade_currency == "ARS" else "USD"
                if currency == "ARS":
                    result.realized_ars = ctx.add(result.realized_ars, pnl)
                else:
                    result.realized_usd = ctx.add(result.realized_usd, pnl)
                _bucket_pnl(result.by_instrument, mov.instrument_id, currency, pnl)
                _bucket_pnl(result.by_account, mov.account_id, currency, pnl)
                result.sales.append(RealizedSale(
                    movement_id=mov.id,
                    instrument_id=mov.instrument_id,
                    account_id=mov.account_id,
                    datetime_iso=mov.datetime_iso,
                    currency=currency,
                    quantity_sold=sold_quantity,
                    proceeds=proceeds,
                    cost=cost,
                    pnl=pnl,
                ))

            position.quantity = ctx.subtract(position.quantity, sold_quantity)
            position.cost_basis = ctx.subtract(position.cost_basis, cost)

        if position.quantity < global_config.QUANTITY_EPSILON:
            position.quantity = ZERO
            position.cost_basis = ZERO

    logger.info(f"Realized PnL: {len(result.sales)} sale(s), ARS {result.realized_ars}, USD {result.realized_usd}.")
    return result


def compute_unrealized_pnl(holdings: Iterable[Holding],
                           current_prices: Mapping[str, Decimal],
                           fx_rates: FxRates) -> UnrealizedPnLResult:
    """
    Unrealized PnL of open holdings in both currencies.

    Each holding is revalued through its own category rule and compared with the
    cost pool of the same currency. Holdings without a price are skipped, except
    categories that are valued without one (cash and stablecoins).
    """
    ctx = get_calculation_context()
    result = UnrealizedPnLResult()

    for holding in holdings:
        price: Optional[Decimal] = current_prices.get(holding.instrument_id)
        category = holding.instrument.category
        if price is None and category not in _PRICE_OPTIONAL_CATEGORIES:
            logger.debug(f"No price for {holding.instrument_id}. Excluded from unrealized PnL.")
            continue

        valuation = calculate_valuation(holding.quantity, price, category,
                                        holding.instrument.native_currency, fx_rates)
        pnl_ars = ctx.subtract(valuation.value_ars, holding.cost_basis_ars)
        pnl_usd = ctx.subtract(valuation.value_usd, holding.cost_basis_usd)

        result.unrealized_ars = ctx.add(result.unrealized_ars, pnl_ars)
        result.unrealized_usd = ctx.add(result.unrealized_usd, pnl_usd)
        bucket = result.by_instrument.setdefault(holding.instrument_id, PnLBucket())
        bucket.ars += pnl_ars
        bucket.usd += pnl_usd

    return result
