# argfolio/engine/currency_exposure.py
from decimal import Decimal
from typing import Iterable

from argfolio.domain.enums import AssetCategory
from argfolio.domain.results import CurrencyExposure, HoldingAggregated
from argfolio.utils.type_utils import get_calculation_context, safe_divide

ZERO = Decimal('0')

_USD_REAL_CATEGORIES = frozenset({
    AssetCategory.CRYPTO, AssetCategory.STABLE, AssetCategory.CEDEAR, AssetCategory.USD_CASH,
})
_ARS_REAL_CATEGORIES = frozenset({
    AssetCategory.ARS_CASH, AssetCategory.PF, AssetCategory.DEBT, AssetCategory.WALLET,
})
_USD_LIKE_CURRENCIES = frozenset({"USD", "USDT", "USDC"})


def is_usd_exposed(aggregate: HoldingAggregated) -> bool:
    """
    Whether a position is economically dollar-denominated. CEDEARs count as USD
    even though they are quoted in ARS; FCIs follow their native currency.
    """
    category = aggregate.instrument.category
    if category in _USD_REAL_CATEGORIES:
        return True
    if category in _ARS_REAL_CATEGORIES:
        return False
    return aggregate.instrument.native_currency in _USD_LIKE_CURRENCIES


def compute_exposure(aggregates: Iterable[HoldingAggregated], fx_mep_buy: Decimal) -> CurrencyExposure:
    """Splits the portfolio into ARS-real and USD-real buckets; USD is restated in ARS at the MEP buy rate."""
    ctx = get_calculation_context()
    ars_real = ZERO
    usd_real = ZERO

    for aggregate in aggregates:
        if is_usd_exposed(aggregate):
            usd_real = ctx.add(usd_real, aggregate.value_usd)
        else:
            ars_real = ctx.add(ars_real, aggregate.value_ars)

    usd_eq_ars = ctx.multiply(usd_real, fx_mep_buy)
    total_eq = ctx.add(ars_real, usd_eq_ars)
    positive_total = total_eq if total_eq > ZERO else ZERO

    return CurrencyExposure(
        ars_real=ars_real,
        usd_real=usd_real,
        fx_mep_buy=fx_mep_buy,
        ars_eq=ars_real,
        usd_eq_ars=usd_eq_ars,
        total_eq=total_eq,
        pct_ars=safe_divide(ars_real, positive_total, ctx),
        pct_usd=safe_divide(usd_eq_ars, positive_total, ctx),
    )
