# argfolio/engine/valuation.py
"""
Category-aware valuation of a quantity into both ARS and USD.

Rules, by category priority:
 1) CRYPTO / STABLE: price is USD; value_usd = qty * price; value_ars = value_usd * CRIPTO.
    A missing stablecoin price defaults to 1.
 2) CEDEAR: price is ARS; value_ars = qty * price; value_usd = value_ars / MEP.
 3) USD_CASH: value_usd = qty; value_ars = value_usd * OFICIAL.
 4) ARS_CASH: value_ars = qty; value_usd = value_ars / OFICIAL.
 5) Anything else: qty * (price or 1) in the native currency, converted through MEP.

Division by a missing or zero rate yields 0 for the converted side.
"""
import logging
from decimal import Decimal, Context
from typing import Optional

from argfolio.domain.enums import AssetCategory, FxType, ValuationRule
from argfolio.domain.fx_rates import FxRates
from argfolio.domain.results import ValuationResult
from argfolio.utils.type_utils import get_calculation_context, is_present, safe_divide

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
ONE = Decimal('1')


def _effective_price(price: Optional[Decimal], default: Decimal) -> Decimal:
    return price if is_present(price) else default


def _value_usd_priced(quantity: Decimal, price: Decimal, fx_type: FxType, rule: ValuationRule,
                      fx_rates: FxRates, ctx: Context) -> ValuationResult:
    rate = fx_rates.rate_for(fx_type)
    value_usd = ctx.multiply(quantity, price)
    return ValuationResult(value_ars=ctx.multiply(value_usd, rate), value_usd=value_usd,
                           fx_used=fx_type, exchange_rate=rate, rule_applied=rule)


def _value_ars_priced(quantity: Decimal, price: Decimal, fx_type: FxType, rule: ValuationRule,
                      fx_rates: FxRates, ctx: Context) -> ValuationResult:
    rate = fx_rates.rate_for(fx_type)
    value_ars = ctx.multiply(quantity, price)
    return ValuationResult(value_ars=value_ars, value_usd=safe_divide(value_ars, rate, ctx),
                           fx_used=fx_type, exchange_rate=rate, rule_applied=rule)


def calculate_valuation(quantity: Decimal,
                        price: Optional[Decimal],
                        category: AssetCategory,
                        native_currency: str,
                        fx_rates: FxRates) -> ValuationResult:
    if not isinstance(category, AssetCategory):
        raise TypeError(f"category must be an AssetCategory enum member, got {type(category)}")
    ctx = get_calculation_context()

    if not is_present(quantity) or quantity == ZERO:
        return ValuationResult(value_ars=ZERO, value_usd=ZERO, fx_used=FxType.MEP,
                               exchange_rate=fx_rates.rate_for(FxType.MEP),
                               rule_applied=ValuationRule.DEFAULT_FALLBACK)

    if category in (AssetCategory.CRYPTO, AssetCategory.STABLE):
        default_price = ONE if category == AssetCategory.STABLE else ZERO
        return _value_usd_priced(quantity, _effective_price(price, default_price), FxType.CRIPTO,
                                 ValuationRule.CRYPTO_TO_ARS, fx_rates, ctx)

    if category == AssetCategory.CEDEAR:
        if not is_present(price):
            logger.debug("CEDEAR valued without a price. Using 0.")
        return _value_ars_priced(quantity, _effective_price(price, ZERO), FxType.MEP,
                                 ValuationRule.CEDEAR_IMPLICIT_USD, fx_rates, ctx)

    if category == AssetCategory.USD_CASH:
        return _value_usd_priced(quantity, ONE, FxType.OFICIAL, ValuationRule.CASH_USD_OFICIAL, fx_rates, ctx)

    if category == AssetCategory.ARS_CASH:
        return _value_ars_priced(quantity, ONE, FxType.OFICIAL, ValuationRule.CASH_ARS_OFICIAL, fx_rates, ctx)

    fallback_price = _effective_price(price, ONE)
    if native_currency == "USD":
        return _value_usd_priced(quantity, fallback_price, FxType.MEP, ValuationRule.GENERIC_USD, fx_rates, ctx)
    return _value_ars_priced(quantity, fallback_price, FxType.MEP, ValuationRule.GENERIC_ARS, fx_rates, ctx)
