# argfolio/engine/trade_costs.py
import logging
from dataclasses import dataclass
from decimal import Decimal, Context

from argfolio.domain.enums import ZERO_COST_INCOME_TYPES
from argfolio.domain.movements import Movement
from argfolio.utils.type_utils import decimal_or_zero, positive_or_none, safe_divide

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
ONE = Decimal('1')


@dataclass(frozen=True)
class AcquisitionCost:
    """Quantity received by a movement and its cost in both ARS and USD."""
    quantity: Decimal
    amount_ars: Decimal
    amount_usd: Decimal
    fx_rate: Decimal


def resolve_movement_fx_rate(movement: Movement) -> Decimal:
    """Explicit fx.rate, then the historical fx_at_trade, then 1 (pass-through)."""
    explicit = positive_or_none(movement.fx.rate) if movement.fx else None
    if explicit is not None:
        return explicit
    historical = positive_or_none(movement.fx_at_trade)
    if historical is not None:
        return historical
    return ONE


def resolve_trade_amount(movement: Movement, ctx: Context) -> Decimal:
    """
    Quantity x unit price in the trade currency, or the declared total in that
    currency when the product is zero. A negative amount is clamped to 0, so
    acquisitions never carry negative cost in any cost basis variant.
    """
    trade_amount = ctx.multiply(decimal_or_zero(movement.quantity), decimal_or_zero(movement.unit_price))
    if trade_amount == ZERO:
        trade_amount = decimal_or_zero(movement.total_ars if movement.trade_currency == "ARS" else movement.total_usd)
    if trade_amount < ZERO:
        logger.warning(f"Movement {movement.id}: negative trade amount {trade_amount} for {movement.instrument_id}. "
                       f"Treating the acquisition as zero cost.")
        return ZERO
    return trade_amount


def resolve_acquisition_cost(movement: Movement, ctx: Context) -> AcquisitionCost:
    """
    Resolves the ARS and USD cost of a position-increasing movement.

    The trade amount is quantity x unit price in the trade currency, falling back
    to the declared total in that currency when the product is zero. ARS trades
    derive USD by dividing by the movement FX rate; every other trade currency is
    treated as USD and derives ARS by multiplying. Income types (dividends and
    interest received in kind) add units at zero cost.
    """
    quantity = decimal_or_zero(movement.quantity)
    fx_rate = resolve_movement_fx_rate(movement)

    if movement.type in ZERO_COST_INCOME_TYPES:
        return AcquisitionCost(quantity=quantity, amount_ars=ZERO, amount_usd=ZERO, fx_rate=fx_rate)

    trade_amount = resolve_trade_amount(movement, ctx)
    if movement.trade_currency == "ARS":
        amount_ars = trade_amount
        amount_usd = safe_divide(amount_ars, fx_rate, ctx)
    else:
        amount_usd = trade_amount
        amount_ars = ctx.multiply(amount_usd, fx_rate)

    return AcquisitionCost(quantity=quantity, amount_ars=amount_ars, amount_usd=amount_usd, fx_rate=fx_rate)
