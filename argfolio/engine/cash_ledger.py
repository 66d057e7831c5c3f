# argfolio/engine/cash_ledger.py
import logging
from dataclasses import dataclass
from decimal import Decimal, Context
from typing import Callable, Dict, Iterable, List, Optional

import argfolio.config as global_config
from argfolio.domain.enums import MovementType
from argfolio.domain.movements import Movement
from argfolio.domain.results import CashLedgerResult
from argfolio.utils.sorting_utils import sort_movements_chronologically
from argfolio.utils.type_utils import get_calculation_context, is_present

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

FIXED_DEPOSIT_ASSET_CLASS = "pf"
MANUAL_SETTLEMENT_MODE = "manual"


@dataclass(frozen=True)
class CashDelta:
    currency: str
    amount: Decimal


@dataclass(frozen=True)
class ResolvedFee:
    amount: Decimal
    currency: str


def resolve_settlement_currency(movement: Movement) -> str:
    """Explicit trade currency, then the fee currency, then USD if a USD total exists, else the default."""
    if movement.trade_currency:
        return movement.trade_currency
    if movement.fee and movement.fee.currency:
        return movement.fee.currency
    if is_present(movement.total_usd) and movement.total_usd != ZERO:
        return "USD"
    return global_config.DEFAULT_SETTLEMENT_CURRENCY


def resolve_fee(movement: Movement, fallback_currency: str) -> Optional[ResolvedFee]:
    if not movement.fee or not is_present(movement.fee.amount) or movement.fee.amount == ZERO:
        return None
    return ResolvedFee(amount=movement.fee.amount, currency=movement.fee.currency or fallback_currency)


def resolve_gross_amount(movement: Movement, currency: str, ctx: Context) -> Decimal:
    if is_present(movement.total_amount):
        return movement.total_amount
    if is_present(movement.net_amount):
        return movement.net_amount
    if is_present(movement.quantity) and is_present(movement.unit_price) \
            and movement.quantity != ZERO and movement.unit_price != ZERO:
        return ctx.multiply(movement.quantity, movement.unit_price)
    if currency == "ARS" and is_present(movement.total_ars):
        return movement.total_ars
    if currency == "USD" and is_present(movement.total_usd):
        return movement.total_usd
    return ZERO


def resolve_net_amount(movement: Movement, currency: str, is_buy_side: bool, ctx: Context) -> Decimal:
    """
    Post-fee cash amount of a movement. An explicit net amount wins; otherwise
    a fee in the settlement currency is added on the buy side and deducted on
    the sell side of the gross amount.
    """
    if is_present(movement.net_amount):
        return movement.net_amount
    gross = resolve_gross_amount(movement, currency, ctx)
    fee = resolve_fee(movement, currency)
    if fee and fee.currency == currency:
        return ctx.add(gross, fee.amount) if is_buy_side else ctx.subtract(gross, fee.amount)
    return gross


def _resolve_usd_leg(movement: Movement) -> Decimal:
    if is_present(movement.quantity):
        return movement.quantity
    if is_present(movement.total_usd):
        return movement.total_usd
    return ZERO


def _credit(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    return [CashDelta(currency, resolve_net_amount(movement, currency, False, ctx))]


def _debit(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    return [CashDelta(currency, -resolve_net_amount(movement, currency, True, ctx))]


def _sale_credit(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    if _is_manually_settled_fixed_deposit(movement):
        return []
    return _credit(movement, currency, ctx)


def _fee_debit(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    fee = resolve_fee(movement, currency)
    if fee:
        return [CashDelta(fee.currency, -fee.amount)]
    return _debit(movement, currency, ctx)


def _usd_purchase(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    deltas = [CashDelta(currency, -resolve_net_amount(movement, currency, True, ctx))]
    usd_amount = _resolve_usd_leg(movement)
    if usd_amount != ZERO:
        deltas.append(CashDelta("USD", usd_amount))
    return deltas


def _usd_sale(movement: Movement, currency: str, ctx: Context) -> List[CashDelta]:
    deltas = [CashDelta(currency, resolve_net_amount(movement, currency, False, ctx))]
    usd_amount = _resolve_usd_leg(movement)
    if usd_amount != ZERO:
        deltas.append(CashDelta("USD", -usd_amount))
    return deltas


def _is_manually_settled_fixed_deposit(movement: Movement) -> bool:
    # Fixed-deposit redemptions settled by hand record their cash leg as a separate movement.
    return (movement.type == MovementType.SELL
            and movement.asset_class == FIXED_DEPOSIT_ASSET_CLASS
            and movement.settlement_mode == MANUAL_SETTLEMENT_MODE)


CashDeltaResolver = Callable[[Movement, str, Context], List[CashDelta]]

cash_delta_resolver_map: Dict[MovementType, CashDeltaResolver] = {
    MovementType.DEPOSIT: _credit,
    MovementType.INTEREST: _credit,
    MovementType.DIVIDEND: _credit,
    MovementType.TRANSFER_IN: _credit,
    MovementType.DEBT_ADD: _credit,
    MovementType.WITHDRAW: _debit,
    MovementType.TRANSFER_OUT: _debit,
    MovementType.DEBT_PAY: _debit,
    MovementType.BUY: _debit,
    MovementType.SELL: _sale_credit,
    MovementType.FEE: _fee_debit,
    MovementType.BUY_USD: _usd_purchase,
    MovementType.SELL_USD: _usd_sale,
}


def get_movement_cash_deltas(movement: Movement, ctx: Optional[Context] = None) -> List[CashDelta]:
    """Signed per-currency cash effects of one movement, with dust and non-finite amounts removed."""
    ctx = ctx or get_calculation_context()
    currency = resolve_settlement_currency(movement)
    resolver = cash_delta_resolver_map.get(movement.type)
    deltas = resolver(movement, currency, ctx) if resolver else []

    # A fee charged in another currency debits that currency separately.
    # FEE movements already debited their own currency above.
    fee = resolve_fee(movement, currency)
    if fee and fee.currency != currency and movement.type != MovementType.FEE:
        deltas.append(CashDelta(fee.currency, -fee.amount))

    return [d for d in deltas if d.amount.is_finite() and abs(d.amount) > global_config.QUANTITY_EPSILON]


def compute_cash_ledger(movements: Iterable[Movement]) -> CashLedgerResult:
    """
    Folds the movement ledger into per-account, per-currency cash balances.

    While folding, the lowest running balance of each (account, currency) is
    tracked. A negative minimum means cash existed before the recorded history
    began, so max(0, -minimum) is inferred as the opening balance and added to
    the final balance.
    """
    ctx = get_calculation_context()
    running: Dict[str, Dict[str, Decimal]] = {}
    minimums: Dict[str, Dict[str, Decimal]] = {}

    for mov in sort_movements_chronologically(movements):
        for delta in get_movement_cash_deltas(mov, ctx):
            account_balances = running.setdefault(mov.account_id, {})
            next_balance = ctx.add(account_balances.get(delta.currency, ZERO), delta.amount)
            account_balances[delta.currency] = next_balance

            account_minimums = minimums.setdefault(mov.account_id, {})
            previous_min = account_minimums.get(delta.currency)
            account_minimums[delta.currency] = min(ZERO, next_balance) if previous_min is None else min(previous_min, next_balance)

    result = CashLedgerResult()
    for account_id, account_balances in running.items():
        result.running_balances[account_id] = dict(account_balances)
        final_balances = result.balances.setdefault(account_id, {})
        for currency, balance in account_balances.items():
            minimum = minimums.get(account_id, {}).get(currency, ZERO)
            opening = -minimum if minimum < ZERO else ZERO
            if opening > ZERO:
                result.opening_balances.setdefault(account_id, {})[currency] = opening
                logger.info(f"Account '{account_id}' {currency}: inferred opening balance {opening}.")
            final_balances[currency] = ctx.add(balance, opening)

    return result


def compute_cash_balances(movements: Iterable[Movement]) -> Dict[str, Dict[str, Decimal]]:
    return compute_cash_ledger(movements).balances
