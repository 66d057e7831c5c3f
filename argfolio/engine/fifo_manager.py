# argfolio/engine/fifo_manager.py
import logging
from collections import deque
from dataclasses import dataclass, replace
from decimal import Decimal, Context
from typing import Deque, Iterable, List, Optional, Tuple

import argfolio.config as global_config
from argfolio.domain.enums import POSITION_INCREASING_TYPES, POSITION_DECREASING_TYPES, ZERO_COST_INCOME_TYPES
from argfolio.domain.movements import Movement
from argfolio.domain.results import Lot, PositionState
from argfolio.engine.trade_costs import resolve_acquisition_cost
from argfolio.utils.sorting_utils import sort_movements_chronologically
from argfolio.utils.type_utils import decimal_or_zero, get_calculation_context, safe_divide

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass(frozen=True)
class ConsumedLotDetail:
    lot_id: str
    acquired_at: str
    consumed_quantity: Decimal
    unit_cost_native: Decimal
    unit_cost_ars: Decimal
    unit_cost_usd: Decimal


class FifoLedger:
    """
    Ordered lot queue for one (instrument, account) pair.

    Lots are immutable; a partially consumed head lot is replaced by a reduced
    copy, so lots handed out by `open_lots()` are never changed afterwards.
    """

    def __init__(self, native_currency: str = "USD", ctx: Optional[Context] = None):
        self.native_currency = native_currency
        self.ctx = ctx or get_calculation_context()
        self.lots: Deque[Lot] = deque()

    def add_lot(self, movement: Movement) -> Optional[Lot]:
        cost = resolve_acquisition_cost(movement, self.ctx)
        if cost.quantity <= ZERO:
            logger.debug(f"Movement {movement.id}: non-positive quantity {cost.quantity}. No lot created.")
            return None

        unit_cost_ars = safe_divide(cost.amount_ars, cost.quantity, self.ctx)
        unit_cost_usd = safe_divide(cost.amount_usd, cost.quantity, self.ctx)
        unit_cost_native = unit_cost_ars if self.native_currency == "ARS" else unit_cost_usd

        lot = Lot(
            lot_id=movement.id,
            acquired_at=movement.datetime_iso,
            remaining_quantity=cost.quantity,
            original_quantity=cost.quantity,
            unit_cost_native=unit_cost_native,
            unit_cost_ars=unit_cost_ars,
            unit_cost_usd=unit_cost_usd,
            fx_at_trade=cost.fx_rate,
        )
        self.lots.append(lot)
        return lot

    def consume(self, quantity: Decimal, source_id: str = "") -> List[ConsumedLotDetail]:
        """
        Consumes quantity from the oldest lots first. Any quantity left once the
        queue is empty is an oversell: it is logged and dropped.
        """
        consumed: List[ConsumedLotDetail] = []
        still_to_remove = quantity
        while still_to_remove > ZERO and self.lots:
            head = self.lots[0]
            take = min(head.remaining_quantity, still_to_remove)
            consumed.append(ConsumedLotDetail(
                lot_id=head.lot_id,
                acquired_at=head.acquired_at,
                consumed_quantity=take,
                unit_cost_native=head.unit_cost_native,
                unit_cost_ars=head.unit_cost_ars,
                unit_cost_usd=head.unit_cost_usd,
            ))
            remaining = self.ctx.subtract(head.remaining_quantity, take)
            if remaining < global_config.QUANTITY_EPSILON:
                self.lots.popleft()
            else:
                self.lots[0] = replace(head, remaining_quantity=remaining)
            still_to_remove = self.ctx.subtract(still_to_remove, take)

        if still_to_remove > global_config.QUANTITY_EPSILON:
            logger.warning(f"{source_id or 'Disposal'}: {still_to_remove} units could not be matched against open lots. "
                           f"Oversell clamped to the available quantity.")
        return consumed

    def total_quantity(self) -> Decimal:
        return sum((lot.remaining_quantity for lot in self.lots), ZERO)

    def total_cost_ars(self) -> Decimal:
        return sum((self.ctx.multiply(lot.remaining_quantity, lot.unit_cost_ars) for lot in self.lots), ZERO)

    def total_cost_usd(self) -> Decimal:
        return sum((self.ctx.multiply(lot.remaining_quantity, lot.unit_cost_usd) for lot in self.lots), ZERO)

    def open_lots(self) -> Tuple[Lot, ...]:
        return tuple(self.lots)

    def snapshot(self) -> PositionState:
        quantity = self.total_quantity()
        if quantity < global_config.QUANTITY_EPSILON:
            return PositionState()
        return PositionState(quantity=quantity, cost_basis_ars=self.total_cost_ars(),
                             cost_basis_usd=self.total_cost_usd(), lots=self.open_lots())


def build_fifo_lots(movements: Iterable[Movement], native_currency: str = "USD",
                    ctx: Optional[Context] = None) -> PositionState:
    """Builds the FIFO lot queue for the movements of one (instrument, account) pair."""
    ledger = FifoLedger(native_currency=native_currency, ctx=ctx)

    for mov in sort_movements_chronologically(movements):
        if mov.is_cash_only:
            continue

        if mov.type in POSITION_INCREASING_TYPES or mov.type in ZERO_COST_INCOME_TYPES:
            ledger.add_lot(mov)
        elif mov.type in POSITION_DECREASING_TYPES:
            requested = decimal_or_zero(mov.quantity)
            if requested > ZERO:
                ledger.consume(requested, source_id=f"Movement {mov.id}")
        else:
            logger.debug(f"Movement {mov.id} of type {mov.type.name} does not affect the lot queue.")

    return ledger.snapshot()
