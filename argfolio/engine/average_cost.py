# argfolio/engine/average_cost.py
import logging
from decimal import Decimal, Context
from typing import Iterable, Optional

import argfolio.config as global_config
from argfolio.domain.enums import POSITION_INCREASING_TYPES, POSITION_DECREASING_TYPES, ZERO_COST_INCOME_TYPES
from argfolio.domain.movements import Movement
from argfolio.domain.results import PositionState
from argfolio.engine.trade_costs import resolve_acquisition_cost
from argfolio.utils.sorting_utils import sort_movements_chronologically
from argfolio.utils.type_utils import decimal_or_zero, get_calculation_context

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
ONE = Decimal('1')


class AverageCostPool:
    """
    Weighted average cost state for one (instrument, account) pair.

    Quantity is tracked together with two parallel cost pools, one in ARS and one
    in USD. A disposal removes the same pro-rata slice from both pools, whatever
    currency it settles in.
    """

    def __init__(self, ctx: Optional[Context] = None):
        self.ctx = ctx or get_calculation_context()
        self.quantity: Decimal = ZERO
        self.cost_basis_ars: Decimal = ZERO
        self.cost_basis_usd: Decimal = ZERO

    def add_units(self, quantity: Decimal, amount_ars: Decimal, amount_usd: Decimal):
        if quantity <= ZERO:
            return
        if amount_ars < ZERO or amount_usd < ZERO:
            logger.warning(f"Negative acquisition cost (ARS {amount_ars}, USD {amount_usd}) clamped to 0.")
            amount_ars, amount_usd = max(amount_ars, ZERO), max(amount_usd, ZERO)
        self.quantity = self.ctx.add(self.quantity, quantity)
        self.cost_basis_ars = self.ctx.add(self.cost_basis_ars, amount_ars)
        self.cost_basis_usd = self.ctx.add(self.cost_basis_usd, amount_usd)
        self._clear_drift()

    def remove_units(self, quantity: Decimal) -> Decimal:
        """
        Removes quantity from the pool and returns the fraction of cost removed.
        Oversells clamp the ratio to 1, so the pools never go negative.
        """
        if quantity <= ZERO or self.quantity <= ZERO:
            return ZERO
        ratio = min(self.ctx.divide(quantity, self.quantity), ONE)
        self.cost_basis_ars = self.ctx.subtract(self.cost_basis_ars, self.ctx.multiply(self.cost_basis_ars, ratio))
        self.cost_basis_usd = self.ctx.subtract(self.cost_basis_usd, self.ctx.multiply(self.cost_basis_usd, ratio))
        self.quantity = self.ctx.subtract(self.quantity, quantity)
        self._clear_drift()
        return ratio

    def _clear_drift(self):
        if self.quantity < global_config.QUANTITY_EPSILON:
            self.quantity = ZERO
            self.cost_basis_ars = ZERO
            self.cost_basis_usd = ZERO

    def snapshot(self) -> PositionState:
        return PositionState(quantity=self.quantity, cost_basis_ars=self.cost_basis_ars,
                             cost_basis_usd=self.cost_basis_usd)


def compute_average_cost(movements: Iterable[Movement], ctx: Optional[Context] = None) -> PositionState:
    """
    Builds the weighted average cost position from the movements of a single
    (instrument, account) pair. Movements are processed chronologically; pure
    cash movements (no instrument) are ignored.
    """
    pool = AverageCostPool(ctx)

    for mov in sort_movements_chronologically(movements):
        if mov.is_cash_only:
            continue

        if mov.type in POSITION_INCREASING_TYPES or mov.type in ZERO_COST_INCOME_TYPES:
            cost = resolve_acquisition_cost(mov, pool.ctx)
            pool.add_units(cost.quantity, cost.amount_ars, cost.amount_usd)
        elif mov.type in POSITION_DECREASING_TYPES:
            requested = decimal_or_zero(mov.quantity)
            if requested > pool.quantity > ZERO:
                logger.warning(f"Movement {mov.id}: disposes {requested} of {mov.instrument_id} "
                               f"but only {pool.quantity} is held in account {mov.account_id}. Clamping.")
            pool.remove_units(requested)
        else:
            logger.debug(f"Movement {mov.id} of type {mov.type.name} does not affect the position.")

    return pool.snapshot()
