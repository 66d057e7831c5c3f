# argfolio/engine/cost_basis.py
import logging
from collections import defaultdict
from decimal import Context
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import argfolio.config as global_config
from argfolio.domain.enums import CostBasisMethod
from argfolio.domain.instruments import Instrument, Account
from argfolio.domain.movements import Movement
from argfolio.domain.results import Holding, PositionState
from argfolio.engine.average_cost import compute_average_cost
from argfolio.engine.fifo_manager import build_fifo_lots
from argfolio.utils.type_utils import get_calculation_context

logger = logging.getLogger(__name__)

PositionBuilder = Callable[[List[Movement], Instrument, Context], PositionState]


def _build_average_cost_position(movements: List[Movement], instrument: Instrument, ctx: Context) -> PositionState:
    return compute_average_cost(movements, ctx)


def _build_fifo_position(movements: List[Movement], instrument: Instrument, ctx: Context) -> PositionState:
    return build_fifo_lots(movements, native_currency=instrument.native_currency, ctx=ctx)


# Strategies share one contract: movements of a single (instrument, account) pair in, position out.
position_builder_map: Dict[CostBasisMethod, PositionBuilder] = {
    CostBasisMethod.AVERAGE_COST: _build_average_cost_position,
    CostBasisMethod.FIFO: _build_fifo_position,
}


def group_movements_by_position(movements: Iterable[Movement]) -> Dict[Tuple[str, str], List[Movement]]:
    """Groups instrument movements by (instrument_id, account_id), keeping first-seen order."""
    groups: Dict[Tuple[str, str], List[Movement]] = defaultdict(list)
    for mov in movements:
        if mov.is_cash_only:
            continue
        groups[(mov.instrument_id, mov.account_id)].append(mov)
    return groups


def build_holding(movements: List[Movement], instrument: Instrument, account: Account,
                  method: CostBasisMethod = CostBasisMethod.AVERAGE_COST,
                  ctx: Optional[Context] = None) -> Holding:
    """
    Builds the Holding of one (instrument, account) pair. The caller guarantees
    every movement belongs to that pair; cost basis never crosses accounts.
    """
    if not isinstance(method, CostBasisMethod):
        raise TypeError(f"method must be a CostBasisMethod enum member, got {type(method)}")
    ctx = ctx or get_calculation_context()

    state = position_builder_map[method](movements, instrument, ctx)

    # The native side follows the instrument's quote currency.
    if instrument.is_ars_native:
        cost_basis_native, avg_cost_native = state.cost_basis_ars, state.avg_cost_ars
    else:
        cost_basis_native, avg_cost_native = state.cost_basis_usd, state.avg_cost_usd

    return Holding(
        instrument_id=instrument.id,
        account_id=account.id,
        instrument=instrument,
        account=account,
        method=method,
        quantity=state.quantity,
        cost_basis_native=cost_basis_native,
        cost_basis_ars=state.cost_basis_ars,
        cost_basis_usd=state.cost_basis_usd,
        avg_cost_native=avg_cost_native,
        avg_cost_ars=state.avg_cost_ars,
        avg_cost_usd=state.avg_cost_usd,
        lots=state.lots,
    )


def compute_holdings(movements: Iterable[Movement],
                     instruments: Mapping[str, Instrument],
                     accounts: Mapping[str, Account],
                     method: CostBasisMethod = CostBasisMethod.AVERAGE_COST) -> List[Holding]:
    """
    Computes every open Holding from the movement ledger.

    Groups whose instrument or account id is not in the registries are skipped,
    as are groups whose resulting quantity is within rounding drift of zero.
    """
    ctx = get_calculation_context()
    holdings: List[Holding] = []

    for (instrument_id, account_id), group in group_movements_by_position(movements).items():
        instrument = instruments.get(instrument_id)
        if instrument is None:
            logger.warning(f"Skipping {len(group)} movement(s) for unmapped instrument '{instrument_id}' in account '{account_id}'.")
            continue
        account = accounts.get(account_id)
        if account is None:
            logger.warning(f"Skipping {len(group)} movement(s) of instrument '{instrument_id}' for unmapped account '{account_id}'.")
            continue

        holding = build_holding(group, instrument, account, method, ctx)
        if holding.quantity <= global_config.QUANTITY_EPSILON:
            logger.debug(f"Position {instrument_id}@{account_id} is closed. Not reported.")
            continue
        holdings.append(holding)

    logger.info(f"Computed {len(holdings)} open holding(s) using {method.name}.")
    return holdings
