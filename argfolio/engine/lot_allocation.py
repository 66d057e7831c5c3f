# argfolio/engine/lot_allocation.py
"""
Sale simulator over open FIFO lots.

Given the open lots of a position, a quantity to sell and a sale price, previews
how the sale would be costed under each method:
  PPP      - weighted average cost of all lots, no per-lot entries
  FIFO     - oldest lots first
  LIFO     - newest lots first
  CHEAPEST - lowest unit cost first, oldest first on ties
  MANUAL   - caller-chosen quantities per lot

Lots are never modified; the result is a preview only.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, Context
from typing import Dict, List, Optional, Sequence

from argfolio.domain.enums import CostingMethod
from argfolio.domain.results import AllocationEntry, Lot, ManualAllocation, SaleAllocation
from argfolio.utils.type_utils import get_calculation_context, parse_movement_datetime, safe_divide

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

# Display labels, as shown in the sell preview.
COSTING_METHOD_LABELS: Dict[CostingMethod, Dict[str, str]] = {
    CostingMethod.PPP: {"label": "PPP", "short": "PPP",
                        "description": "Precio Promedio Ponderado: costo = qty × promedio"},
    CostingMethod.FIFO: {"label": "PEPS (FIFO)", "short": "PEPS",
                         "description": "Primeras Entradas, Primeras Salidas"},
    CostingMethod.LIFO: {"label": "UEPS (LIFO)", "short": "UEPS",
                         "description": "Últimas Entradas, Primeras Salidas"},
    CostingMethod.CHEAPEST: {"label": "Baratos primero", "short": "Baratos",
                             "description": "Consume lotes con menor precio de compra primero"},
    CostingMethod.MANUAL: {"label": "Manual", "short": "Manual",
                           "description": "Seleccioná qué lotes vender y cuánto"},
}


def _acquired_key(lot: Lot) -> datetime:
    return parse_movement_datetime(lot.acquired_at) or _EARLIEST


def sort_lots_for_method(lots: Sequence[Lot], method: CostingMethod) -> List[Lot]:
    """Consumption order for the ordered methods. Sorting is stable, so equal keys keep input order."""
    if method == CostingMethod.LIFO:
        return sorted(lots, key=_acquired_key, reverse=True)
    if method == CostingMethod.CHEAPEST:
        return sorted(lots, key=lambda lot: (lot.unit_cost_native, _acquired_key(lot)))
    return sorted(lots, key=_acquired_key)


def _summarize(allocations: List[AllocationEntry], price: Decimal, ctx: Context) -> SaleAllocation:
    total_cost = sum((a.cost for a in allocations), ZERO)
    total_qty_sold = sum((a.quantity for a in allocations), ZERO)
    proceeds = ctx.multiply(total_qty_sold, price)
    pnl = ctx.subtract(proceeds, total_cost)
    return SaleAllocation(
        allocations=tuple(allocations),
        total_qty_sold=total_qty_sold,
        total_cost=total_cost,
        total_proceeds=proceeds,
        realized_pnl=pnl,
        realized_pnl_pct=safe_divide(pnl, total_cost, ctx) if total_cost > ZERO else ZERO,
    )


def _allocate_ppp(lots: Sequence[Lot], quantity: Decimal, price: Decimal, ctx: Context) -> SaleAllocation:
    total_qty = sum((lot.remaining_quantity for lot in lots), ZERO)
    total_cost = sum((lot.total_cost_native for lot in lots), ZERO)
    avg_cost = safe_divide(total_cost, total_qty, ctx)

    cost_assigned = ctx.multiply(quantity, avg_cost)
    proceeds = ctx.multiply(quantity, price)
    pnl = ctx.subtract(proceeds, cost_assigned)
    return SaleAllocation(
        allocations=(),
        total_qty_sold=quantity,
        total_cost=cost_assigned,
        total_proceeds=proceeds,
        realized_pnl=pnl,
        realized_pnl_pct=safe_divide(pnl, cost_assigned, ctx) if cost_assigned > ZERO else ZERO,
    )


def _allocate_ordered(sorted_lots: Sequence[Lot], quantity: Decimal, price: Decimal, ctx: Context) -> SaleAllocation:
    allocations: List[AllocationEntry] = []
    remaining = quantity
    for lot in sorted_lots:
        if remaining <= ZERO:
            break
        take = min(lot.remaining_quantity, remaining)
        allocations.append(AllocationEntry(lot_id=lot.lot_id, quantity=take,
                                           cost=ctx.multiply(take, lot.unit_cost_native)))
        remaining = ctx.subtract(remaining, take)
    return _summarize(allocations, price, ctx)


def _allocate_manual(lots: Sequence[Lot], manual: Sequence[ManualAllocation], price: Decimal,
                     ctx: Context) -> SaleAllocation:
    lots_by_id = {lot.lot_id: lot for lot in lots}
    allocations: List[AllocationEntry] = []
    for requested in manual:
        lot = lots_by_id.get(requested.lot_id)
        if lot is None:
            logger.debug(f"Manual allocation references unknown lot '{requested.lot_id}'. Ignored.")
            continue
        take = min(max(requested.quantity, ZERO), lot.remaining_quantity)
        if take <= ZERO:
            continue
        allocations.append(AllocationEntry(lot_id=lot.lot_id, quantity=take,
                                           cost=ctx.multiply(take, lot.unit_cost_native)))
    return _summarize(allocations, price, ctx)


def allocate_sale(lots: Sequence[Lot],
                  quantity: Decimal,
                  price: Decimal,
                  method: CostingMethod,
                  manual: Optional[Sequence[ManualAllocation]] = None) -> SaleAllocation:
    """
    Previews the sale of `quantity` units at `price` under `method`.

    For MANUAL, the sold quantity is the sum of the clamped manual allocations;
    MANUAL without allocations is costed like FIFO on the requested quantity.
    For every other method the request is clamped to [0, total held].
    """
    if not isinstance(method, CostingMethod):
        raise TypeError(f"method must be a CostingMethod enum member, got {type(method)}")
    ctx = get_calculation_context()

    if not lots:
        return SaleAllocation.empty()

    if method == CostingMethod.MANUAL and manual:
        return _allocate_manual(lots, manual, price, ctx)

    total_held = sum((lot.remaining_quantity for lot in lots), ZERO)
    safe_quantity = min(max(quantity, ZERO), total_held)
    if safe_quantity <= ZERO:
        return SaleAllocation.empty()

    if method == CostingMethod.PPP:
        return _allocate_ppp(lots, safe_quantity, price, ctx)

    order_method = CostingMethod.FIFO if method == CostingMethod.MANUAL else method
    return _allocate_ordered(sort_lots_for_method(lots, order_method), safe_quantity, price, ctx)
