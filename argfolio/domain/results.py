# argfolio/domain/results.py
from dataclasses import dataclass, field, KW_ONLY
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .enums import AssetCategory, CostBasisMethod, FxType, ValuationRule
from .instruments import Instrument, Account


ZERO = Decimal('0')


@dataclass(frozen=True)
class Lot:
    """A FIFO acquisition lot. Unit costs are frozen at acquisition time."""
    lot_id: str # Id of the acquiring movement
    acquired_at: str # ISO-8601 timestamp of the acquisition
    remaining_quantity: Decimal
    original_quantity: Decimal
    unit_cost_native: Decimal
    unit_cost_ars: Decimal
    unit_cost_usd: Decimal

    _: KW_ONLY
    fx_at_trade: Decimal = Decimal('1')

    def __post_init__(self):
        if not isinstance(self.remaining_quantity, Decimal) or not self.remaining_quantity.is_finite() or self.remaining_quantity < ZERO:
            raise ValueError(f"Lot {self.lot_id}: remaining_quantity must be a non-negative finite Decimal, got {self.remaining_quantity}")
        if self.remaining_quantity > self.original_quantity:
            raise ValueError(f"Lot {self.lot_id}: remaining_quantity {self.remaining_quantity} exceeds original_quantity {self.original_quantity}")
        for name in ('unit_cost_native', 'unit_cost_ars', 'unit_cost_usd'):
            value = getattr(self, name)
            if not isinstance(value, Decimal) or not value.is_finite() or value < ZERO:
                raise ValueError(f"Lot {self.lot_id}: {name} must be a non-negative finite Decimal, got {value}")

    @property
    def total_cost_native(self) -> Decimal:
        return self.remaining_quantity * self.unit_cost_native

    @property
    def total_cost_ars(self) -> Decimal:
        return self.remaining_quantity * self.unit_cost_ars

    @property
    def total_cost_usd(self) -> Decimal:
        return self.remaining_quantity * self.unit_cost_usd


@dataclass(frozen=True)
class PositionState:
    """Quantity and parallel ARS/USD cost pools produced by a cost basis strategy."""
    quantity: Decimal = ZERO
    cost_basis_ars: Decimal = ZERO
    cost_basis_usd: Decimal = ZERO
    lots: Tuple[Lot, ...] = ()

    @property
    def avg_cost_ars(self) -> Decimal:
        return self.cost_basis_ars / self.quantity if self.quantity > ZERO else ZERO

    @property
    def avg_cost_usd(self) -> Decimal:
        return self.cost_basis_usd / self.quantity if self.quantity > ZERO else ZERO


@dataclass(frozen=True)
class Holding:
    instrument_id: str
    account_id: str
    instrument: Instrument
    account: Account

    _: KW_ONLY
    method: CostBasisMethod
    quantity: Decimal
    cost_basis_native: Decimal
    cost_basis_ars: Decimal
    cost_basis_usd: Decimal
    avg_cost_native: Decimal
    avg_cost_ars: Decimal
    avg_cost_usd: Decimal
    lots: Tuple[Lot, ...] = () # Populated for FIFO holdings only

    def __post_init__(self):
        if not isinstance(self.method, CostBasisMethod):
            raise TypeError(f"Holding.method must be a CostBasisMethod, got {type(self.method)}")
        if self.quantity < ZERO:
            raise ValueError(f"Holding {self.instrument_id}@{self.account_id}: quantity must be non-negative, got {self.quantity}")


@dataclass
class CashLedgerResult:
    # account_id -> currency -> amount
    balances: Dict[str, Dict[str, Decimal]] = field(default_factory=dict) # Final, opening applied
    running_balances: Dict[str, Dict[str, Decimal]] = field(default_factory=dict) # Before opening inference
    opening_balances: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)

    def balance_for(self, account_id: str, currency: str) -> Decimal:
        return self.balances.get(account_id, {}).get(currency, ZERO)

    def opening_for(self, account_id: str, currency: str) -> Decimal:
        return self.opening_balances.get(account_id, {}).get(currency, ZERO)


@dataclass(frozen=True)
class ValuationResult:
    value_ars: Decimal
    value_usd: Decimal
    fx_used: FxType
    exchange_rate: Decimal
    rule_applied: ValuationRule

    def __post_init__(self):
        if not isinstance(self.fx_used, FxType):
            raise TypeError(f"ValuationResult.fx_used must be an FxType, got {type(self.fx_used)}")
        if not isinstance(self.rule_applied, ValuationRule):
            raise TypeError(f"ValuationResult.rule_applied must be a ValuationRule, got {type(self.rule_applied)}")


@dataclass(frozen=True)
class AllocationEntry:
    lot_id: str
    quantity: Decimal
    cost: Decimal


@dataclass(frozen=True)
class ManualAllocation:
    lot_id: str
    quantity: Decimal


@dataclass(frozen=True)
class SaleAllocation:
    allocations: Tuple[AllocationEntry, ...]
    total_qty_sold: Decimal
    total_cost: Decimal
    total_proceeds: Decimal
    realized_pnl: Decimal
    realized_pnl_pct: Decimal # Fraction of cost (0.25 == 25%); 0 when cost is 0

    @classmethod
    def empty(cls) -> "SaleAllocation":
        return cls(allocations=(), total_qty_sold=ZERO, total_cost=ZERO,
                   total_proceeds=ZERO, realized_pnl=ZERO, realized_pnl_pct=ZERO)


@dataclass
class PnLBucket:
    ars: Decimal = ZERO
    usd: Decimal = ZERO


@dataclass
class PooledPosition:
    """Weighted-average state kept by the realized PnL calculator."""
    quantity: Decimal = ZERO
    cost_basis: Decimal = ZERO

    @property
    def avg_cost(self) -> Decimal:
        return self.cost_basis / self.quantity if self.quantity > ZERO else ZERO


@dataclass(frozen=True)
class RealizedSale:
    movement_id: str
    instrument_id: str
    account_id: str
    datetime_iso: str
    currency: str # 'ARS' or 'USD' bucket
    quantity_sold: Decimal
    proceeds: Decimal
    cost: Decimal
    pnl: Decimal


@dataclass
class RealizedPnLResult:
    realized_ars: Decimal = ZERO
    realized_usd: Decimal = ZERO
    by_instrument: Dict[str, PnLBucket] = field(default_factory=dict)
    by_account: Dict[str, PnLBucket] = field(default_factory=dict)
    sales: List[RealizedSale] = field(default_factory=list)
    # (instrument_id, account_id) -> pool state after the last movement
    positions: Dict[Tuple[str, str], PooledPosition] = field(default_factory=dict)


@dataclass
class UnrealizedPnLResult:
    unrealized_ars: Decimal = ZERO
    unrealized_usd: Decimal = ZERO
    by_instrument: Dict[str, PnLBucket] = field(default_factory=dict)


@dataclass
class HoldingAggregated:
    """Per-instrument aggregate across accounts, revalued by the totals aggregator."""
    instrument_id: str
    instrument: Instrument

    _: KW_ONLY
    total_quantity: Decimal = ZERO
    total_cost_basis: Decimal = ZERO # Native currency
    total_cost_basis_ars: Decimal = ZERO
    total_cost_basis_usd: Decimal = ZERO
    avg_cost: Decimal = ZERO
    avg_cost_ars: Decimal = ZERO
    avg_cost_usd: Decimal = ZERO
    current_price: Optional[Decimal] = None
    by_account: List[Holding] = field(default_factory=list)

    # Filled in by valuation
    valuation: Optional[ValuationResult] = None
    current_value: Optional[Decimal] = None # Native currency, only when a price is known
    unrealized_pnl: Optional[Decimal] = None # Native currency
    unrealized_pnl_pct: Optional[Decimal] = None # Percent (12.5 == 12.5%)
    unrealized_pnl_ars: Decimal = ZERO
    unrealized_pnl_usd: Decimal = ZERO

    @property
    def category(self) -> AssetCategory:
        return self.instrument.category

    @property
    def value_ars(self) -> Decimal:
        return self.valuation.value_ars if self.valuation else ZERO

    @property
    def value_usd(self) -> Decimal:
        return self.valuation.value_usd if self.valuation else ZERO


@dataclass
class CategorySummary:
    category: AssetCategory
    label: str
    total_ars: Decimal = ZERO
    total_usd: Decimal = ZERO
    items: List[HoldingAggregated] = field(default_factory=list)


@dataclass(frozen=True)
class CurrencyExposure:
    ars_real: Decimal
    usd_real: Decimal
    fx_mep_buy: Decimal
    ars_eq: Decimal
    usd_eq_ars: Decimal
    total_eq: Decimal
    pct_ars: Decimal # Fractions of total_eq
    pct_usd: Decimal


@dataclass
class PortfolioTotals:
    total_ars: Decimal = ZERO
    total_usd: Decimal = ZERO
    liquidity_ars: Decimal = ZERO
    liquidity_usd: Decimal = ZERO
    realized_pnl_ars: Decimal = ZERO
    realized_pnl_usd: Decimal = ZERO
    realized_pnl_by_account: Dict[str, PnLBucket] = field(default_factory=dict)
    unrealized_pnl_ars: Decimal = ZERO
    unrealized_pnl_usd: Decimal = ZERO
    exposure: Optional[CurrencyExposure] = None
    categories: List[CategorySummary] = field(default_factory=list)
    top_positions: List[HoldingAggregated] = field(default_factory=list)
