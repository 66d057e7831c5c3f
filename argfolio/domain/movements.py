# argfolio/domain/movements.py
from dataclasses import dataclass, KW_ONLY
from decimal import Decimal
from typing import Optional

from .enums import MovementType, FxType


@dataclass(frozen=True)
class FeeInfo:
    amount: Optional[Decimal] = None
    currency: Optional[str] = None # Falls back to the movement's settlement currency when absent


@dataclass(frozen=True)
class FxInfo:
    rate: Optional[Decimal] = None # ARS per USD applied to the movement
    fx_type: Optional[FxType] = None
    side: Optional[str] = None # 'buy' / 'sell' / 'mid', informational only

    def __post_init__(self):
        if self.fx_type is not None and not isinstance(self.fx_type, FxType):
            raise TypeError(f"FxInfo.fx_type must be an FxType enum member, got {type(self.fx_type)}")


@dataclass(frozen=True)
class MovementMeta:
    settlement_mode: Optional[str] = None # Fixed-deposit settlement override ('manual' / 'auto')
    transfer_group_id: Optional[str] = None # Links the two legs of an inter-account transfer


@dataclass(frozen=True)
class Movement:
    """
    Immutable ledger entry. The engine never mutates movements; every derived
    result is recomputed from the full list on each invocation.
    """
    # Positional, non-default arguments
    id: str
    datetime_iso: str # ISO-8601 timestamp, the processing order key
    account_id: str

    # Keyword-only arguments, can have defaults
    _: KW_ONLY
    type: MovementType
    instrument_id: Optional[str] = None # None => pure cash movement

    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    trade_currency: Optional[str] = None

    # Gross / net amounts in the settlement currency
    total_amount: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    # Amount restated in each reporting currency, when known
    total_ars: Optional[Decimal] = None
    total_usd: Optional[Decimal] = None

    fee: Optional[FeeInfo] = None
    fx: Optional[FxInfo] = None
    fx_at_trade: Optional[Decimal] = None # Historical rate recorded at trade time

    asset_class: Optional[str] = None # e.g. 'pf', 'crypto', 'cedear'
    meta: Optional[MovementMeta] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.type, MovementType):
            raise TypeError(f"Movement.type must be a MovementType enum member, got {type(self.type)}")
        if not self.id:
            raise ValueError("Movement.id cannot be empty.")
        if not self.account_id:
            raise ValueError(f"Movement {self.id}: account_id cannot be empty.")

    @property
    def is_cash_only(self) -> bool:
        return not self.instrument_id

    @property
    def settlement_mode(self) -> Optional[str]:
        return self.meta.settlement_mode if self.meta else None
