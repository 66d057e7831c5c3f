# argfolio/domain/fx_rates.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from .enums import FxType

ZERO = Decimal('0')


@dataclass(frozen=True)
class FxQuote:
    """Bid/ask quote for one ARS/USD rate type. Values are ARS per USD."""
    buy: Optional[Decimal] = None # bid
    sell: Optional[Decimal] = None # ask

    @property
    def bid(self) -> Decimal:
        return _positive_or_zero(self.buy) or _positive_or_zero(self.sell)

    @property
    def ask(self) -> Decimal:
        return _positive_or_zero(self.sell) or _positive_or_zero(self.buy)

    @property
    def mid(self) -> Decimal:
        """Midpoint of bid and ask; a single available side is used as-is."""
        bid, ask = _positive_or_zero(self.buy), _positive_or_zero(self.sell)
        if bid == ZERO:
            return ask
        if ask == ZERO:
            return bid
        return (bid + ask) / Decimal(2)

    @property
    def rate(self) -> Decimal:
        """Rate used for valuation: sell side, falling back to buy, else 0."""
        return self.ask


@dataclass(frozen=True)
class FxRates:
    """
    Snapshot of the ARS/USD rate types at valuation time.
    Missing quotes resolve to a rate of 0, which valuation treats as 'unavailable'.
    """
    quotes: Dict[FxType, FxQuote] = field(default_factory=dict)
    updated_at_iso: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        for key in self.quotes:
            if not isinstance(key, FxType):
                raise TypeError(f"FxRates.quotes keys must be FxType enum members, got {type(key)}")

    @classmethod
    def from_values(cls, **rates: Decimal) -> "FxRates":
        """
        Convenience constructor from single values per type, e.g.
        FxRates.from_values(MEP=Decimal('1200'), OFICIAL=Decimal('1000')).
        The value is used as both buy and sell.
        """
        quotes = {FxType[name.upper()]: FxQuote(buy=value, sell=value) for name, value in rates.items()}
        return cls(quotes=quotes)

    def quote_for(self, fx_type: FxType) -> FxQuote:
        return self.quotes.get(fx_type) or FxQuote()

    def rate_for(self, fx_type: FxType) -> Decimal:
        return self.quote_for(fx_type).rate


def _positive_or_zero(value: Optional[Decimal]) -> Decimal:
    if value is None or not value.is_finite() or value <= ZERO:
        return ZERO
    return value
