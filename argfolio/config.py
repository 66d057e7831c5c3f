# argfolio/config.py

from dataclasses import dataclass
from decimal import Decimal

# Numerical Precision
INTERNAL_CALCULATION_PRECISION = 28
DECIMAL_ROUNDING_MODE = "ROUND_HALF_UP" # Python's decimal module uses strings like 'ROUND_HALF_UP', 'ROUND_HALF_EVEN'

# Quantities (and cash deltas) at or below this magnitude are treated as rounding drift
QUANTITY_EPSILON: Decimal = Decimal("1e-8")

# Cash balances smaller than this are not injected into portfolio totals
CASH_DUST_THRESHOLD: Decimal = Decimal("0.01")

# Number of positions listed in PortfolioTotals.top_positions
TOP_POSITIONS_LIMIT = 5

# Settlement currency used when a movement declares none
DEFAULT_SETTLEMENT_CURRENCY = "ARS"

# Synthetic instrument ids used when cash balances are folded into totals
CANONICAL_CASH_ARS_ID = "canonical-cash-ars"
CANONICAL_CASH_USD_ID = "canonical-cash-usd"

# Display labels for category summaries
CATEGORY_LABELS: dict[str, str] = {
    "CEDEAR": "Cedears",
    "CRYPTO": "Criptomonedas",
    "STABLE": "Stablecoins",
    "USD_CASH": "Dólares",
    "ARS_CASH": "Pesos",
    "FCI": "Fondos Comunes",
    "PF": "Plazos Fijos",
    "WALLET": "Wallets",
    "DEBT": "Deudas",
}


@dataclass(frozen=True)
class PortfolioPreferences:
    """
    Explicit user preferences for the totals aggregator.
    Passed in by the caller; the engine never reads stored preferences itself.
    """
    track_cash_balances: bool = True
    top_positions_limit: int = TOP_POSITIONS_LIMIT
    cash_dust_threshold: Decimal = CASH_DUST_THRESHOLD

    def __post_init__(self):
        if not isinstance(self.cash_dust_threshold, Decimal):
            raise TypeError(f"PortfolioPreferences.cash_dust_threshold must be a Decimal, got {type(self.cash_dust_threshold)}")
        if self.top_positions_limit < 0:
            raise ValueError(f"PortfolioPreferences.top_positions_limit must be non-negative, got {self.top_positions_limit}")
