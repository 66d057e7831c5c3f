# argfolio/domain/enums.py
from enum import Enum, auto

class AssetCategory(Enum):
    CEDEAR = auto()
    CRYPTO = auto()
    STABLE = auto()
    FCI = auto() # Fondos Comunes de Inversión (mutual funds)
    PF = auto() # Plazo Fijo (fixed-term deposit)
    USD_CASH = auto()
    ARS_CASH = auto()
    WALLET = auto()
    DEBT = auto()

class MovementType(Enum):
    BUY = auto()
    SELL = auto()
    DEPOSIT = auto()
    WITHDRAW = auto()
    TRANSFER_IN = auto()
    TRANSFER_OUT = auto()
    DIVIDEND = auto()
    INTEREST = auto()
    FEE = auto()
    DEBT_ADD = auto()
    DEBT_PAY = auto()
    BUY_USD = auto() # ARS -> USD conversion
    SELL_USD = auto() # USD -> ARS conversion

class FxType(Enum):
    """ARS/USD exchange-rate types; each conversion context uses a different one."""
    OFICIAL = auto()
    MEP = auto()
    CCL = auto()
    CRIPTO = auto()

class CostBasisMethod(Enum):
    """Position-building strategies of the cost basis engine."""
    AVERAGE_COST = auto()
    FIFO = auto()

class CostingMethod(Enum):
    """Lot selection methods offered by the sale simulator."""
    PPP = auto() # Precio Promedio Ponderado (weighted average)
    FIFO = auto()
    LIFO = auto()
    CHEAPEST = auto()
    MANUAL = auto()

class ValuationRule(Enum):
    """Which category rule produced a ValuationResult."""
    CRYPTO_TO_ARS = auto()
    CEDEAR_IMPLICIT_USD = auto()
    CASH_USD_OFICIAL = auto()
    CASH_ARS_OFICIAL = auto()
    GENERIC_USD = auto()
    GENERIC_ARS = auto()
    DEFAULT_FALLBACK = auto()


# Movement classification shared by the cost basis engine and the realized PnL calculator.
POSITION_INCREASING_TYPES = frozenset({
    MovementType.BUY,
    MovementType.BUY_USD,
    MovementType.TRANSFER_IN,
    MovementType.DEPOSIT,
    MovementType.DEBT_ADD,
})

# Received units (dividends in kind, interest capitalisation) carry no cost.
ZERO_COST_INCOME_TYPES = frozenset({
    MovementType.DIVIDEND,
    MovementType.INTEREST,
})

POSITION_DECREASING_TYPES = frozenset({
    MovementType.SELL,
    MovementType.TRANSFER_OUT,
    MovementType.DEBT_PAY,
    MovementType.WITHDRAW,
    MovementType.SELL_USD,
})

# Only these disposals report realized PnL; the rest consume the pool silently.
PNL_REPORTING_TYPES = frozenset({
    MovementType.SELL,
    MovementType.SELL_USD,
})

CASH_CATEGORIES = frozenset({
    AssetCategory.ARS_CASH,
    AssetCategory.USD_CASH,
})
