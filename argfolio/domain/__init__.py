# argfolio/domain/__init__.py
# This file can be empty or used to make imports easier.

# Example (optional):
# from .movements import Movement, FeeInfo, FxInfo, MovementMeta
# from .instruments import Instrument, Account
# from .fx_rates import FxQuote, FxRates
# from .enums import AssetCategory, MovementType, FxType, CostBasisMethod, CostingMethod, ValuationRule
