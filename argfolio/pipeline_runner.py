# argfolio/pipeline_runner.py
import logging
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from argfolio.config import PortfolioPreferences
from argfolio.domain.enums import CostBasisMethod
from argfolio.domain.fx_rates import FxRates
from argfolio.domain.instruments import Account, Instrument
from argfolio.domain.movements import Movement
from argfolio.domain.results import CashLedgerResult, Holding, PortfolioTotals, RealizedPnLResult, UnrealizedPnLResult
from argfolio.engine.cash_ledger import compute_cash_ledger
from argfolio.engine.cost_basis import compute_holdings
from argfolio.engine.realized_pnl import compute_realized_pnl, compute_unrealized_pnl
from argfolio.engine.totals import compute_totals

logger = logging.getLogger(__name__)


class PortfolioOutput:
    """
    Encapsulates the results of one full engine run.
    """
    def __init__(self,
                 holdings: List[Holding],
                 cash_ledger: CashLedgerResult,
                 realized_pnl: RealizedPnLResult,
                 unrealized_pnl: UnrealizedPnLResult,
                 totals: PortfolioTotals):
        self.holdings = holdings
        self.cash_ledger = cash_ledger
        self.realized_pnl = realized_pnl
        self.unrealized_pnl = unrealized_pnl
        self.totals = totals


def run_portfolio_pipeline(
    movements: Iterable[Movement],
    instruments: Mapping[str, Instrument],
    accounts: Mapping[str, Account],
    fx_rates: FxRates,
    current_prices: Mapping[str, Decimal],
    preferences: Optional[PortfolioPreferences] = None,
    cost_basis_method: CostBasisMethod = CostBasisMethod.AVERAGE_COST,
) -> PortfolioOutput:
    """
    Runs holdings, cash ledger, realized PnL and totals over one immutable snapshot.
    Nothing is cached between runs; identical inputs give identical outputs.
    """
    preferences = preferences or PortfolioPreferences()
    movements = list(movements)
    logger.info(f"Running portfolio pipeline over {len(movements)} movement(s), "
                f"{len(instruments)} instrument(s), {len(accounts)} account(s).")

    holdings = compute_holdings(movements, instruments, accounts, cost_basis_method)

    logger.info("Computing cash ledger...")
    cash_ledger = compute_cash_ledger(movements)
    opening_count = sum(len(v) for v in cash_ledger.opening_balances.values())
    if opening_count:
        logger.info(f"Inferred {opening_count} opening cash balance(s) from incomplete history.")

    logger.info("Computing realized and unrealized PnL...")
    realized = compute_realized_pnl(movements)
    unrealized = compute_unrealized_pnl(holdings, current_prices, fx_rates)

    logger.info("Aggregating portfolio totals...")
    totals = compute_totals(
        holdings,
        current_prices,
        fx_rates,
        cash_balances=cash_ledger.balances,
        realized_pnl=realized,
        preferences=preferences,
    )

    logger.info("Portfolio pipeline completed.")
    return PortfolioOutput(holdings=holdings, cash_ledger=cash_ledger, realized_pnl=realized,
                           unrealized_pnl=unrealized, totals=totals)
