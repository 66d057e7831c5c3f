# tests/conftest.py
import pytest
from decimal import Decimal, getcontext

from argfolio import config as app_config
from argfolio.domain.enums import AssetCategory, FxType
from argfolio.domain.fx_rates import FxQuote, FxRates
from argfolio.domain.instruments import Account, Instrument


@pytest.fixture(scope="session", autouse=True)
def set_decimal_precision_session_wide():
    """
    Set global decimal precision and rounding for all tests in the session,
    mirroring the calculation context used by the engine.
    """
    getcontext().prec = app_config.INTERNAL_CALCULATION_PRECISION
    getcontext().rounding = app_config.DECIMAL_ROUNDING_MODE


@pytest.fixture
def fx_rates() -> FxRates:
    """Snapshot with distinct values per rate type so the rule in use is observable."""
    return FxRates(quotes={
        FxType.OFICIAL: FxQuote(buy=Decimal("880"), sell=Decimal("900")),
        FxType.MEP: FxQuote(buy=Decimal("990"), sell=Decimal("1000")),
        FxType.CCL: FxQuote(buy=Decimal("1010"), sell=Decimal("1020")),
        FxType.CRIPTO: FxQuote(buy=Decimal("1080"), sell=Decimal("1100")),
    })


@pytest.fixture
def instruments() -> dict:
    return {
        "aapl": Instrument("aapl", "AAPL", category=AssetCategory.CEDEAR, native_currency="ARS"),
        "ko": Instrument("ko", "KO", category=AssetCategory.CEDEAR, native_currency="ARS"),
        "btc": Instrument("btc", "BTC", category=AssetCategory.CRYPTO, native_currency="USD"),
        "usdt": Instrument("usdt", "USDT", category=AssetCategory.STABLE, native_currency="USD"),
        "fci-ars": Instrument("fci-ars", "FCI-AHORRO", category=AssetCategory.FCI, native_currency="ARS"),
        "fci-usd": Instrument("fci-usd", "FCI-DOLAR", category=AssetCategory.FCI, native_currency="USD"),
        "cash-ars": Instrument("cash-ars", "ARS", category=AssetCategory.ARS_CASH, native_currency="ARS"),
    }


@pytest.fixture
def accounts() -> dict:
    return {
        "broker": Account("broker", name="Broker"),
        "exchange": Account("exchange", default_currency="USD", name="Exchange"),
        "bank": Account("bank", name="Bank"),
    }
