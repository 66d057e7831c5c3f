# argfolio/parsers/raw_models.py
from typing import Optional, Any
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from argfolio.domain.enums import AssetCategory, MovementType, FxType
from argfolio.utils.type_utils import safe_decimal


def _optional_decimal(v: Any) -> Optional[Decimal]:
    # Blank, unparseable and non-finite values are treated as absent
    return safe_decimal(v, default=None)


def _optional_str(v: Any) -> Optional[str]:
    if v is None or str(v).strip() == "":
        return None
    return str(v).strip()


def _required_str(v: Any) -> str:
    v = _optional_str(v)
    if v is None:
        raise ValueError("must not be blank")
    return v


class RawBaseRecord(BaseModel):
    # Field names follow the camelCase keys of the movement repository payloads
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


class RawFee(RawBaseRecord):
    amount: Optional[Decimal] = None
    currency: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Optional[Decimal]:
        return _optional_decimal(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Optional[str]:
        v = _optional_str(v)
        return v.upper() if v else None


class RawFxInfo(RawBaseRecord):
    rate: Optional[Decimal] = None
    fx_type: Optional[str] = Field(None, alias="type")
    side: Optional[str] = None

    @field_validator('rate', mode='before')
    @classmethod
    def parse_rate(cls, v: Any) -> Optional[Decimal]:
        return _optional_decimal(v)

    @field_validator('fx_type', mode='before')
    @classmethod
    def validate_fx_type(cls, v: Any) -> Optional[str]:
        v = _optional_str(v)
        if v is None:
            return None
        v = v.upper()
        # Rate types the engine does not value with (e.g. 'BLUE') are dropped, the rate itself is kept
        return v if v in FxType.__members__ else None


class RawFixedDepositMeta(RawBaseRecord):
    settlement_mode: Optional[str] = Field(None, alias="settlementMode")


class RawMovementMeta(RawBaseRecord):
    fixed_deposit: Optional[RawFixedDepositMeta] = Field(None, alias="fixedDeposit")
    transfer_group_id: Optional[str] = Field(None, alias="transferGroupId")


class RawMovementRecord(RawBaseRecord):
    id: str
    datetime_iso: str = Field(alias="datetimeISO")
    type: str
    account_id: str = Field(alias="accountId")
    instrument_id: Optional[str] = Field(None, alias="instrumentId")
    asset_class: Optional[str] = Field(None, alias="assetClass")

    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = Field(None, alias="unitPrice")
    trade_currency: Optional[str] = Field(None, alias="tradeCurrency")
    total_amount: Optional[Decimal] = Field(None, alias="totalAmount")
    net_amount: Optional[Decimal] = Field(None, alias="netAmount")
    total_ars: Optional[Decimal] = Field(None, alias="totalARS")
    total_usd: Optional[Decimal] = Field(None, alias="totalUSD")

    fee: Optional[RawFee] = None
    # Older records carry the fee as two flat fields
    fee_amount: Optional[Decimal] = Field(None, alias="feeAmount")
    fee_currency: Optional[str] = Field(None, alias="feeCurrency")

    fx: Optional[RawFxInfo] = None
    fx_at_trade: Optional[Decimal] = Field(None, alias="fxAtTrade")
    meta: Optional[RawMovementMeta] = None
    notes: Optional[str] = None

    @field_validator('quantity', 'unit_price', 'total_amount', 'net_amount', 'total_ars',
                     'total_usd', 'fee_amount', 'fx_at_trade', mode='before')
    @classmethod
    def parse_decimal_fields(cls, v: Any) -> Optional[Decimal]:
        return _optional_decimal(v)

    @field_validator('instrument_id', 'asset_class', 'notes', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator('trade_currency', 'fee_currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Optional[str]:
        v = _optional_str(v)
        return v.upper() if v else None

    @field_validator('type', mode='before')
    @classmethod
    def validate_movement_type(cls, v: Any) -> str:
        v = (_optional_str(v) or "").upper()
        if v not in MovementType.__members__:
            raise ValueError(f"Unknown movement type '{v}'")
        return v

    @field_validator('id', 'account_id', 'datetime_iso', mode='before')
    @classmethod
    def require_non_blank(cls, v: Any) -> str:
        return _required_str(v)


class RawInstrumentRecord(RawBaseRecord):
    id: str
    symbol: str
    category: str
    native_currency: str = Field("ARS", alias="nativeCurrency")
    name: Optional[str] = None

    @field_validator('id', 'symbol', mode='before')
    @classmethod
    def require_non_blank(cls, v: Any) -> str:
        return _required_str(v)

    @field_validator('category', mode='before')
    @classmethod
    def validate_category(cls, v: Any) -> str:
        v = (_optional_str(v) or "").upper()
        if v not in AssetCategory.__members__:
            raise ValueError(f"Unknown asset category '{v}'")
        return v

    @field_validator('native_currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        v = _optional_str(v)
        return v.upper() if v else "ARS"


class RawAccountRecord(RawBaseRecord):
    id: str
    name: Optional[str] = None
    default_currency: str = Field("ARS", alias="defaultCurrency")

    @field_validator('id', mode='before')
    @classmethod
    def require_non_blank(cls, v: Any) -> str:
        return _required_str(v)

    @field_validator('default_currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        v = _optional_str(v)
        return v.upper() if v else "ARS"


class RawFxQuote(RawBaseRecord):
    buy: Optional[Decimal] = None
    sell: Optional[Decimal] = None

    @field_validator('buy', 'sell', mode='before')
    @classmethod
    def parse_decimal_fields(cls, v: Any) -> Optional[Decimal]:
        return _optional_decimal(v)


class RawFxRatesRecord(RawBaseRecord):
    oficial: Optional[RawFxQuote] = None
    mep: Optional[RawFxQuote] = None
    ccl: Optional[RawFxQuote] = None
    cripto: Optional[RawFxQuote] = None
    updated_at_iso: Optional[str] = Field(None, alias="updatedAtISO")
    source: Optional[str] = None

    @field_validator('oficial', 'mep', 'ccl', 'cripto', mode='before')
    @classmethod
    def expand_single_rate(cls, v: Any) -> Any:
        # A bare number stands for both sides of the quote
        if v is None or isinstance(v, (dict, RawFxQuote)):
            return v
        return {"buy": v, "sell": v}
