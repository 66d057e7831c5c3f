# argfolio/parsers/domain_object_factory.py
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from argfolio.domain.enums import AssetCategory, FxType, MovementType
from argfolio.domain.fx_rates import FxQuote, FxRates
from argfolio.domain.instruments import Account, Instrument
from argfolio.domain.movements import FeeInfo, FxInfo, Movement, MovementMeta
from argfolio.parsers.raw_models import (
    RawAccountRecord, RawFxQuote, RawFxRatesRecord, RawInstrumentRecord, RawMovementRecord
)

logger = logging.getLogger(__name__)


def _record_label(raw: Any) -> str:
    if isinstance(raw, Mapping) and raw.get("id"):
        return f"'{raw.get('id')}'"
    return "<no id>"


def movement_from_raw(raw_record: RawMovementRecord) -> Movement:
    fee: Optional[FeeInfo] = None
    if raw_record.fee is not None and (raw_record.fee.amount is not None or raw_record.fee.currency):
        fee = FeeInfo(amount=raw_record.fee.amount, currency=raw_record.fee.currency)
    elif raw_record.fee_amount is not None:
        fee = FeeInfo(amount=raw_record.fee_amount, currency=raw_record.fee_currency)

    fx: Optional[FxInfo] = None
    if raw_record.fx is not None:
        fx = FxInfo(rate=raw_record.fx.rate,
                    fx_type=FxType[raw_record.fx.fx_type] if raw_record.fx.fx_type else None,
                    side=raw_record.fx.side)

    meta: Optional[MovementMeta] = None
    if raw_record.meta is not None:
        meta = MovementMeta(
            settlement_mode=raw_record.meta.fixed_deposit.settlement_mode if raw_record.meta.fixed_deposit else None,
            transfer_group_id=raw_record.meta.transfer_group_id,
        )

    return Movement(
        raw_record.id,
        raw_record.datetime_iso,
        raw_record.account_id,
        type=MovementType[raw_record.type],
        instrument_id=raw_record.instrument_id,
        quantity=raw_record.quantity,
        unit_price=raw_record.unit_price,
        trade_currency=raw_record.trade_currency,
        total_amount=raw_record.total_amount,
        net_amount=raw_record.net_amount,
        total_ars=raw_record.total_ars,
        total_usd=raw_record.total_usd,
        fee=fee,
        fx=fx,
        fx_at_trade=raw_record.fx_at_trade,
        asset_class=raw_record.asset_class.lower() if raw_record.asset_class else None,
        meta=meta,
        notes=raw_record.notes,
    )


def build_movements(raw_movements: Iterable[Mapping[str, Any]]) -> List[Movement]:
    """
    Validates repository-shaped movement dicts into Movements.
    Records that fail validation are logged and skipped; the rest are returned in input order.
    """
    movements: List[Movement] = []
    skipped = 0
    for raw in raw_movements:
        try:
            movements.append(movement_from_raw(RawMovementRecord.model_validate(raw)))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping invalid movement record {_record_label(raw)}: {e.error_count()} validation error(s). {e}")
    if skipped:
        logger.warning(f"{skipped} movement record(s) skipped during parsing.")
    logger.info(f"Parsed {len(movements)} movement(s).")
    return movements


def build_instruments(raw_instruments: Iterable[Mapping[str, Any]]) -> Dict[str, Instrument]:
    instruments: Dict[str, Instrument] = {}
    for raw in raw_instruments:
        try:
            record = RawInstrumentRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping invalid instrument record {_record_label(raw)}: {e}")
            continue
        if record.id in instruments:
            logger.warning(f"Duplicate instrument id '{record.id}'. Keeping the first definition.")
            continue
        instruments[record.id] = Instrument(record.id, record.symbol,
                                            category=AssetCategory[record.category],
                                            native_currency=record.native_currency,
                                            name=record.name)
    return instruments


def build_accounts(raw_accounts: Iterable[Mapping[str, Any]]) -> Dict[str, Account]:
    accounts: Dict[str, Account] = {}
    for raw in raw_accounts:
        try:
            record = RawAccountRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping invalid account record {_record_label(raw)}: {e}")
            continue
        accounts[record.id] = Account(record.id, default_currency=record.default_currency, name=record.name)
    return accounts


def _quote_from_raw(raw_quote: Optional[RawFxQuote]) -> Optional[FxQuote]:
    if raw_quote is None:
        return None
    return FxQuote(buy=raw_quote.buy, sell=raw_quote.sell)


def build_fx_rates(raw_rates: Mapping[str, Any]) -> FxRates:
    """An invalid snapshot degrades to an empty one (every rate 0) rather than raising."""
    try:
        record = RawFxRatesRecord.model_validate(raw_rates)
    except ValidationError as e:
        logger.error(f"Invalid FX rates snapshot, valuing with no rates: {e}")
        return FxRates()

    quotes = {
        FxType.OFICIAL: _quote_from_raw(record.oficial),
        FxType.MEP: _quote_from_raw(record.mep),
        FxType.CCL: _quote_from_raw(record.ccl),
        FxType.CRIPTO: _quote_from_raw(record.cripto),
    }
    return FxRates(quotes={k: v for k, v in quotes.items() if v is not None},
                   updated_at_iso=record.updated_at_iso, source=record.source)
