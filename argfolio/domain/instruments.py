# argfolio/domain/instruments.py
from dataclasses import dataclass, KW_ONLY
from typing import Optional

from .enums import AssetCategory


@dataclass(frozen=True)
class Instrument:
    id: str
    symbol: str

    _: KW_ONLY
    category: AssetCategory
    native_currency: str = "ARS" # Currency the instrument is quoted in
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.category, AssetCategory):
            raise TypeError(f"Instrument.category must be an AssetCategory, got {type(self.category)}")
        if not self.id:
            raise ValueError("Instrument.id cannot be empty.")

    @property
    def is_ars_native(self) -> bool:
        return self.native_currency == "ARS"


@dataclass(frozen=True)
class Account:
    id: str

    _: KW_ONLY
    default_currency: str = "ARS"
    name: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Account.id cannot be empty.")
