from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

ApiHealth = Literal["ok", "limited", "error"]

FETCH_ERROR_MESSAGE = "Error fetching price"


class Instrument(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str


class Quote(BaseModel):
    price: float | None = None
    change: float | None = None

    @classmethod
    def unavailable(cls) -> "Quote":
        return cls(price=None, change=None)


class InstrumentView(BaseModel):
    symbol: str
    name: str
    price: float | None = None
    change: float | None = None
    loading: bool = False
    error: str | None = None

    @classmethod
    def placeholder(cls, instrument: Instrument) -> "InstrumentView":
        return cls(symbol=instrument.symbol, name=instrument.name, loading=True)

    @classmethod
    def resolved(cls, instrument: Instrument, quote: Quote) -> "InstrumentView":
        if quote.price is None:
            # a view in error never carries a change without a price
            return cls(
                symbol=instrument.symbol,
                name=instrument.name,
                loading=False,
                error=FETCH_ERROR_MESSAGE,
            )
        return cls(
            symbol=instrument.symbol,
            name=instrument.name,
            price=quote.price,
            change=quote.change,
            loading=False,
        )
