from __future__ import annotations

import math
from typing import Any, Optional
from urllib.parse import quote as url_quote

import requests

from merval_board.config.settings import DEFAULT_FALLBACK_PROXY, DEFAULT_PRIMARY_PROXY
from merval_board.errors import QuotePayloadError
from merval_board.schemas.quote import Instrument, Quote

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?interval=1d"
QUOTE_SUMMARY_URL = "https://query2.finance.yahoo.com/v10/finance/quoteSummary/{symbol}?modules=price"
BATCH_QUOTE_URL = "https://query1.finance.yahoo.com/v7/finance/quote?symbols={symbol}"


def _to_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # json accepts NaN and Infinity tokens
    if not math.isfinite(number):
        return None
    return number


def _positive(value: Any) -> float | None:
    number = _to_float(value)
    if number is None or number <= 0:
        return None
    return number


def _raw(value: Any) -> Any:
    # quoteSummary wraps numbers as {"raw": 1.5, "fmt": "1.50"}
    if isinstance(value, dict):
        return value.get("raw")
    return value


def _change_from_previous_close(price: float, previous_close: float | None) -> float | None:
    if previous_close is None:
        return None
    return (price - previous_close) / previous_close * 100


def _first_result(container: Any, key: str) -> dict:
    section = container.get(key) if isinstance(container, dict) else None
    results = section.get("result") if isinstance(section, dict) else None
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        raise QuotePayloadError(f"missing {key}.result[0] in payload")
    return results[0]


def parse_chart_payload(payload: Any) -> Quote:
    """Extract price and change from a v8 chart response."""
    meta = _first_result(payload, "chart").get("meta")
    if not isinstance(meta, dict):
        raise QuotePayloadError("missing chart meta in payload")

    price = _positive(meta.get("regularMarketPrice"))
    if price is None:
        raise QuotePayloadError("missing regularMarketPrice in chart meta")

    previous_close = _positive(meta.get("previousClose"))
    if previous_close is None:
        previous_close = _positive(meta.get("chartPreviousClose"))

    return Quote(price=price, change=_change_from_previous_close(price, previous_close))


def parse_quote_summary_payload(payload: Any) -> Quote:
    """Extract price and change from a v10 quoteSummary(modules=price) response."""
    price_data = _first_result(payload, "quoteSummary").get("price")
    if not isinstance(price_data, dict):
        raise QuotePayloadError("missing price module in quoteSummary")

    price = _positive(_raw(price_data.get("regularMarketPrice")))
    if price is None:
        raise QuotePayloadError("missing regularMarketPrice in quoteSummary")

    change_fraction = _to_float(_raw(price_data.get("regularMarketChangePercent")))
    if change_fraction is not None:
        change = change_fraction * 100
    else:
        change = _change_from_previous_close(
            price, _positive(_raw(price_data.get("regularMarketPreviousClose")))
        )
    return Quote(price=price, change=change)


def parse_batch_quote_payload(payload: Any) -> Quote:
    """Extract price and change from a v7 quote?symbols= response."""
    row = _first_result(payload, "quoteResponse")

    price = _positive(row.get("regularMarketPrice"))
    if price is None:
        raise QuotePayloadError("missing regularMarketPrice in quoteResponse")

    change = _to_float(row.get("regularMarketChangePercent"))
    if change is None:
        change = _change_from_previous_close(price, _positive(row.get("regularMarketPreviousClose")))
    return Quote(price=price, change=change)


class YahooQuoteClient:
    """One upstream Yahoo Finance endpoint shape, reached through a relay prefix.

    ``get_quote`` issues exactly one GET and never raises: any transport,
    status or payload failure is logged and returned as ``Quote.unavailable()``.
    """

    source = "yahoo"
    _HEADERS = {
        "accept": "application/json",
        "user-agent": "Mozilla/5.0 (compatible; merval-board)",
    }

    def __init__(
        self,
        *,
        proxy_prefix: str = DEFAULT_PRIMARY_PROXY,
        timeout_sec: float = 10.0,
        session: Optional[Any] = None,
    ) -> None:
        self.proxy_prefix = proxy_prefix
        self.timeout_sec = timeout_sec
        self.session = session or requests

    def build_url(self, symbol: str) -> str:
        raise NotImplementedError

    def parse(self, payload: Any) -> Quote:
        raise NotImplementedError

    def get_quote(self, instrument: Instrument) -> Quote:
        url = self.build_url(instrument.symbol)
        try:
            response = self.session.get(url, headers=self._HEADERS, timeout=self.timeout_sec)
            response.raise_for_status()
            return self.parse(response.json())
        except Exception as exc:
            print(
                f"[QUOTE][adapter_error] source={self.source} symbol={instrument.symbol} "
                f"error={type(exc).__name__}: {exc}",
                flush=True,
            )
            return Quote.unavailable()


class YahooChartQuoteClient(YahooQuoteClient):
    source = "yahoo-chart"

    def build_url(self, symbol: str) -> str:
        return f"{self.proxy_prefix}{CHART_URL.format(symbol=symbol)}"

    def parse(self, payload: Any) -> Quote:
        return parse_chart_payload(payload)


class YahooQuoteSummaryClient(YahooQuoteClient):
    source = "yahoo-summary"

    def build_url(self, symbol: str) -> str:
        return f"{self.proxy_prefix}{QUOTE_SUMMARY_URL.format(symbol=symbol)}"

    def parse(self, payload: Any) -> Quote:
        return parse_quote_summary_payload(payload)


class YahooBatchQuoteClient(YahooQuoteClient):
    """v7 quote endpoint; the relay takes the target URL percent-encoded."""

    source = "yahoo-batch"

    def __init__(
        self,
        *,
        proxy_prefix: str = DEFAULT_FALLBACK_PROXY,
        timeout_sec: float = 10.0,
        session: Optional[Any] = None,
    ) -> None:
        super().__init__(proxy_prefix=proxy_prefix, timeout_sec=timeout_sec, session=session)

    def build_url(self, symbol: str) -> str:
        target = BATCH_QUOTE_URL.format(symbol=symbol)
        if not self.proxy_prefix:
            return target
        return f"{self.proxy_prefix}{url_quote(target, safe='')}"

    def parse(self, payload: Any) -> Quote:
        return parse_batch_quote_payload(payload)


def build_default_clients(
    *,
    primary_proxy: str = DEFAULT_PRIMARY_PROXY,
    fallback_proxy: str = DEFAULT_FALLBACK_PROXY,
    timeout_sec: float = 10.0,
    session: Optional[Any] = None,
) -> list[YahooQuoteClient]:
    """Adapters in fallback order: chart, quoteSummary, batch quote."""
    return [
        YahooChartQuoteClient(proxy_prefix=primary_proxy, timeout_sec=timeout_sec, session=session),
        YahooQuoteSummaryClient(proxy_prefix=primary_proxy, timeout_sec=timeout_sec, session=session),
        YahooBatchQuoteClient(proxy_prefix=fallback_proxy, timeout_sec=timeout_sec, session=session),
    ]
