from __future__ import annotations

import threading
from typing import Protocol, Sequence

from merval_board.schemas.quote import Instrument, Quote


class QuoteClient(Protocol):
    source: str

    def get_quote(self, instrument: Instrument) -> Quote: ...


class QuoteFallbackResolver:
    """Tries quote clients in order and stops at the first one that yields a price."""

    def __init__(self, clients: Sequence[QuoteClient]) -> None:
        if not clients:
            raise ValueError("at least one quote client is required")
        self.clients = list(clients)
        self._lock = threading.Lock()
        self._calls: dict[str, int] = {c.source: 0 for c in self.clients}
        self._hits: dict[str, int] = {c.source: 0 for c in self.clients}
        self.resolved_count = 0
        self.unresolved_count = 0

    def resolve(self, instrument: Instrument) -> Quote:
        quote = Quote.unavailable()
        for client in self.clients:
            quote = client.get_quote(instrument)
            with self._lock:
                self._calls[client.source] = self._calls.get(client.source, 0) + 1
                if quote.price is not None:
                    self._hits[client.source] = self._hits.get(client.source, 0) + 1
            if quote.price is not None:
                break

        with self._lock:
            if quote.price is None:
                self.unresolved_count += 1
            else:
                self.resolved_count += 1
        return quote

    def metrics(self) -> dict:
        with self._lock:
            return {
                "source_calls": dict(self._calls),
                "source_hits": dict(self._hits),
                "resolved_count": self.resolved_count,
                "unresolved_count": self.unresolved_count,
            }
