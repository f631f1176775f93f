from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Iterable

from merval_board.schemas.board import BoardSnapshot
from merval_board.schemas.quote import ApiHealth, Instrument, InstrumentView
from merval_board.services.health import (
    count_stocks_with_data,
    data_percentage,
    health_status_message,
)

Subscriber = Callable[[BoardSnapshot], None]


class QuoteBoard:
    """Published board state: one view per instrument plus health and refresh flags.

    State only changes through ``publish``. Readers poll ``snapshot`` or
    register a callback with ``subscribe``. Once closed, publishes are dropped.
    """

    def __init__(self, instruments: Iterable[Instrument]) -> None:
        self.instruments: tuple[Instrument, ...] = tuple(instruments)
        if not self.instruments:
            raise ValueError("quote board needs at least one instrument")
        self._symbols = [i.symbol for i in self.instruments]
        self._lock = threading.Lock()
        self._views = [InstrumentView.placeholder(i) for i in self.instruments]
        self._api_health: ApiHealth = "ok"
        self._last_updated: datetime | None = None
        self._is_refreshing = False
        self._closed = False
        self._subscribers: list[Subscriber] = []
        self.publish_count = 0

    def _check_views(self, views: list[InstrumentView]) -> None:
        if [v.symbol for v in views] != self._symbols:
            raise ValueError("views must hold exactly one entry per instrument in board order")

    def _build_snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            stocks=[v.model_copy() for v in self._views],
            api_health=self._api_health,
            last_updated=self._last_updated,
            is_refreshing=self._is_refreshing,
            stocks_with_data=count_stocks_with_data(self._views),
            data_percentage=data_percentage(self._views),
            status_message=health_status_message(self._api_health),
        )

    def publish(
        self,
        views: list[InstrumentView],
        *,
        is_refreshing: bool,
        api_health: ApiHealth | None = None,
        last_updated: datetime | None = None,
    ) -> bool:
        """Replace the published state; health and timestamp are kept when not given."""
        self._check_views(views)
        with self._lock:
            if self._closed:
                return False
            self._views = [v.model_copy() for v in views]
            self._is_refreshing = is_refreshing
            if api_health is not None:
                self._api_health = api_health
            if last_updated is not None:
                self._last_updated = last_updated
            self.publish_count += 1
            snapshot = self._build_snapshot()
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as exc:
                print(f"[BOARD][subscriber_error] error={exc}", flush=True)
        return True

    def snapshot(self) -> BoardSnapshot:
        with self._lock:
            return self._build_snapshot()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscribers.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_refreshing(self) -> bool:
        return self._is_refreshing
