from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable

from merval_board.schemas.board import BatchResult
from merval_board.schemas.quote import InstrumentView
from merval_board.services.fallback_resolver import QuoteFallbackResolver
from merval_board.services.health import classify_api_health, count_unavailable
from merval_board.services.quote_board import QuoteBoard


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BoardBatchUpdater:
    """Single-flight sequential refresh of every board instrument.

    Instruments are resolved one at a time in board order with ``delay_sec``
    slept after each one, the last included. The board is republished after
    every instrument so readers see partial progress.
    """

    def __init__(
        self,
        *,
        resolver: QuoteFallbackResolver,
        board: QuoteBoard,
        delay_sec: float = 0.3,
        sleep_fn: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.resolver = resolver
        self.board = board
        self.delay_sec = delay_sec
        self.sleep_fn = sleep_fn
        self.clock = clock
        self._run_lock = threading.Lock()
        self._metrics = {
            "runs": 0,
            "ignored_triggers": 0,
            "last_error_count": None,
            "last_duration_ms": None,
        }

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def _try_acquire(self) -> bool:
        if self._run_lock.acquire(blocking=False):
            return True
        self._metrics["ignored_triggers"] += 1
        print("[BOARD][batch_skip] reason=already_running", flush=True)
        return False

    def _run_batch(self) -> BatchResult:
        instruments = self.board.instruments
        started = time.monotonic()
        placeholders = [InstrumentView.placeholder(i) for i in instruments]
        print(f"[BOARD][batch_start] instruments={len(instruments)}", flush=True)
        self.board.publish(placeholders, is_refreshing=True)

        completed: list[InstrumentView] = []
        for instrument in instruments:
            quote = self.resolver.resolve(instrument)
            completed.append(InstrumentView.resolved(instrument, quote))
            self.board.publish(completed + placeholders[len(completed):], is_refreshing=True)
            self.sleep_fn(self.delay_sec)

        error_count = count_unavailable(completed)
        api_health = classify_api_health(error_count, len(instruments))
        completed_at = self.clock()
        self.board.publish(
            completed,
            is_refreshing=False,
            api_health=api_health,
            last_updated=completed_at,
        )

        duration_ms = int((time.monotonic() - started) * 1000)
        self._metrics["runs"] += 1
        self._metrics["last_error_count"] = error_count
        self._metrics["last_duration_ms"] = duration_ms
        print(
            f"[BOARD][batch_done] error_count={error_count} api_health={api_health} "
            f"duration_ms={duration_ms}",
            flush=True,
        )
        return BatchResult(
            views=completed,
            error_count=error_count,
            api_health=api_health,
            completed_at=completed_at,
        )

    def _run_and_release(self) -> BatchResult:
        try:
            return self._run_batch()
        except Exception:
            # leave the board readable with the refresh flag cleared
            try:
                self.board.publish(self.board.snapshot().stocks, is_refreshing=False)
            except Exception as exc:
                print(f"[BOARD][recovery_publish_error] error={exc}", flush=True)
            raise
        finally:
            self._run_lock.release()

    def run_once(self) -> BatchResult | None:
        """Run one batch in the calling thread; returns None if one is already in flight."""
        if not self._try_acquire():
            return None
        return self._run_and_release()

    def run_in_background(self, *, name: str = "board-refresh-manual") -> bool:
        """Start one batch on a daemon thread; False if one is already in flight."""
        if not self._try_acquire():
            return False

        def _target() -> None:
            try:
                self._run_and_release()
            except Exception as exc:
                print(f"[BOARD][batch_error] error={exc}", flush=True)

        threading.Thread(target=_target, daemon=True, name=name).start()
        return True

    def metrics(self) -> dict:
        return {**self._metrics, "is_running": self.is_running}
