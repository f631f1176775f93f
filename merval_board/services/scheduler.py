from __future__ import annotations

import threading
import time

from merval_board.services.batch_updater import BoardBatchUpdater


class BoardRefreshScheduler:
    """Runs a board batch at startup and then on a fixed start-to-start cadence.

    A tick that comes due while a batch is still running is dropped, not
    queued. ``stop`` is terminal: it closes the board and a stopped
    scheduler cannot be started again.
    """

    def __init__(self, *, updater: BoardBatchUpdater, interval_sec: float = 300.0) -> None:
        self.updater = updater
        self.interval_sec = interval_sec
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stopped = False

    def _run_safely(self, reason: str) -> None:
        print(f"[SCHED][refresh] reason={reason}", flush=True)
        try:
            self.updater.run_once()
        except Exception as exc:
            print(f"[SCHED][refresh_error] reason={reason} error={exc}", flush=True)

    def _next_deadline(self, previous: float) -> float:
        deadline = previous + self.interval_sec
        now = time.monotonic()
        if deadline < now:
            missed = int((now - deadline) // self.interval_sec) + 1
            print(f"[SCHED][tick_skip] missed={missed} reason=batch_overran", flush=True)
            deadline += missed * self.interval_sec
        return deadline

    def _loop(self) -> None:
        next_run = time.monotonic()
        self._run_safely("startup")
        while True:
            next_run = self._next_deadline(next_run)
            if self._stop_event.wait(max(0.0, next_run - time.monotonic())):
                return
            self._run_safely("timer")

    def start(self) -> None:
        if self._stopped:
            print("[SCHED][worker_start_skip] reason=stopped", flush=True)
            return
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="board-refresh-worker")
        print("[SCHED][worker_start] thread=board-refresh-worker", flush=True)
        self._thread.start()

    def trigger(self) -> bool:
        """Manual refresh; False when stopped or a batch is already in flight."""
        if self._stopped:
            return False
        return self.updater.run_in_background()

    def stop(self) -> None:
        self._stopped = True
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        # a batch still in flight keeps running but can no longer publish
        self.updater.board.close()
        print("[SCHED][worker_stop] thread=board-refresh-worker", flush=True)

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
