from __future__ import annotations

import threading
import time
import logging

from src.treasury.service.balance_service import BalanceService

logger = logging.getLogger(__name__)


class PeriodicSnapshotPoller(threading.Thread):
    """
    Runs BalanceService.capture_periodic_snapshot every poll_sec.
    First capture happens right after start().
    """

    def __init__(
        self,
        *,
        service: BalanceService,
        poll_sec: float = 60.0,
    ):
        super().__init__(daemon=True, name="PeriodicSnapshotPoller")
        self.service = service
        self.poll_sec = float(poll_sec)
        self.cycles = 0
        self._stop_evt = threading.Event()

    def stop(self):
        self._stop_evt.set()

    def run(self):
        logger.info("Periodic snapshot poller started (poll_sec=%s)", self.poll_sec)

        while not self._stop_evt.is_set():
            t0 = time.monotonic()
            try:
                self.service.capture_periodic_snapshot()
            except Exception as e:
                logger.exception("Periodic snapshot error: %s", e)
            self.cycles += 1

            # sleep in short slices so stop() is picked up quickly
            next_at = t0 + self.poll_sec
            while not self._stop_evt.is_set():
                left = next_at - time.monotonic()
                if left <= 0:
                    break
                self._stop_evt.wait(min(0.2, left))

        logger.info("Periodic snapshot poller stopped after %d cycle(s)", self.cycles)
