"""Fixed-interval polling worker around ``ProcessorService.run_once``."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from app.schemas import CycleResult
from services.exceptions import LogSourceError, ResultStoreError
from services.processor import ProcessorService

logger = logging.getLogger(__name__)


class Poller:
    """Run poll cycles every ``interval`` seconds until stopped.

    Listing, fetch and store failures end the current cycle only; the file
    stays unprocessed and is picked up again on a later tick.
    """

    def __init__(
        self,
        processor: ProcessorService,
        interval: float = 10.0,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        if interval < 0:
            raise ValueError("Poll interval must not be negative.")
        self.processor = processor
        self.interval = interval
        self._stop_event = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.cycles = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self, max_cycles: Optional[int] = None, wait_first: bool = True) -> None:
        """Block until stopped or until ``max_cycles`` cycles have run."""
        skip_wait = not wait_first
        while max_cycles is None or self.cycles < max_cycles:
            if not skip_wait and self._stop_event.wait(self.interval):
                break
            skip_wait = False
            if self._stop_event.is_set():
                break
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Poller stopped by unexpected error")
                raise
        logger.info("Poller stopped after %d cycles", self.cycles)

    def run_cycle(self) -> Optional[CycleResult]:
        self.cycles += 1
        try:
            return self.processor.run_once()
        except (LogSourceError, ResultStoreError) as exc:
            logger.error("Poll cycle failed", extra={"reason": str(exc)})
            return None

    def start_background(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run, name="sensor-log-poller", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
