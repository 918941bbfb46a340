# speculator.py — off-thread training of the classifier for the next growth step

# region Imports
from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Optional, Tuple
import logging
import threading
import numpy as np
from .training import ClassifierTrainer, PixelClassifier
# endregion

LOGGER = logging.getLogger(__name__)

# (search generation, ring index, stroke mask version) at dispatch time
Tag = Tuple[int, int, int]


class BackgroundSpeculator:
    """
    Runs ``ClassifierTrainer.train_for_growth`` on deep-copied snapshots in a
    single worker thread. A result is handed out only when its tag still
    matches the engine state; anything else is dropped.

    Only the newest snapshot waits for the worker: a dispatch made while a
    job is still queued replaces that job's snapshot instead of queueing
    another one. A job that already started runs to completion.
    """

    def __init__(self, trainer: ClassifierTrainer, executor: Optional[ThreadPoolExecutor] = None):
        self.trainer = trainer
        self._own_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="speculator")
        self._lock = threading.Lock()
        self._tag: Optional[Tag] = None
        self._latest = None
        self._queued: Optional[Future] = None
        self._future: Optional[Future] = None

    def dispatch(self, tag: Tag, strokes, labels: np.ndarray, distances: np.ndarray,
                 ring, threshold: float, lock_mode: bool) -> Future:
        with self._lock:
            if self._queued is not None:
                LOGGER.debug("replacing queued speculation %s with %s", self._tag, tag)
            elif self._future is not None and not self._future.done():
                LOGGER.debug("superseding running speculation %s", self._tag)
            self._tag = tag
            self._latest = (tag, (strokes, labels, distances, ring, threshold, lock_mode))
            if self._queued is None:
                self._queued = self.executor.submit(self._run_latest)
            self._future = self._queued
            return self._future

    def _run_latest(self) -> Tuple[Tag, Optional[PixelClassifier]]:
        with self._lock:
            (tag, args), self._latest = self._latest, None
            self._queued = None
        return tag, self.trainer.train_for_growth(*args)

    def pending(self) -> bool:
        return self._future is not None and not self._future.done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the newest job finishes. Returns False on timeout."""
        fut = self._future
        if fut is None:
            return True
        done, _ = wait_futures([fut], timeout=timeout)
        return bool(done)

    def collect(self, generation: int, ring_index: int, stroke_version: int) -> Optional[PixelClassifier]:
        """Return the finished spare classifier if it was computed for exactly this state."""
        with self._lock:
            fut = self._future
            if fut is None or not fut.done():
                return None
            self._future, self._tag = None, None
        exc = fut.exception()
        if exc is not None:
            LOGGER.warning("Spare classifier training failed: %s", exc, exc_info=exc)
            return None
        tag, spare = fut.result()
        if tag != (generation, ring_index, stroke_version):
            LOGGER.info("Discarding stale spare classifier %s (now %s)",
                        tag, (generation, ring_index, stroke_version))
            return None
        return spare

    def shutdown(self, wait: bool = True):
        if self._own_executor:
            self.executor.shutdown(wait=wait)
