from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from newtonfractal.errors import (
    BandFailedError,
    InvalidArgumentError,
    RequestCancelledError,
    SchedulerClosedError,
)
from newtonfractal.util.logging_setup import get_logger

JOBS_PER_WORKER = 8
FAILURE_POLICIES = ("swallow", "propagate")


@dataclass(frozen=True)
class Band:
    index: int
    y_start: int
    y_end: int

    @property
    def rows(self) -> int:
        return self.y_end - self.y_start

    def __str__(self) -> str:
        return f"band#{self.index}[{self.y_start}:{self.y_end})"


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def partition_rows(height: int, band_count: int) -> List[Band]:
    """Split rows ``0..height-1`` into contiguous bands.

    Every band gets ``height // band_count`` rows and the last one takes the
    remainder. Bands that would be empty are dropped, so a short viewport
    yields a single band.
    """
    if height < 1:
        raise InvalidArgumentError(f"height must be >= 1, got {height}")
    if band_count < 1:
        raise InvalidArgumentError(f"band_count must be >= 1, got {band_count}")

    per_band = height // band_count
    bands: List[Band] = []
    for i in range(band_count):
        y0 = i * per_band
        y1 = height if i == band_count - 1 else (i + 1) * per_band
        if y1 > y0:
            bands.append(Band(len(bands), y0, y1))
    return bands


class TileScheduler:
    """Long-lived worker pool that runs one task per band and joins them all.

    Failed bands are either logged and reported back (``"swallow"``) or
    raised as :class:`BandFailedError` once every band has finished
    (``"propagate"``).
    """

    def __init__(
        self,
        *,
        workers: Optional[int] = None,
        jobs_per_worker: int = JOBS_PER_WORKER,
        failure_policy: str = "swallow",
    ):
        if workers is None:
            workers = os.cpu_count() or 1
        if workers < 1:
            raise InvalidArgumentError(f"workers must be >= 1, got {workers}")
        if jobs_per_worker < 1:
            raise InvalidArgumentError(f"jobs_per_worker must be >= 1, got {jobs_per_worker}")
        if failure_policy not in FAILURE_POLICIES:
            raise InvalidArgumentError(f"failure_policy must be one of {FAILURE_POLICIES}, got {failure_policy!r}")

        self.workers = int(workers)
        self.jobs_per_worker = int(jobs_per_worker)
        self.failure_policy = failure_policy
        self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="newton-band")
        self._lock = threading.Lock()
        self._closed = False
        get_logger().debug("Scheduler started workers=%s bands/request=%s policy=%s",
                           self.workers, self.band_count, self.failure_policy)

    @property
    def band_count(self) -> int:
        return self.workers * self.jobs_per_worker

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        with self._lock:
            if self._closed:
                raise SchedulerClosedError("Scheduler has been shut down.")
            return self._pool.submit(fn, *args, **kwargs)

    def run(
        self,
        height: int,
        band_fn: Callable[[Band], object],
        *,
        cancel_token: Optional[CancelToken] = None,
        progress: Optional[Callable[[Band], None]] = None,
    ) -> List[Band]:
        """Run ``band_fn`` over every band of ``height`` rows and wait for all of them.

        Returns the bands that failed (always empty under ``"propagate"``).
        """
        logger = get_logger()
        bands = partition_rows(height, self.band_count)
        futures: Dict[Future, Band] = {}
        try:
            for band in bands:
                futures[self.submit(band_fn, band)] = band
        except SchedulerClosedError:
            # bands already handed to the pool still write into the caller's buffer
            wait(futures)
            raise

        failures: List[Tuple[Band, BaseException]] = []
        for fut in as_completed(futures):
            band = futures[fut]
            try:
                fut.result()
            except Exception as e:
                if self.failure_policy == "swallow":
                    logger.warning("%s failed, rows keep their default value: %s", band, e, exc_info=e)
                else:
                    logger.error("%s failed: %s", band, e)
                failures.append((band, e))
                continue
            if progress is not None:
                progress(band)

        if cancel_token is not None and cancel_token.cancelled:
            raise RequestCancelledError("Request was cancelled.")
        if failures and self.failure_policy == "propagate":
            raise BandFailedError(sorted(failures, key=lambda f: f[0].index))
        return sorted((band for band, _ in failures), key=lambda b: b.index)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait)
        get_logger().debug("Scheduler shut down")

    def __enter__(self) -> "TileScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
