from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from newtonfractal.algebra.polynomial import ComplexPolynomial
from newtonfractal.algebra.rooted import ComplexRootedPolynomial
from newtonfractal.engine.kernel import NewtonSettings, Viewport, allocate_buffer, render_band
from newtonfractal.engine.scheduler import Band, CancelToken, TileScheduler
from newtonfractal.errors import InvalidArgumentError
from newtonfractal.util.logging_setup import get_logger, request_context


@dataclass(frozen=True)
class FractalResult:
    indices: np.ndarray
    root_count_plus_one: int
    request_id: Any
    width: int
    height: int
    failed_bands: Tuple[Band, ...] = field(default=())

    def as_grid(self) -> np.ndarray:
        return self.indices.reshape(self.height, self.width)


class NewtonProducer:
    """Classifies viewport pixels by the root Newton's method converges to.

    The coefficient form of the rooted polynomial and its derivative are
    computed once here and shared read-only by every band of every request.
    """

    def __init__(
        self,
        rooted: ComplexRootedPolynomial,
        *,
        settings: Optional[NewtonSettings] = None,
        scheduler: Optional[TileScheduler] = None,
        owns_scheduler: Optional[bool] = None,
    ):
        if rooted is None:
            raise InvalidArgumentError("Rooted polynomial cannot be None.")
        self.rooted = rooted
        self.settings = settings or NewtonSettings()
        self.polynomial: ComplexPolynomial = rooted.to_coefficient_form()
        self.derivative: ComplexPolynomial = self.polynomial.derive()
        self._owns_scheduler = scheduler is None if owns_scheduler is None else owns_scheduler
        self.scheduler = scheduler if scheduler is not None else TileScheduler()
        self._dispatcher: Optional[ThreadPoolExecutor] = None
        self._dispatcher_lock = threading.Lock()

        logger = get_logger()
        logger.info("Newton producer ready roots=%s", len(rooted))
        logger.debug("P(z) = %s", self.polynomial)
        logger.debug("P'(z) = %s", self.derivative)

    @property
    def root_count(self) -> int:
        return len(self.rooted)

    def produce(
        self,
        re_min: float,
        re_max: float,
        im_min: float,
        im_max: float,
        width: int,
        height: int,
        request_id: Any = None,
        *,
        cancel_token: Optional[CancelToken] = None,
        observer: Optional[Callable[[FractalResult], None]] = None,
        progress: Optional[Callable[[Band], None]] = None,
    ) -> FractalResult:
        logger = get_logger()
        viewport = Viewport(re_min, re_max, im_min, im_max, width, height)
        data = allocate_buffer(viewport)

        def band_fn(band: Band) -> int:
            with request_context(request_id):
                return render_band(
                    band.y_start, band.y_end,
                    viewport=viewport,
                    rooted=self.rooted,
                    polynomial=self.polynomial,
                    derivative=self.derivative,
                    settings=self.settings,
                    out=data,
                    cancel_token=cancel_token,
                )

        with request_context(request_id):
            logger.info("[Request %s] start re=[%s, %s] im=[%s, %s] size=%sx%s",
                        request_id, viewport.re_min, viewport.re_max, viewport.im_min, viewport.im_max,
                        viewport.width, viewport.height)
            start = time.time()
            failed = self.scheduler.run(viewport.height, band_fn, cancel_token=cancel_token, progress=progress)
            logger.info("[Request %s] done in %.2fs failed_bands=%s", request_id, time.time() - start, len(failed))
        data.flags.writeable = False

        result = FractalResult(
            indices=data,
            root_count_plus_one=self.root_count + 1,
            request_id=request_id,
            width=viewport.width,
            height=viewport.height,
            failed_bands=tuple(failed),
        )
        if observer is not None:
            observer(result)
        return result

    def produce_async(self, *args, **kwargs) -> Future:
        with self._dispatcher_lock:
            if self._dispatcher is None:
                # requests wait on band tasks, so they cannot share the band pool
                self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="newton-request")
            return self._dispatcher.submit(self.produce, *args, **kwargs)

    def describe(self) -> Dict[str, Any]:
        return {
            "roots": [str(r) for r in self.rooted.roots],
            "polynomial": str(self.polynomial),
            "derivative": str(self.derivative),
            "convergence_threshold": self.settings.convergence_threshold,
            "root_threshold": self.settings.root_threshold,
            "max_iterations": self.settings.max_iterations,
            "workers": self.scheduler.workers,
            "band_count": self.scheduler.band_count,
            "failure_policy": self.scheduler.failure_policy,
        }

    def close(self) -> None:
        with self._dispatcher_lock:
            if self._dispatcher is not None:
                self._dispatcher.shutdown(wait=True)
                self._dispatcher = None
        if self._owns_scheduler:
            self.scheduler.shutdown()

    def __enter__(self) -> "NewtonProducer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
