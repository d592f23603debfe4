from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from newtonfractal.algebra.number import Complex
from newtonfractal.algebra.polynomial import ComplexPolynomial
from newtonfractal.algebra.rooted import NO_ROOT, ComplexRootedPolynomial
from newtonfractal.errors import InvalidArgumentError
from newtonfractal.util.logging_setup import get_logger

CONVERGENCE_THRESHOLD = 0.001
ROOT_THRESHOLD = 0.002
MAX_ITERATIONS = 16 * 16


@dataclass(frozen=True)
class NewtonSettings:
    convergence_threshold: float = CONVERGENCE_THRESHOLD
    root_threshold: float = ROOT_THRESHOLD
    max_iterations: int = MAX_ITERATIONS

    def __post_init__(self) -> None:
        if not self.convergence_threshold > 0:
            raise InvalidArgumentError(f"convergence_threshold must be > 0, got {self.convergence_threshold}")
        if not self.root_threshold >= 0:
            raise InvalidArgumentError(f"root_threshold must be >= 0, got {self.root_threshold}")
        if int(self.max_iterations) < 1:
            raise InvalidArgumentError(f"max_iterations must be >= 1, got {self.max_iterations}")


@dataclass(frozen=True)
class Viewport:
    re_min: float
    re_max: float
    im_min: float
    im_max: float
    width: int
    height: int

    def __post_init__(self) -> None:
        for name in ("re_min", "re_max", "im_min", "im_max"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise InvalidArgumentError(f"{name} must be a finite number, got {value!r}")
            object.__setattr__(self, name, float(value))
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))
        if self.width < 2 or self.height < 2:
            raise InvalidArgumentError(f"width and height must be >= 2, got {self.width}x{self.height}")
        if not self.re_max > self.re_min:
            raise InvalidArgumentError(f"re_max must be > re_min, got [{self.re_min}, {self.re_max}]")
        if not self.im_max > self.im_min:
            raise InvalidArgumentError(f"im_max must be > im_min, got [{self.im_min}, {self.im_max}]")

    @property
    def size(self) -> int:
        return self.width * self.height


def pixel_to_complex(x: int, y: int, viewport: Viewport) -> Complex:
    # row 0 is the top edge, i.e. im_max
    re = x / (viewport.width - 1.0) * (viewport.re_max - viewport.re_min) + viewport.re_min
    im = (viewport.height - 1.0 - y) / (viewport.height - 1.0) * (viewport.im_max - viewport.im_min) + viewport.im_min
    return Complex(re, im)


def newton_iterate(
    z0: Complex,
    polynomial: ComplexPolynomial,
    derivative: ComplexPolynomial,
    *,
    convergence_threshold: float = CONVERGENCE_THRESHOLD,
    max_iterations: int = MAX_ITERATIONS,
) -> Tuple[Complex, int]:
    """Run ``z <- z - P(z)/P'(z)`` from ``z0``.

    Returns the last iterate and the number of steps taken. Raises
    :class:`ComplexZeroDivisionError` if ``P'`` vanishes at an iterate.
    """
    z = z0
    iterations = 0
    while True:
        z_next = z.sub(polynomial.apply(z).divide(derivative.apply(z)))
        iterations += 1
        step = z_next.sub(z).module()
        z = z_next
        # a NaN step stops the loop too
        if not step > convergence_threshold or iterations >= max_iterations:
            return z, iterations


def classify_point(
    z0: Complex,
    *,
    rooted: ComplexRootedPolynomial,
    polynomial: ComplexPolynomial,
    derivative: ComplexPolynomial,
    settings: NewtonSettings,
) -> int:
    z, _ = newton_iterate(
        z0, polynomial, derivative,
        convergence_threshold=settings.convergence_threshold,
        max_iterations=settings.max_iterations,
    )
    index = rooted.index_of_closest_root(z, settings.root_threshold)
    return 0 if index == NO_ROOT else index


def render_band(
    y_start: int,
    y_end: int,
    *,
    viewport: Viewport,
    rooted: ComplexRootedPolynomial,
    polynomial: ComplexPolynomial,
    derivative: ComplexPolynomial,
    settings: NewtonSettings,
    out: np.ndarray,
    cancel_token=None,
) -> int:
    """Classify rows ``[y_start, y_end)`` into ``out``; returns the number of rows written."""
    logger = get_logger()
    width = viewport.width
    rows = 0
    singular = 0

    for y in range(y_start, y_end):
        if cancel_token is not None and cancel_token.cancelled:
            logger.debug("Band rows %s..%s cancelled after %s rows", y_start, y_end, rows)
            break
        offset = y * width
        for x in range(width):
            z0 = pixel_to_complex(x, y, viewport)
            try:
                index = classify_point(z0, rooted=rooted, polynomial=polynomial, derivative=derivative, settings=settings)
            except ArithmeticError:
                # zero derivative, or float underflow/overflow inside one pixel
                logger.debug("Arithmetic failure at pixel (%s,%s) z0=%s - classified as no root", x, y, z0)
                singular += 1
                index = 0
            out[offset + x] = index
        rows += 1

    if singular:
        logger.debug("Band rows %s..%s: %s singular pixel(s)", y_start, y_end, singular)
    return rows


def allocate_buffer(viewport: Viewport, *, fill: int = 0) -> np.ndarray:
    return np.full(viewport.size, fill, dtype=np.uint16)
