import numpy as np
import pytest

from newtonfractal.algebra.number import ZERO, Complex
from newtonfractal.algebra.rooted import ComplexRootedPolynomial
from newtonfractal.engine.kernel import (
    NewtonSettings,
    Viewport,
    allocate_buffer,
    classify_point,
    newton_iterate,
    pixel_to_complex,
    render_band,
)
from newtonfractal.engine.scheduler import CancelToken
from newtonfractal.errors import ComplexZeroDivisionError, InvalidArgumentError


@pytest.fixture
def square(square_minus_one_roots):
    rooted = ComplexRootedPolynomial(*square_minus_one_roots)
    polynomial = rooted.to_coefficient_form()
    return rooted, polynomial, polynomial.derive()


def test_default_settings() -> None:
    s = NewtonSettings()
    assert s.convergence_threshold == 0.001
    assert s.root_threshold == 0.002
    assert s.max_iterations == 256


@pytest.mark.parametrize("kwargs", [
    {"convergence_threshold": 0},
    {"convergence_threshold": -1e-3},
    {"root_threshold": -0.1},
    {"max_iterations": 0},
])
def test_settings_validation(kwargs) -> None:
    with pytest.raises(InvalidArgumentError):
        NewtonSettings(**kwargs)


@pytest.mark.parametrize("args", [
    (-2, 2, -2, 2, 1, 10),
    (-2, 2, -2, 2, 10, 1),
    (2, 2, -2, 2, 10, 10),
    (3, -3, -2, 2, 10, 10),
    (-2, 2, 1, 1, 10, 10),
    (-2, 2, -2, 2, 10.5, 10),
    (-2, 2, -2, 2, True, 10),
    (-2, float("inf"), -2, 2, 10, 10),
    (-2, 2, -2, "2", 10, 10),
])
def test_viewport_validation(args) -> None:
    with pytest.raises(InvalidArgumentError):
        Viewport(*args)


def test_corner_pixels_map_to_viewport_corners() -> None:
    vp = Viewport(-2.0, 2.0, -1.0, 3.0, 5, 4)
    assert pixel_to_complex(0, 0, vp) == Complex(-2.0, 3.0)
    assert pixel_to_complex(4, 3, vp) == Complex(2.0, -1.0)
    assert pixel_to_complex(4, 0, vp) == Complex(2.0, 3.0)
    assert pixel_to_complex(0, 3, vp) == Complex(-2.0, -1.0)


def test_pixel_mapping_is_linear() -> None:
    vp = Viewport(-2.0, 2.0, -2.0, 2.0, 3, 3)
    assert pixel_to_complex(1, 1, vp) == ZERO
    assert pixel_to_complex(0, 1, vp) == Complex(-2.0, 0.0)
    assert pixel_to_complex(2, 1, vp) == Complex(2.0, 0.0)


def test_newton_iterate_converges(square) -> None:
    _, polynomial, derivative = square
    z, iterations = newton_iterate(Complex(2, 0), polynomial, derivative)
    assert z.distance(Complex(1, 0)) < 1e-6
    assert 1 < iterations < 256


def test_newton_iterate_respects_max_iterations(square) -> None:
    _, polynomial, derivative = square
    z, iterations = newton_iterate(Complex(10, 0), polynomial, derivative, max_iterations=1)
    assert iterations == 1
    assert z.approx_equals(Complex(5.05, 0), 1e-12)


def test_newton_iterate_fails_on_zero_derivative(square) -> None:
    _, polynomial, derivative = square
    with pytest.raises(ComplexZeroDivisionError):
        newton_iterate(ZERO, polynomial, derivative)


def test_classify_point(square) -> None:
    rooted, polynomial, derivative = square
    settings = NewtonSettings()
    kw = dict(rooted=rooted, polynomial=polynomial, derivative=derivative)
    assert classify_point(Complex(2, 0.5), settings=settings, **kw) == 1
    assert classify_point(Complex(-3, -0.1), settings=settings, **kw) == 2


def test_converged_point_outside_root_threshold_is_no_root(square) -> None:
    rooted, polynomial, derivative = square
    settings = NewtonSettings(max_iterations=1)
    assert classify_point(Complex(10, 0), rooted=rooted, polynomial=polynomial,
                          derivative=derivative, settings=settings) == 0


def _band(square, y0, y1, out, vp, token=None):
    rooted, polynomial, derivative = square
    return render_band(y0, y1, viewport=vp, rooted=rooted, polynomial=polynomial,
                       derivative=derivative, settings=NewtonSettings(), out=out, cancel_token=token)


def test_render_band_writes_only_its_rows(square) -> None:
    vp = Viewport(-2.0, 2.0, -2.0, 2.0, 3, 3)
    out = np.full(vp.size, 99, dtype=np.uint16)
    assert _band(square, 1, 2, out, vp) == 1
    assert list(out[:3]) == [99, 99, 99]
    assert list(out[3:6]) == [2, 0, 1]
    assert list(out[6:]) == [99, 99, 99]


def test_render_band_stops_when_cancelled(square) -> None:
    vp = Viewport(-2.0, 2.0, -2.0, 2.0, 4, 4)
    out = allocate_buffer(vp)
    token = CancelToken()
    token.cancel()
    assert _band(square, 0, 4, out, vp, token) == 0
    assert not out.any()


def test_allocate_buffer() -> None:
    vp = Viewport(-1.0, 1.0, -1.0, 1.0, 7, 5)
    buf = allocate_buffer(vp)
    assert buf.shape == (35,)
    assert buf.dtype == np.uint16
    assert not buf.any()
