import pytest

from newtonfractal.algebra.number import ZERO, Complex
from newtonfractal.algebra.polynomial import ComplexPolynomial
from newtonfractal.algebra.rooted import NO_ROOT, ComplexRootedPolynomial
from newtonfractal.errors import InvalidArgumentError


@pytest.fixture
def p1() -> ComplexRootedPolynomial:
    return ComplexRootedPolynomial(Complex(2, 1), Complex(1, 0), Complex(0, -4))


@pytest.fixture
def p2() -> ComplexRootedPolynomial:
    return ComplexRootedPolynomial(Complex(3, -1), Complex(-4, -1))


def test_constructor_rejects_none() -> None:
    with pytest.raises(InvalidArgumentError):
        ComplexRootedPolynomial(Complex(2, 1), None)


def test_empty_construction_has_single_zero_root() -> None:
    p = ComplexRootedPolynomial()
    assert p.roots == (ZERO,)
    assert len(p) == 1


def test_apply_at_zero_is_product_of_negated_roots(p1: ComplexRootedPolynomial) -> None:
    assert p1.apply(ZERO) == Complex(-4, 8)


def test_apply(p1: ComplexRootedPolynomial, p2: ComplexRootedPolynomial) -> None:
    assert p1.apply(Complex(3, -1)).approx_equals(Complex(15, -15), 1e-9)
    assert p1.apply(Complex(-1, 2)).approx_equals(Complex(44, 32), 1e-9)
    assert p2.apply(ZERO) == Complex(-13, 1)
    assert p2.apply(Complex(0, 4)).approx_equals(Complex(-37, 5), 1e-9)
    assert p2.apply(Complex(21, 2)).approx_equals(Complex(441, 129), 1e-9)


def test_apply_rejects_none(p1: ComplexRootedPolynomial) -> None:
    with pytest.raises(InvalidArgumentError):
        p1.apply(None)


def test_to_coefficient_form(p1: ComplexRootedPolynomial, p2: ComplexRootedPolynomial) -> None:
    expected1 = ComplexPolynomial(Complex(-4, 8), Complex(6, -11), Complex(-3, 3), Complex(1, 0))
    expected2 = ComplexPolynomial(Complex(-13, 1), Complex(1, 2), Complex(1, 0))
    assert p1.to_coefficient_form().approx_equals(expected1, 1e-12)
    assert p2.to_coefficient_form().approx_equals(expected2, 1e-12)


@pytest.mark.parametrize("z", [ZERO, Complex(3, -1), Complex(-1, 2), Complex(0.5, 0.25)])
def test_both_forms_agree(p1: ComplexRootedPolynomial, z: Complex) -> None:
    assert p1.to_coefficient_form().apply(z).approx_equals(p1.apply(z), 1e-9)


def test_index_of_closest_root(p1: ComplexRootedPolynomial, p2: ComplexRootedPolynomial) -> None:
    assert p1.index_of_closest_root(Complex(0, 0), 0) == NO_ROOT
    assert p1.index_of_closest_root(Complex(2, 2), 2) == 1
    assert p1.index_of_closest_root(Complex(0, 0), 1) == 2
    assert p1.index_of_closest_root(Complex(0, -7), 3.1) == 3
    assert p2.index_of_closest_root(Complex(0, 0), 0.1) == NO_ROOT
    assert p2.index_of_closest_root(Complex(3, 0), 1.5) == 1
    assert p2.index_of_closest_root(Complex(-5, -2), 3) == 2


def test_index_of_closest_root_exact_hit_with_zero_threshold(p1: ComplexRootedPolynomial) -> None:
    assert p1.index_of_closest_root(Complex(0, -4), 0) == 3


def test_index_of_closest_root_tie_keeps_first_root() -> None:
    p = ComplexRootedPolynomial(Complex(1, 0), Complex(-1, 0))
    assert p.index_of_closest_root(ZERO, 1) == 1
    assert ComplexRootedPolynomial(Complex(-1, 0), Complex(1, 0)).index_of_closest_root(ZERO, 1) == 1


def test_index_of_closest_root_prefers_nearer_later_root() -> None:
    p = ComplexRootedPolynomial(Complex(1, 0), Complex(0.5, 0))
    assert p.index_of_closest_root(Complex(0.6, 0), 1) == 2


def test_index_of_closest_root_rejects_bad_input(p1: ComplexRootedPolynomial) -> None:
    with pytest.raises(InvalidArgumentError):
        p1.index_of_closest_root(None, 0.1)
    with pytest.raises(InvalidArgumentError):
        p1.index_of_closest_root(ZERO, -0.1)
    with pytest.raises(InvalidArgumentError):
        p1.index_of_closest_root(ZERO, float("nan"))


def test_str(p2: ComplexRootedPolynomial) -> None:
    assert str(p2) == "[z - (3 - i1)] * [z - (-4 - i1)]"
