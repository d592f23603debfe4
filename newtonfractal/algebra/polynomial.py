from __future__ import annotations

from typing import Iterable, Tuple

from newtonfractal.algebra.number import ZERO, Complex
from newtonfractal.errors import InvalidArgumentError


def _term(coefficient: Complex, power: int) -> str:
    if power == 0:
        return str(coefficient)
    if power == 1:
        return f"({coefficient})z"
    return f"({coefficient})z^{power}"


class ComplexPolynomial:
    """Polynomial in coefficient form; ``coefficients[i]`` multiplies ``z**i``.

    Never empty: constructing it without coefficients gives the canonical
    zero polynomial ``(0)``.
    """

    __slots__ = ("_coefficients",)

    def __init__(self, *coefficients: Complex):
        for c in coefficients:
            if c is None:
                raise InvalidArgumentError("Polynomial coefficient cannot be None.")
            if not isinstance(c, Complex):
                raise InvalidArgumentError(f"Polynomial coefficient must be a Complex, got {type(c).__name__}.")
        self._coefficients: Tuple[Complex, ...] = tuple(coefficients) if coefficients else (ZERO,)

    @classmethod
    def from_iterable(cls, coefficients: Iterable[Complex]) -> "ComplexPolynomial":
        return cls(*coefficients)

    @property
    def coefficients(self) -> Tuple[Complex, ...]:
        return self._coefficients

    def order(self) -> int:
        return len(self._coefficients)

    def degree(self) -> int:
        return len(self._coefficients) - 1

    def multiply(self, other: "ComplexPolynomial") -> "ComplexPolynomial":
        if other is None:
            raise InvalidArgumentError("Cannot multiply a polynomial by None.")
        a = self._coefficients
        b = other._coefficients
        result = [ZERO] * (len(a) + len(b) - 1)
        for i, ai in enumerate(a):
            for j, bj in enumerate(b):
                result[i + j] = result[i + j].add(ai.multiply(bj))
        return ComplexPolynomial(*result)

    def derive(self) -> "ComplexPolynomial":
        if len(self._coefficients) == 1:
            return ComplexPolynomial(ZERO)
        return ComplexPolynomial(*(
            c.multiply(Complex(i, 0.0)) for i, c in enumerate(self._coefficients) if i > 0
        ))

    def apply(self, z: Complex) -> Complex:
        if z is None:
            raise InvalidArgumentError("Cannot evaluate a polynomial at None.")
        if z.is_zero():
            return self._coefficients[0]
        # Horner, highest power first
        result = self._coefficients[-1]
        for c in reversed(self._coefficients[:-1]):
            result = result.multiply(z).add(c)
        return result

    def approx_equals(self, other: object, epsilon: float) -> bool:
        if not isinstance(other, ComplexPolynomial):
            return False
        if len(self._coefficients) != len(other._coefficients):
            return False
        return all(a.approx_equals(b, epsilon) for a, b in zip(self._coefficients, other._coefficients))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComplexPolynomial):
            return NotImplemented
        return self._coefficients == other._coefficients

    def __hash__(self) -> int:
        return hash(self._coefficients)

    def __len__(self) -> int:
        return len(self._coefficients)

    def __repr__(self) -> str:
        return f"ComplexPolynomial{self._coefficients!r}"

    def __str__(self) -> str:
        return " + ".join(_term(c, p) for p, c in reversed(list(enumerate(self._coefficients))))
