from __future__ import annotations

import math
from typing import Iterable, Tuple

from newtonfractal.algebra.number import ONE, ZERO, Complex
from newtonfractal.algebra.polynomial import ComplexPolynomial
from newtonfractal.errors import InvalidArgumentError

NO_ROOT = -1


class ComplexRootedPolynomial:
    """Polynomial given by its roots: ``(z - r1)(z - r2)...(z - rn)``.

    Root order only fixes the numbering used by
    :meth:`index_of_closest_root`.
    """

    __slots__ = ("_roots",)

    def __init__(self, *roots: Complex):
        for r in roots:
            if r is None:
                raise InvalidArgumentError("Polynomial root cannot be None.")
            if not isinstance(r, Complex):
                raise InvalidArgumentError(f"Polynomial root must be a Complex, got {type(r).__name__}.")
        self._roots: Tuple[Complex, ...] = tuple(roots) if roots else (ZERO,)

    @classmethod
    def from_iterable(cls, roots: Iterable[Complex]) -> "ComplexRootedPolynomial":
        return cls(*roots)

    @property
    def roots(self) -> Tuple[Complex, ...]:
        return self._roots

    def apply(self, z: Complex) -> Complex:
        if z is None:
            raise InvalidArgumentError("Cannot evaluate a polynomial at None.")
        result = ONE
        for r in self._roots:
            result = result.multiply(z.sub(r))
        return result

    def to_coefficient_form(self) -> ComplexPolynomial:
        result = ComplexPolynomial(self._roots[0].negate(), ONE)
        for r in self._roots[1:]:
            result = result.multiply(ComplexPolynomial(r.negate(), ONE))
        return result

    def index_of_closest_root(self, z: Complex, threshold: float) -> int:
        """1-based index of the nearest root within ``threshold`` of ``z``, else ``NO_ROOT``.

        Ties go to the root listed first.
        """
        if z is None:
            raise InvalidArgumentError("Query point cannot be None.")
        if not threshold >= 0:
            raise InvalidArgumentError(f"Threshold cannot be negative, got {threshold}.")
        index = NO_ROOT
        best = math.inf
        for i, r in enumerate(self._roots):
            d = z.distance(r)
            if d <= threshold and d < best:
                index = i + 1
                best = d
        return index

    def __len__(self) -> int:
        return len(self._roots)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComplexRootedPolynomial):
            return NotImplemented
        return self._roots == other._roots

    def __hash__(self) -> int:
        return hash(self._roots)

    def __repr__(self) -> str:
        return f"ComplexRootedPolynomial{self._roots!r}"

    def __str__(self) -> str:
        return " * ".join(f"[z - ({r})]" for r in self._roots)
