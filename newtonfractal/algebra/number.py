from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass
from typing import List, Union

from newtonfractal.errors import ComplexArithmeticError, ComplexZeroDivisionError, InvalidArgumentError

_REAL_RE = re.compile(r"^[+-]?[0-9]+(\.[0-9]*)?$")
_SIGN_RE = re.compile(r"^[+-]$")
_IMAG_RE = re.compile(r"^i([0-9]+(\.[0-9]*)?)?$")
_SIGNED_IMAG_RE = re.compile(r"^[+-]?i([0-9]+(\.[0-9]*)?)?$")

Number = Union["Complex", int, float, complex]


def _bits(value: float) -> int:
    return struct.unpack("<q", struct.pack("<d", value))[0]


def _fmt(value: float) -> str:
    s = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


def _require(c: object, role: str) -> "Complex":
    if c is None:
        raise InvalidArgumentError(f"{role} cannot be None.")
    if not isinstance(c, Complex):
        raise InvalidArgumentError(f"{role} must be a Complex, got {type(c).__name__}.")
    return c


@dataclass(frozen=True, eq=False)
class Complex:
    """Immutable double-precision complex number.

    ``==`` compares both parts bit for bit (``0.0`` and ``-0.0`` differ);
    use :meth:`approx_equals` when rounding has to be tolerated.
    """

    re: float = 0.0
    im: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "re", float(self.re))
        object.__setattr__(self, "im", float(self.im))

    @classmethod
    def parse(cls, text: str) -> "Complex":
        """Parse ``"a"``, ``"ib"``, ``"-i"``, ``"a + ib"`` or ``"a - ib"``.

        A bare ``i`` stands for an imaginary magnitude of one.
        """
        if text is None:
            raise InvalidArgumentError("Cannot parse None as a complex number.")
        parts = text.split()
        if not parts:
            raise InvalidArgumentError("Cannot parse an empty string as a complex number.")

        if len(parts) == 3:
            real, sign, imag = parts
            if not _REAL_RE.match(real):
                raise InvalidArgumentError(f"Real part has the wrong format: {real!r}")
            if not _SIGN_RE.match(sign):
                raise InvalidArgumentError(f"Operator has the wrong format: {sign!r}")
            if not _IMAG_RE.match(imag):
                raise InvalidArgumentError(f"Imaginary part has the wrong format: {imag!r}")
            magnitude = float(imag[1:]) if len(imag) > 1 else 1.0
            return cls(float(real), magnitude if sign == "+" else -magnitude)

        if len(parts) == 1:
            token = parts[0]
            if _REAL_RE.match(token):
                return cls(float(token), 0.0)
            if _SIGNED_IMAG_RE.match(token):
                negative = token.startswith("-")
                digits = token.lstrip("+-")[1:]
                magnitude = float(digits) if digits else 1.0
                return cls(0.0, -magnitude if negative else magnitude)
            raise InvalidArgumentError(f"Not a complex number: {text!r}")

        raise InvalidArgumentError(
            f"Complex number must have one or three space separated parts, got {len(parts)}: {text!r}"
        )

    def is_zero(self) -> bool:
        return self.re == 0.0 and self.im == 0.0

    def module(self) -> float:
        return math.hypot(self.re, self.im)

    def argument(self) -> float:
        return math.atan2(self.im, self.re)

    def distance(self, other: "Complex") -> float:
        other = _require(other, "Other point")
        return math.hypot(self.re - other.re, self.im - other.im)

    def add(self, other: "Complex") -> "Complex":
        other = _require(other, "Addend")
        return Complex(self.re + other.re, self.im + other.im)

    def sub(self, other: "Complex") -> "Complex":
        other = _require(other, "Subtrahend")
        return Complex(self.re - other.re, self.im - other.im)

    def multiply(self, other: "Complex") -> "Complex":
        other = _require(other, "Factor")
        return Complex(
            self.re * other.re - self.im * other.im,
            self.re * other.im + self.im * other.re,
        )

    def divide(self, other: "Complex") -> "Complex":
        other = _require(other, "Divisor")
        if other.is_zero():
            raise ComplexZeroDivisionError(f"Cannot divide {self} by zero.")
        scale = other.re * other.re + other.im * other.im
        return Complex(
            (self.re * other.re + self.im * other.im) / scale,
            (self.im * other.re - self.re * other.im) / scale,
        )

    def negate(self) -> "Complex":
        return Complex(-self.re, -self.im)

    def power(self, n: int) -> "Complex":
        if n < 0:
            raise InvalidArgumentError(f"Exponent must be a non-negative integer, got {n}.")
        if n == 0 and self.is_zero():
            raise ComplexArithmeticError("0^0 is undefined.")
        modulus = self.module() ** n
        angle = n * self.argument()
        return Complex(modulus * math.cos(angle), modulus * math.sin(angle))

    def root(self, n: int) -> List["Complex"]:
        """Return the ``n`` n-th roots ordered by angle ``(arg + 2*pi*k) / n``."""
        if n <= 0:
            raise InvalidArgumentError(f"Root degree must be a positive integer, got {n}.")
        modulus = self.module() ** (1.0 / n)
        arg = self.argument()
        roots = []
        for k in range(n):
            angle = (arg + 2 * math.pi * k) / n
            roots.append(Complex(modulus * math.cos(angle), modulus * math.sin(angle)))
        return roots

    def approx_equals(self, other: object, epsilon: float) -> bool:
        if not isinstance(other, Complex):
            return False
        if _bits(self.re) != _bits(other.re) and abs(self.re - other.re) >= epsilon:
            return False
        if _bits(self.im) != _bits(other.im) and abs(self.im - other.im) >= epsilon:
            return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Complex):
            return NotImplemented
        return _bits(self.re) == _bits(other.re) and _bits(self.im) == _bits(other.im)

    def __hash__(self) -> int:
        return hash((_bits(self.re), _bits(self.im)))

    def __complex__(self) -> complex:
        return complex(self.re, self.im)

    @staticmethod
    def _coerce(value: object):
        if isinstance(value, Complex):
            return value
        if isinstance(value, (int, float)):
            return Complex(value, 0.0)
        if isinstance(value, complex):
            return Complex(value.real, value.imag)
        return None

    def __add__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else self.add(o)

    def __radd__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else o.add(self)

    def __sub__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else self.sub(o)

    def __rsub__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else o.sub(self)

    def __mul__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else self.multiply(o)

    def __rmul__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else o.multiply(self)

    def __truediv__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else self.divide(o)

    def __rtruediv__(self, other: Number):
        o = self._coerce(other)
        return NotImplemented if o is None else o.divide(self)

    def __neg__(self) -> "Complex":
        return self.negate()

    def __abs__(self) -> float:
        return self.module()

    def __repr__(self) -> str:
        return f"Complex({self.re!r}, {self.im!r})"

    def __str__(self) -> str:
        if self.re != 0:
            if self.im > 0:
                return f"{_fmt(self.re)} + i{_fmt(self.im)}"
            if self.im < 0:
                return f"{_fmt(self.re)} - i{_fmt(-self.im)}"
            return _fmt(self.re)
        if self.im > 0:
            return f"i{_fmt(self.im)}"
        if self.im < 0:
            return f"-i{_fmt(-self.im)}"
        return "0"


ZERO = Complex(0.0, 0.0)
ONE = Complex(1.0, 0.0)
ONE_NEG = Complex(-1.0, 0.0)
IM = Complex(0.0, 1.0)
IM_NEG = Complex(0.0, -1.0)
