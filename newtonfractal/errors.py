from __future__ import annotations

from typing import List, Tuple


class FractalError(Exception):
    pass


class InvalidArgumentError(FractalError, ValueError):
    pass


class ConfigError(FractalError, ValueError):
    pass


class ComplexArithmeticError(FractalError, ArithmeticError):
    pass


class ComplexZeroDivisionError(ComplexArithmeticError, ZeroDivisionError):
    pass


class SchedulerClosedError(FractalError, RuntimeError):
    pass


class RequestCancelledError(FractalError):
    pass


class BandFailedError(FractalError, RuntimeError):
    """Raised after the join when one or more bands failed under the propagate policy."""

    def __init__(self, failures: List[Tuple[object, BaseException]]):
        self.failures = list(failures)
        bands = ", ".join(str(band) for band, _ in self.failures)
        super().__init__(f"{len(self.failures)} band(s) failed: {bands}")
