import pytest

from newtonfractal.algebra.number import Complex
from newtonfractal.engine.scheduler import TileScheduler


@pytest.fixture
def scheduler():
    s = TileScheduler(workers=2, jobs_per_worker=2)
    yield s
    s.shutdown()


@pytest.fixture
def square_minus_one_roots():
    # z^2 - 1
    return [Complex(1, 0), Complex(-1, 0)]
