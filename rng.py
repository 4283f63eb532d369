"""Random sources implementing ``protocols.RandomSource``."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np


class NumpyRandomSource:
    """Seedable source backed by ``numpy.random.Generator``."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def random(self) -> float:
        return float(self._generator.random())


class SequenceRandomSource:
    """Replays a fixed list of draws.

    Used to reproduce exact scenarios (e.g. a recorded run, or a test that
    needs maximal negative volatility). With ``cycle=True`` the sequence
    wraps around, otherwise running out raises ``IndexError``.
    """

    def __init__(self, values: Iterable[float], cycle: bool = True) -> None:
        self._values = [float(v) for v in values]
        if not self._values:
            raise ValueError("SequenceRandomSource needs at least one value")
        for value in self._values:
            if not 0.0 <= value < 1.0:
                raise ValueError(f"random draws must lie in [0, 1), got {value}")
        self._cycle = cycle
        self._index = 0

    @property
    def draws(self) -> int:
        """Number of values handed out so far."""
        return self._index

    def random(self) -> float:
        if self._index >= len(self._values) and not self._cycle:
            raise IndexError("SequenceRandomSource exhausted")
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


def make_random_source(seed: int | None = None) -> NumpyRandomSource:
    return NumpyRandomSource(seed)
