"""Uniform random sources injected into every generator."""

import random
from typing import Optional, Protocol


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a float in [0, 1)."""
        ...


class SeededRandom:
    """Mersenne Twister source; the default for a run."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def next(self) -> float:
        return self._rng.random()


class LinearCongruential:
    """``z = (A*z + C) mod M``, yielding ``z / M``.

    The defaults reproduce the classic classroom priority sequence.
    """

    def __init__(self, seed: int = 10112166, a: int = 55, c: int = 9, m: int = 1994):
        if m <= 0:
            raise ValueError("modulus must be > 0")
        self.a = a
        self.c = c
        self.m = m
        self.z = seed

    def next(self) -> float:
        self.z = (self.a * self.z + self.c) % self.m
        return self.z / self.m


class ReplaySource:
    """Replays a fixed list of uniforms; raises once exhausted."""

    def __init__(self, values):
        self._values = list(values)
        self._pos = 0

    def next(self) -> float:
        if self._pos >= len(self._values):
            raise IndexError("replay source exhausted")
        value = self._values[self._pos]
        self._pos += 1
        return value
