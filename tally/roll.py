from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np


@dataclass
class RollContext:
  """
  The single random stream of one roll. Results depend only on the seed and
  on the order of calls, so a seeded context reproduces a roll exactly.
  """

  gen: np.random.Generator

  @classmethod
  def from_seed(cls, seed: int | None = None) -> "RollContext":
    """`seed=None` draws fresh entropy from the OS"""
    return cls(np.random.Generator(np.random.SFC64(seed)))

  def roll(self, sides: int) -> int:
    """Uniform in `[1, sides]`; `sides` must be positive."""
    return int(self.gen.integers(1, sides, endpoint=True, dtype=np.uint64))

  def roll_many(self, sides: int, count: int) -> Iterator[int]:
    # drawn one at a time so that the stream is consumed identically to
    # `count` separate calls of `roll`
    for _ in range(count):
      yield self.roll(sides)
