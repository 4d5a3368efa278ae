import numpy as np
import pytest

from tally.roll import RollContext


class ScriptedContext(RollContext):
  """Hands out predetermined faces, in order, instead of random ones."""

  faces: list[int]

  def __init__(self, faces: list[int]):
    super().__init__(np.random.Generator(np.random.SFC64(0)))
    self.faces = list(faces)

  def roll(self, sides: int) -> int:
    assert self.faces, "ran out of scripted faces"
    face = self.faces.pop(0)
    assert 1 <= face <= sides, f"cannot roll {face} on a d{sides}"
    return face


@pytest.fixture
def scripted():
  return ScriptedContext
