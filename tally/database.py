import itertools
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Final

from .expr import Expression, ExprIdx

arena_ids: Final = itertools.count()


@dataclass(frozen=True)
class ForeignIndex(Exception):
  idx: ExprIdx


class Database:
  """
  Append-only arena owning every `Expression` of one roll.

  Nodes refer to each other only through `ExprIdx`, so rerolling, exploding
  or dropping a node mutates it in place and never invalidates an index.
  """

  id: int
  exprs: list[Expression]

  def __init__(self):
    self.id = next(arena_ids)
    self.exprs = []

  def alloc(self, expr: Expression) -> ExprIdx:
    self.exprs.append(expr)
    return ExprIdx(self.id, len(self.exprs) - 1)

  def get(self, idx: ExprIdx) -> Expression:
    """:raises: ForeignIndex"""
    if idx.arena != self.id or not 0 <= idx.raw < len(self.exprs):
      raise ForeignIndex(idx)
    return self.exprs[idx.raw]

  def get_mut(self, idx: ExprIdx) -> Expression:
    """Same as `get`, for call sites that mutate the node."""
    return self.get(idx)

  def __getitem__(self, idx: ExprIdx) -> Expression:
    return self.get(idx)

  def __len__(self) -> int:
    return len(self.exprs)

  def __iter__(self) -> Iterator[tuple[ExprIdx, Expression]]:
    for raw, expr in enumerate(self.exprs):
      yield ExprIdx(self.id, raw), expr
