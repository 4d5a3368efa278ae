from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from .config import Limits
from .database import Database
from .expr import Dice, ExprIdx
from .filter import resolve
from .format import format_expr
from .lower import lower
from .parse import parse
from .roll import RollContext
from .syntax import Node
from .total import total
from .validation import validate


@dataclass(frozen=True)
class RollResult:
  db: Database
  root: ExprIdx
  total: int

  def format(self, width: int | None = None) -> str:
    return format_expr(self.db, self.root, width)

  def dice(self) -> Iterator[tuple[ExprIdx, Dice]]:
    """Every group of dice that was rolled, in the order it was rolled."""
    for idx, expr in self.db:
      if isinstance(expr.kind, Dice):
        yield idx, expr.kind

  def __str__(self) -> str:
    return f"{self.format()} = {self.total}"


def roll(
  source: str,
  ctx: RollContext | None = None,
  limits: Limits | None = None,
) -> RollResult:
  """
  Parses, rolls and totals `source`. Without `ctx`, the dice are rolled from
  fresh OS entropy.

  :raises: ExpectError, ValidationError, MissingOperand, ZeroSides,
    TooManyDice, TooManySides, IncompatibleSetOperation, InvalidSetOperation,
    TooManyRerolls, DivideByZero
  """
  parsed = parse(source)
  if parsed.errors:
    raise parsed.errors[0]
  return roll_tree(parsed.tree, ctx or RollContext.from_seed(), limits)


def roll_tree(
  tree: Node | None, ctx: RollContext, limits: Limits | None = None
) -> RollResult:
  """
  Rolls an already parsed tree. Holes in it count as 0.

  :raises: the same as `roll`, except `ExpectError`
  """
  if errors := validate(tree):
    raise errors[0]
  limits = limits or Limits()
  db = Database()
  root = lower(tree, db, ctx, limits)
  resolve(db, root, ctx, limits)
  result = RollResult(db, root, total(db, root))
  logger.debug(f"rolled {len(db)} nodes, total {result.total}")
  return result
