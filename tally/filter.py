import itertools
from dataclasses import dataclass
from typing import Final

from loguru import logger

from .config import Limits
from .database import Database
from .expr import (
  Binary,
  Dice,
  Die,
  Expression,
  ExprIdx,
  Literal,
  Missing,
  Set,
  SetOp,
  SetOperation,
  SetSel,
  Unary,
)
from .roll import RollContext
from .total import total


@dataclass(frozen=True)
class IncompatibleSetOperation(Exception):
  """An operation paired with a selector it cannot use, e.g. `rrh1`."""

  idx: ExprIdx
  operation: SetOperation


@dataclass(frozen=True)
class InvalidSetOperation(Exception):
  """Anything but keep or drop applied to a set."""

  idx: ExprIdx
  operation: SetOperation


@dataclass(frozen=True)
class TooManyRerolls(Exception):
  idx: ExprIdx
  operation: SetOperation


incompatible_selectors: Final = {
  SetOp.REROLL: frozenset((SetSel.HIGHEST, SetSel.LOWEST)),
  SetOp.MIN: frozenset(
    (SetSel.HIGHEST, SetSel.LOWEST, SetSel.GREATER, SetSel.LESS)
  ),
  SetOp.MAX: frozenset(
    (SetSel.HIGHEST, SetSel.LOWEST, SetSel.GREATER, SetSel.LESS)
  ),
}

set_ops: Final = frozenset((SetOp.KEEP, SetOp.DROP))


def check_operation(idx: ExprIdx, expr: Expression, operation: SetOperation):
  """:raises: IncompatibleSetOperation, InvalidSetOperation"""
  if operation.sel in incompatible_selectors.get(operation.op, ()):
    raise IncompatibleSetOperation(idx, operation)
  if isinstance(expr.kind, Set) and operation.op not in set_ops:
    raise InvalidSetOperation(idx, operation)


def validate_operations(db: Database):
  """
  Checks every operation in the arena, so that a bad one is reported before
  anything is rerolled or dropped.

  :raises: IncompatibleSetOperation, InvalidSetOperation
  """
  for idx, expr in db:
    match expr.kind:
      case Dice(_, _, _, ops) | Set(_, ops):
        for operation in ops:
          check_operation(idx, expr, operation)


def select(
  db: Database,
  children: list[ExprIdx],
  operation: SetOperation,
  max_targets: int | None = None,
) -> set[ExprIdx]:
  """
  The children `operation` targets, judged by their current totals.

  Rank selectors take `num` children, ties going to the earlier one. Value
  selectors take every match in order, at most `max_targets` of them
  (default `num`).
  """
  num = operation.num
  if max_targets is None:
    max_targets = num
  totals = [total(db, child) for child in children]
  match operation.sel:
    case SetSel.HIGHEST:
      # sorted() is stable, so equal totals keep their original order
      order = sorted(range(len(children)), key=lambda i: -totals[i])
      chosen = order[:num]
    case SetSel.LOWEST:
      order = sorted(range(len(children)), key=lambda i: totals[i])
      chosen = order[:num]
    case SetSel.NUMBER:
      chosen = (i for i, t in enumerate(totals) if t == num)
    case SetSel.GREATER:
      chosen = (i for i, t in enumerate(totals) if t > num)
    case SetSel.LESS:
      chosen = (i for i, t in enumerate(totals) if t < num)
  return {children[i] for i in itertools.islice(chosen, max_targets)}


class Resolver:
  """
  Applies set operations in place. Each node is resolved after all of its
  descendants, and its operations run strictly in the order written.
  """

  db: Database
  ctx: RollContext
  limits: Limits

  def __init__(self, db: Database, ctx: RollContext, limits: Limits):
    self.db = db
    self.ctx = ctx
    self.limits = limits

  def resolve(self, idx: ExprIdx):
    expr = self.db.get(idx)
    match expr.kind:
      case Missing() | Literal() | Die():
        pass
      case Binary(_, lhs, rhs):
        self.resolve(lhs)
        self.resolve(rhs)
      case Unary(_, inner):
        self.resolve(inner)
      case Dice(_, _, dice, ops):
        for operation in ops:
          self.operate_on_dice(idx, dice, operation)
      case Set(items, ops):
        for item in items:
          self.resolve(item)
        for operation in ops:
          check_operation(idx, expr, operation)
          self.keep_or_drop(items, operation)

  def live(self, children: list[ExprIdx]) -> list[ExprIdx]:
    return [child for child in children if self.db.get(child).kept]

  def operate_on_dice(
    self, idx: ExprIdx, dice: list[ExprIdx], operation: SetOperation
  ):
    logger.debug(f"applying {operation} to {idx!r}")
    match operation.op:
      case SetOp.KEEP | SetOp.DROP:
        self.keep_or_drop(dice, operation)
      case SetOp.REROLL:
        # a dropped die always totals 0, so it would never stop qualifying
        rounds = 0
        while to_reroll := select(self.db, self.live(dice), operation):
          if rounds >= self.limits.reroll_limit:
            raise TooManyRerolls(idx, operation)
          for die in dice:
            if die in to_reroll:
              self.reroll(die)
          rounds += 1
      case SetOp.REROLL_ONCE:
        to_reroll = select(self.db, dice, operation)
        for die in dice:
          if die in to_reroll:
            self.reroll(die)
      case SetOp.EXPLODE:
        exploded: set[ExprIdx] = set()
        while to_explode := select(self.db, dice, operation) - exploded:
          for die in dice:
            if die in to_explode:
              self.explode(die)
          exploded |= to_explode
      case SetOp.REROLL_ADD:
        to_explode = select(self.db, dice, operation)
        for die in dice:
          if die in to_explode:
            self.explode(die)
      case SetOp.MIN:
        for die in self.live(dice):
          if total(self.db, die) < operation.num:
            self.force_value(die, operation.num)
      case SetOp.MAX:
        for die in self.live(dice):
          if total(self.db, die) > operation.num:
            self.force_value(die, operation.num)

  def keep_or_drop(self, children: list[ExprIdx], operation: SetOperation):
    selection = select(self.db, children, operation)
    is_drop = operation.op == SetOp.DROP
    for child in children:
      if (child in selection) == is_drop:
        self.db.get_mut(child).drop()

  def die_of(self, idx: ExprIdx) -> Die:
    match self.db.get_mut(idx).kind:
      case Die() as die:
        return die
      case kind:
        raise TypeError(f"{idx!r} is not a die: {kind}")

  def roll_face(self, die: Die) -> ExprIdx:
    return self.db.alloc(Expression(Literal([self.ctx.roll(die.sides)])))

  def reroll(self, idx: ExprIdx):
    """Replaces the live face; the old one stays, dropped."""
    die = self.die_of(idx)
    self.db.get_mut(die.values[-1]).drop()
    die.values.append(self.roll_face(die))
    logger.debug(f"rerolled {idx!r}: {total(self.db, idx)}")

  def explode(self, idx: ExprIdx):
    """Adds a face on top of the live one."""
    die = self.die_of(idx)
    match self.db.get_mut(die.values[-1]).kind:
      case Literal() as face:
        face.exploded = True
    die.values.append(self.roll_face(die))
    logger.debug(f"exploded {idx!r}: {total(self.db, idx)}")

  def force_value(self, idx: ExprIdx, num: int):
    die = self.die_of(idx)
    *earlier, live = die.values
    for face in earlier:
      self.db.get_mut(face).drop()
    match self.db.get_mut(live).kind:
      case Literal() as face:
        face.values.append(num)


def resolve(
  db: Database,
  root: ExprIdx,
  ctx: RollContext,
  limits: Limits | None = None,
):
  """
  Validates every operation in `db`, then applies them under `root`.

  :raises: IncompatibleSetOperation, InvalidSetOperation, TooManyRerolls,
    DivideByZero
  """
  validate_operations(db)
  Resolver(db, ctx, limits or Limits()).resolve(root)
