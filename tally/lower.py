from dataclasses import dataclass

from loguru import logger

from . import syntax
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
  SetOperation,
  Unary,
)
from .roll import RollContext


@dataclass(frozen=True)
class MissingOperand(Exception):
  """A dice count, dice sides or set-operation number is absent."""

  span: slice


@dataclass(frozen=True)
class ZeroSides(Exception):
  span: slice


@dataclass(frozen=True)
class TooManyDice(Exception):
  span: slice


@dataclass(frozen=True)
class TooManySides(Exception):
  span: slice


class Lowerer:
  """
  Turns a syntax tree into arena nodes. Every die is rolled here, once, in
  source order; children are allocated before their parents.
  """

  db: Database
  ctx: RollContext
  limits: Limits

  def __init__(self, db: Database, ctx: RollContext, limits: Limits):
    self.db = db
    self.ctx = ctx
    self.limits = limits

  def lower(self, node: syntax.Node | None) -> ExprIdx:
    """:raises: MissingOperand, ZeroSides, TooManyDice, TooManySides"""
    match node:
      case None | syntax.Literal(None, _):
        return self.db.alloc(Expression(Missing(), kept=False))
      case syntax.Literal(value, _):
        return self.db.alloc(Expression(Literal([value])))
      case syntax.ParenExpr(inner, _):
        return self.lower(inner)
      case syntax.UnaryExpr(op, inner, _):
        return self.db.alloc(Expression(Unary(op, self.lower(inner))))
      case syntax.BinaryExpr(op, lhs, rhs, _):
        lhs_idx = self.lower(lhs)
        rhs_idx = self.lower(rhs)
        return self.db.alloc(Expression(Binary(op, lhs_idx, rhs_idx)))
      case syntax.Dice() as dice:
        return self.lower_dice(dice)
      case syntax.Set(items, _, ops):
        set_ops = lower_ops(ops)
        item_idxs = [self.lower(item) for item in items]
        return self.db.alloc(Expression(Set(item_idxs, set_ops)))

  def lower_dice(self, node: syntax.Dice) -> ExprIdx:
    count, sides = node.count, node.sides
    if count is None or sides is None:
      raise MissingOperand(node.span)
    if sides == 0:
      raise ZeroSides(node.span)
    if count > self.limits.dice_limit:
      raise TooManyDice(node.span)
    if self.limits.sides_limit is not None and sides > self.limits.sides_limit:
      raise TooManySides(node.span)
    ops = lower_ops(node.ops)
    faces = list(self.ctx.roll_many(sides, count))
    logger.debug(f"rolled {count}d{sides}: {faces}")
    dice = []
    for face in faces:
      face_idx = self.db.alloc(Expression(Literal([face])))
      dice.append(self.db.alloc(Expression(Die(sides, [face_idx]))))
    return self.db.alloc(Expression(Dice(count, sides, dice, ops)))


def lower_ops(ops: list[syntax.SetOpNode]) -> list[SetOperation]:
  result = []
  for op in ops:
    if op.num is None:
      raise MissingOperand(op.span)
    result.append(SetOperation(op.op, op.sel, op.num))
  return result


def lower(
  tree: syntax.Node | None,
  db: Database,
  ctx: RollContext,
  limits: Limits | None = None,
) -> ExprIdx:
  """
  :raises: MissingOperand, ZeroSides, TooManyDice, TooManySides
  """
  return Lowerer(db, ctx, limits or Limits()).lower(tree)
