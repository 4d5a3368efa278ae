from dataclasses import dataclass

from .database import Database
from .expr import (
  Binary,
  BinaryOp,
  Dice,
  Die,
  ExprIdx,
  Literal,
  Missing,
  Set,
  Unary,
  UnaryOp,
)


@dataclass(frozen=True)
class DivideByZero(Exception):
  idx: ExprIdx


@dataclass(frozen=True)
class NoValues(Exception):
  """A literal or die that was never rolled."""

  idx: ExprIdx


def total(db: Database, idx: ExprIdx) -> int:
  """
  Pure: never rolls and never mutates. Dropped nodes count as 0.

  :raises: DivideByZero, NoValues
  """
  expr = db.get(idx)
  if not expr.kept:
    return 0
  match expr.kind:
    case Missing():
      return 0
    case Literal(values, _):
      if not values:
        raise NoValues(idx)
      return values[-1]
    case Binary(op, lhs, rhs):
      a = total(db, lhs)
      b = total(db, rhs)
      match op:
        case BinaryOp.ADD:
          return a + b
        case BinaryOp.SUB:
          return a - b
        case BinaryOp.MUL:
          return a * b
        case BinaryOp.DIV:
          if b == 0:
            raise DivideByZero(idx)
          return truncating_div(a, b)
    case Unary(UnaryOp.NEG, inner):
      return -total(db, inner)
    case Die(_, faces):
      if not faces:
        raise NoValues(idx)
      # a rerolled face is dropped, an exploded one stays kept
      return sum(total(db, face) for face in faces)
    case Dice(_, _, dice, _):
      return sum(total(db, die) for die in dice)
    case Set(items, _):
      return sum(total(db, item) for item in items)


def truncating_div(a: int, b: int) -> int:
  q = abs(a) // abs(b)
  return q if (a < 0) == (b < 0) else -q
