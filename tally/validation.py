from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from .syntax import (
  BinaryExpr,
  Dice,
  Literal,
  Node,
  ParenExpr,
  Set,
  SetOpNode,
  UnaryExpr,
)


@dataclass(frozen=True)
class ValidationError(Exception):
  class Kind(Enum):
    NUMBER_TOO_LARGE = "number too large"
    ZERO_SIDES = "dice must have at least one side"

  kind: Kind
  span: slice

  def __str__(self) -> str:
    return f"error at {self.span.start}..{self.span.stop}: {self.kind.value}"


def validate(tree: Node | None) -> list[ValidationError]:
  """All problems of `tree`, in source order."""
  return sorted(check(tree), key=lambda err: err.span.start)


def check(node: Node | None) -> Iterator[ValidationError]:
  match node:
    case None:
      pass
    case Literal(None, span):
      yield ValidationError(ValidationError.Kind.NUMBER_TOO_LARGE, span)
    case Literal():
      pass
    case Dice(count, sides, span, count_span, sides_span, ops):
      if count is None and count_span is not None:
        yield ValidationError(ValidationError.Kind.NUMBER_TOO_LARGE, count_span)
      match sides:
        case None if sides_span is not None:
          yield ValidationError(
            ValidationError.Kind.NUMBER_TOO_LARGE, sides_span
          )
        case 0:
          yield ValidationError(
            ValidationError.Kind.ZERO_SIDES,
            sides_span if sides_span is not None else span,
          )
      yield from check_ops(ops)
    case Set(items, _, ops):
      for item in items:
        yield from check(item)
      yield from check_ops(ops)
    case BinaryExpr(_, lhs, rhs, _):
      yield from check(lhs)
      yield from check(rhs)
    case UnaryExpr(_, inner, _) | ParenExpr(inner, _):
      yield from check(inner)


def check_ops(ops: list[SetOpNode]) -> Iterator[ValidationError]:
  for op in ops:
    if op.num is None and op.num_span is not None:
      yield ValidationError(ValidationError.Kind.NUMBER_TOO_LARGE, op.num_span)
