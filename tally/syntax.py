from dataclasses import dataclass, field

from .expr import BinaryOp, SetOp, SetSel, UnaryOp

# Every operand slot may be `None` (nothing could be parsed there) and every
# number may be `None`. A `None` number with a span was present in the source
# but does not fit in u64; without a span it was absent.

type Node = BinaryExpr | UnaryExpr | ParenExpr | Literal | Dice | Set


@dataclass(frozen=True)
class Literal:
  value: int | None
  span: slice


@dataclass(frozen=True)
class SetOpNode:
  op: SetOp
  sel: SetSel
  num: int | None
  span: slice
  num_span: slice | None = None


@dataclass(frozen=True)
class Dice:
  count: int | None
  sides: int | None
  span: slice
  count_span: slice | None = None
  sides_span: slice | None = None
  ops: list[SetOpNode] = field(default_factory=list)


@dataclass(frozen=True)
class Set:
  items: list[Node]
  span: slice
  ops: list[SetOpNode] = field(default_factory=list)


@dataclass(frozen=True)
class BinaryExpr:
  op: BinaryOp
  lhs: Node | None
  rhs: Node | None
  span: slice


@dataclass(frozen=True)
class UnaryExpr:
  op: UnaryOp
  inner: Node | None
  span: slice


@dataclass(frozen=True)
class ParenExpr:
  inner: Node | None
  span: slice
