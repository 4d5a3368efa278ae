from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ExprIdx:
  """Position of an `Expression` inside the `Database` that allocated it."""

  arena: int
  raw: int

  def __repr__(self) -> str:
    return f"ExprIdx({self.raw})"


class BinaryOp(Enum):
  ADD = "+"
  SUB = "-"
  MUL = "*"
  DIV = "/"

  def prec(self):
    match self:
      case self.MUL | self.DIV:
        return 2
      case self.ADD | self.SUB:
        return 1


class UnaryOp(Enum):
  NEG = "-"


class SetOp(Enum):
  KEEP = "k"
  DROP = "p"
  REROLL = "rr"
  REROLL_ONCE = "ro"
  REROLL_ADD = "ra"
  EXPLODE = "e"
  MIN = "mi"
  MAX = "ma"


class SetSel(Enum):
  NUMBER = ""
  HIGHEST = "h"
  LOWEST = "l"
  GREATER = ">"
  LESS = "<"


@dataclass(frozen=True)
class SetOperation:
  op: SetOp
  sel: SetSel
  num: int

  def __str__(self) -> str:
    return f"{self.op.value}{self.sel.value}{self.num}"


# Expression kinds


@dataclass
class Missing:
  pass


@dataclass
class Literal:
  values: list[int]
  """only the last value is live; earlier ones were overwritten by min/max"""
  exploded: bool = False


@dataclass
class Binary:
  op: BinaryOp
  lhs: ExprIdx
  rhs: ExprIdx


@dataclass
class Unary:
  op: UnaryOp
  expr: ExprIdx


@dataclass
class Die:
  sides: int
  values: list[ExprIdx]
  """face literals, oldest first; superseded faces are dropped, not removed"""


@dataclass
class Dice:
  count: int
  sides: int
  values: list[ExprIdx] = field(default_factory=list)
  """one `Die` per rolled die"""
  ops: list[SetOperation] = field(default_factory=list)


@dataclass
class Set:
  items: list[ExprIdx]
  ops: list[SetOperation] = field(default_factory=list)


type ExprKind = Missing | Literal | Binary | Unary | Die | Dice | Set


@dataclass
class Expression:
  kind: ExprKind
  kept: bool = True

  def drop(self):
    self.kept = False
