from collections.abc import Generator

from .database import Database
from .expr import (
  Binary,
  BinaryOp,
  Dice,
  Die,
  ExprIdx,
  ExprKind,
  Literal,
  Missing,
  Set,
  Unary,
)

# A breakdown is produced piece by piece. The consumer sends back whether the
# text so far is too long, and lists cut themselves short with "…" when it is.
type Pieces = Generator[str, bool, None]


def format_expr(db: Database, idx: ExprIdx, width: int | None = None) -> str:
  """
  Renders the node at `idx` with every roll it made, e.g. `2d20kh1 (~~3~~,
  17) + 5`. Dropped nodes are struck through with `~~`.
  """
  pieces = format_node(db, idx)
  result = next(pieces)
  while True:
    try:
      result += pieces.send(width is not None and len(result) > width)
    except StopIteration:
      return result


def format_node(db: Database, idx: ExprIdx, struck: bool = False) -> Pieces:
  expr = db.get(idx)
  if not expr.kept and not struck and not isinstance(expr.kind, Missing):
    yield "~~"
    yield from format_kind(db, expr.kind, True)
    yield "~~"
  else:
    yield from format_kind(db, expr.kind, struck)


def format_kind(db: Database, kind: ExprKind, struck: bool) -> Pieces:
  match kind:
    case Missing():
      yield "?"
    case Literal(values, exploded):
      if not struck:
        for old in values[:-1]:
          yield f"~~{old}~~ "
      yield str(values[-1]) if values else "?"
      if exploded:
        yield "!"
    case Die(_, []):
      yield "?"
    case Die(_, faces):
      it = iter(faces)
      yield from format_node(db, next(it), struck)
      for face in it:
        yield " "
        yield from format_node(db, face, struck)
    case Dice(count, sides, dice, ops):
      yield f"{count}d{sides}{"".join(str(op) for op in ops)} "
      yield from format_list(db, dice, struck)
    case Set(items, ops):
      yield from format_list(db, items, struck, singleton_comma=True)
      yield "".join(str(op) for op in ops)
    case Binary(op, lhs, rhs):
      yield from format_operand(db, lhs, op, False, struck)
      yield f" {op.value} "
      yield from format_operand(db, rhs, op, True, struck)
    case Unary(op, inner):
      yield op.value
      if isinstance(db.get(inner).kind, Binary):
        yield "("
        yield from format_node(db, inner, struck)
        yield ")"
      else:
        yield from format_node(db, inner, struck)


def format_list(
  db: Database,
  idxs: list[ExprIdx],
  struck: bool,
  singleton_comma: bool = False,
) -> Pieces:
  if not idxs:
    yield "()"
    return
  yield "("
  it = iter(idxs)
  yield from format_node(db, next(it), struck)
  if singleton_comma and len(idxs) == 1:
    yield ","
  for idx in it:
    too_long = yield ", "
    if too_long:
      yield "…)"
      return
    yield from format_node(db, idx, struck)
  yield ")"


def format_operand(
  db: Database, idx: ExprIdx, parent: BinaryOp, is_rhs: bool, struck: bool
) -> Pieces:
  match db.get(idx).kind:
    case Binary(op, _, _) if op.prec() < parent.prec() or (
      is_rhs
      and op.prec() == parent.prec()
      and parent in (BinaryOp.SUB, BinaryOp.DIV)
    ):
      yield "("
      yield from format_node(db, idx, struck)
      yield ")"
    case _:
      yield from format_node(db, idx, struck)
