from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final, TypeAliasType

from .expr import BinaryOp, SetOp, SetSel, UnaryOp
from .peekable import TokenStream
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
from .token import Lexer, Number, Simple, Token, Unknown


@dataclass(frozen=True)
class ExpectError(Exception):
  type Expectation = TypeAliasType | type | Simple.Kind
  expected: Expectation | tuple[Expectation, ...]
  got: Token | None
  span: slice

  def __str__(self) -> str:
    expected = (
      self.expected if isinstance(self.expected, tuple) else (self.expected,)
    )
    names = [describe(e) for e in expected]
    if len(names) > 1:
      wanted = ", ".join(names[:-1]) + " or " + names[-1]
    else:
      wanted = names[0]
    match self.got:
      case None:
        got = "end of input"
      case Simple(kind, _):
        got = f"'{kind.value}'"
      case Number(_, _):
        got = "number"
      case Unknown(_):
        got = "unknown character"
    return (
      f"error at {self.span.start}..{self.span.stop}: "
      f"expected {wanted}, but found {got}"
    )


def describe(expectation: ExpectError.Expectation) -> str:
  match expectation:
    case Simple.Kind():
      return f"'{expectation.value}'"
    case _ if expectation is Node:
      return "expression"
    case _ if expectation is Number:
      return "number"
    case _:
      return str(expectation)


binary_kinds: Final = (
  Simple.Kind.PLUS,
  Simple.Kind.MINUS,
  Simple.Kind.STAR,
  Simple.Kind.SLASH,
)


@dataclass(frozen=True)
class Parse:
  """
  The outcome of parsing: a tree with holes (`None`) wherever nothing could
  be parsed, plus every problem found, in source order.
  """

  tree: Node | None
  errors: list[ExpectError] = field(default_factory=list)

  def ok(self) -> bool:
    return not self.errors


class Parser:
  lex: TokenStream
  errors: list[ExpectError]

  def __init__(self, tokens: Iterator[Token]):
    self.lex = TokenStream(tokens)
    self.errors = []

  def expect(self, expected: ExpectError.Expectation | tuple, got: Token | None):
    """Records a problem at `got` without consuming it."""
    self.errors.append(ExpectError(expected, got, self.lex.here()))


def parse(source: str) -> Parse:
  """
  Syntax errors are never raised; every one ends up in `Parse.errors`.
  Parenthesised groups still nest on the call stack, so thousands of them
  raise `RecursionError`.
  """
  p = Parser(Lexer(source))
  tree = parse_expr(p)
  if (tok := p.lex.peek(None)) is not None:
    # trailing input: report once and ignore the rest
    p.expect(binary_kinds, tok)
  return Parse(tree, p.errors)


def span_between(
  lhs: Node | None, op: slice, rhs: Node | None, end: int
) -> slice:
  start = lhs.span.start if lhs is not None else op.start
  stop = rhs.span.stop if rhs is not None else max(op.stop, end)
  return slice(start, stop)


def parse_expr(p: Parser, prev_prec: int = 0) -> Node | None:
  """
  Expr ->
    | Expr + Expr
    | Expr - Expr
    | Expr * Expr
    | Expr / Expr
    | UnaryExpr
  """
  lhs = parse_unary_expr(p)
  while isinstance(tok := p.lex.peek(None), Simple):
    match tok.kind:
      case Simple.Kind.PLUS:
        op = BinaryOp.ADD
      case Simple.Kind.MINUS:
        op = BinaryOp.SUB
      case Simple.Kind.STAR:
        op = BinaryOp.MUL
      case Simple.Kind.SLASH:
        op = BinaryOp.DIV
      case _:
        break
    prec = op.prec()
    if prec <= prev_prec:
      break
    next(p.lex)
    rhs = parse_expr(p, prec)
    lhs = BinaryExpr(op, lhs, rhs, span_between(lhs, tok.span, rhs, p.lex.end))
  return lhs


def parse_unary_expr(p: Parser) -> Node | None:
  """
  UnaryExpr ->
    | - UnaryExpr
    | + UnaryExpr
    | AtomExpr
  """
  minuses: list[slice] = []
  while True:
    match p.lex.peek(None):
      case Simple(Simple.Kind.MINUS, span):
        next(p.lex)
        minuses.append(span)
      case Simple(Simple.Kind.PLUS, _):
        next(p.lex)
      case _:
        break
  expr = parse_atom_expr(p)
  # innermost sign first
  for span in reversed(minuses):
    expr = UnaryExpr(
      UnaryOp.NEG, expr, span_between(None, span, expr, p.lex.end)
    )
  return expr


def parse_atom_expr(p: Parser) -> Node | None:
  """
  AtomExpr ->
    | Number
    | Number? d Sides SetOp*
    | ( Expr )
    | ( ) SetOp*
    | ( Expr , (Expr (, Expr)* ,?)? ) SetOp*
  """
  match p.lex.peek(None):
    case Number(value, span):
      next(p.lex)
      match p.lex.peek(None):
        case Simple(Simple.Kind.D, _):
          return parse_dice(p, value, span)
        case _:
          return Literal(value, span)
    case Simple(Simple.Kind.D, _):
      return parse_dice(p, 1, None)
    case Simple(Simple.Kind.LPAR, _):
      return parse_paren_or_set(p)
    case tok:
      p.expect(Node, tok)
      return None


def parse_dice(p: Parser, count: int | None, count_span: slice | None) -> Dice:
  """
  Sides ->
    | Number
    | %
  """
  d = next(p.lex)
  start = count_span.start if count_span is not None else d.span.start
  sides_span = None
  match p.lex.peek(None):
    case Number(sides, sides_span):
      next(p.lex)
    case Simple(Simple.Kind.PERCENT, sides_span):
      next(p.lex)
      sides = 100
    case tok:
      p.expect((Number, Simple.Kind.PERCENT), tok)
      sides = None
  ops = parse_set_ops(p)
  return Dice(
    count,
    sides,
    slice(start, p.lex.end),
    count_span,
    sides_span,
    ops,
  )


def parse_paren_or_set(p: Parser) -> ParenExpr | Set:
  lpar = next(p.lex)
  match p.lex.peek(None):
    case Simple(Simple.Kind.RPAR, _):
      next(p.lex)
      items = []
    case _:
      first = parse_expr(p)
      match p.lex.peek(None):
        case Simple(Simple.Kind.RPAR, _):
          next(p.lex)
          return ParenExpr(first, slice(lpar.span.start, p.lex.end))
        case Simple(Simple.Kind.COMMA, _):
          items = [first] if first is not None else []
          parse_set_items(p, items)
        case tok:
          p.expect((Simple.Kind.RPAR, Simple.Kind.COMMA), tok)
          return ParenExpr(first, slice(lpar.span.start, p.lex.end))
  ops = parse_set_ops(p)
  return Set(items, slice(lpar.span.start, p.lex.end), ops)


def parse_set_items(p: Parser, items: list[Node]):
  """Continues a set after its first item, up to and including `)`."""
  while isinstance(tok := p.lex.peek(None), Simple) and (
    tok.kind == Simple.Kind.COMMA
  ):
    next(p.lex)
    match p.lex.peek(None):
      case Simple(Simple.Kind.RPAR, _):
        break
    if (item := parse_expr(p)) is not None:
      items.append(item)
  match p.lex.peek(None):
    case Simple(Simple.Kind.RPAR, _):
      next(p.lex)
    case tok:
      p.expect((Simple.Kind.RPAR, Simple.Kind.COMMA), tok)


def parse_set_ops(p: Parser) -> list[SetOpNode]:
  """
  SetOp -> Operator Selector? Number
  Operator -> k | p | rr | ro | ra | e | mi | ma
  Selector -> h | l | > | <
  """
  ops = []
  while isinstance(tok := p.lex.peek(None), Simple):
    try:
      op = SetOp[tok.kind.name]
    except KeyError:
      break
    next(p.lex)
    sel = SetSel.NUMBER
    match p.lex.peek(None):
      case Simple(kind, _) if kind.name in SetSel.__members__:
        next(p.lex)
        sel = SetSel[kind.name]
    match p.lex.peek(None):
      case Number(num, num_span):
        next(p.lex)
        ops.append(
          SetOpNode(op, sel, num, slice(tok.span.start, num_span.stop), num_span)
        )
      case got:
        p.expect(Number, got)
        ops.append(SetOpNode(op, sel, None, slice(tok.span.start, p.lex.end)))
  return ops
