import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

type Token = Simple | Number | Unknown


@dataclass(frozen=True)
class Simple:
  class Kind(Enum):
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    LPAR = "("
    RPAR = ")"
    COMMA = ","
    D = "d"
    KEEP = "k"
    DROP = "p"
    REROLL = "rr"
    REROLL_ONCE = "ro"
    REROLL_ADD = "ra"
    EXPLODE = "e"
    MIN = "mi"
    MAX = "ma"
    HIGHEST = "h"
    LOWEST = "l"
    GREATER = ">"
    LESS = "<"

  kind: Kind
  span: slice


@dataclass(frozen=True)
class Number:
  value: int | None
  """`None` when the literal does not fit in an unsigned 64-bit integer"""
  span: slice


@dataclass(frozen=True)
class Unknown:
  span: slice


u64_max: Final = (1 << 64) - 1

possible_lengths: Final = sorted(
  {len(kind.value) for kind in Simple.Kind}, reverse=True
)
space_regex: Final = re.compile(r"\s*")
number_regex: Final = re.compile(r"\d+")


class Lexer:
  source: str
  cursor: int

  def __init__(self, source: str):
    self.source = source
    self.cursor = 0

  def __iter__(self):
    return self

  def __next__(self) -> Token:
    if self.cursor >= len(self.source):
      raise StopIteration
    if (spaces := space_regex.match(self.source, self.cursor)) is not None:
      self.cursor = spaces.end()
      if self.cursor >= len(self.source):
        raise StopIteration
    if (number := number_regex.match(self.source, self.cursor)) is not None:
      self.cursor = number.end()
      digits = number.group()
      # u64_max has 20 digits; also keeps int() away from huge strings
      value = int(digits) if len(digits) <= 20 else None
      if value is not None and value > u64_max:
        value = None
      return Number(value, slice(*number.span()))
    remaining_length = len(self.source) - self.cursor
    for length in possible_lengths:
      if length > remaining_length:
        continue
      try:
        kind = Simple.Kind(self.source[self.cursor : self.cursor + length])
        break
      except ValueError:
        pass
    else:
      pos = self.cursor
      self.cursor += 1
      return Unknown(slice(pos, self.cursor))
    span = slice(self.cursor, self.cursor + length)
    self.cursor = span.stop
    return Simple(kind, span)
