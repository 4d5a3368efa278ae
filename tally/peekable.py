from collections.abc import Iterator
from typing import cast, overload

from .token import Token


class TokenStream:
  """
  A one-token lookahead over a `Lexer`, remembering where the last consumed
  token ended so that errors at the end of input still get a span.
  """

  inner: Iterator[Token]
  has_next: bool
  next: Token | None
  end: int

  def __init__(self, inner: Iterator[Token]):
    self.inner = inner
    self.has_next = False
    self.next = None
    self.end = 0

  def __iter__(self):
    return self

  def __next__(self) -> Token:
    if self.has_next:
      result = cast(Token, self.next)
      self.has_next = False
      self.next = None
    else:
      result = self.inner.__next__()
    self.end = result.span.stop
    return result

  @overload
  def peek(self) -> Token: ...
  @overload
  def peek[U](self, default: U, /) -> Token | U: ...
  def peek(self, *args):
    if self.has_next:
      return cast(Token, self.next)
    else:
      try:
        self.next = next(self.inner)
      except StopIteration:
        if args == ():
          raise
        else:
          return args[0]
      self.has_next = True
      return self.next

  def here(self) -> slice:
    """Span of the next token, or an empty span at the end of input."""
    match self.peek(None):
      case None:
        return slice(self.end, self.end)
      case tok:
        return tok.span
