from dataclasses import dataclass, replace
import re
from typing import Final


@dataclass
class RollArgs:
  expr: str
  quiet: bool = False
  repeat: int = 1
  seed: int | None = None


@dataclass
class Help:
  full: bool


@dataclass
class MissingDiceExpr(Exception):
  pass


@dataclass
class MissingRepeatCount(Exception):
  option: str


@dataclass
class MalformedRepeatCount(Exception):
  option: str


@dataclass
class DuplicateRepeats(Exception):
  options: list[str]


@dataclass
class MalformedSeed(Exception):
  option: str


@dataclass
class Break(Exception):
  pass


option_regex: Final = re.compile(r"(?:^|\s+)((--?)([^-]*$))")


def parse_seed(option: str, rest: str) -> int:
  """:raises: MalformedSeed"""
  try:
    seed = int(rest)
  except ValueError:
    raise MalformedSeed(option)
  if seed < 0:
    raise MalformedSeed(option)
  return seed


def parse_args(args: str):
  """
  Options come last and are peeled off from the right; whatever remains is
  the dice expression.

  :raises: MissingDiceExpr, MissingRepeatCount, MalformedRepeatCount,
    DuplicateRepeats, MalformedSeed
  """
  result = RollArgs("")
  dup_repeats = []
  while (m := option_regex.search(args)) is not None:
    (full_option, leader, option) = m.groups()
    if leader == "-":  # short options
      new_result = replace(result)
      try:
        for i, c in enumerate(option):
          match c:
            case "q":
              new_result.quiet = True
            case "h":
              return Help(full=False)
            case "r":
              rest = option[i + 1 :].strip()
              if len(rest) == 0:
                raise MissingRepeatCount(full_option)
              try:
                new_result.repeat = int(rest)
              except ValueError:
                raise MalformedRepeatCount(leader + option[: i + 1])
              dup_repeats.append(full_option)
              break
            case _:
              raise Break
      except Break:
        break
      result = new_result
    elif leader == "--":  # long options
      match option.rstrip():
        case "quiet":
          result.quiet = True
        case "help":
          return Help(full=True)
        case option if option.startswith("repeat"):
          rest = option[6:].strip()
          if len(rest) == 0:
            raise MissingRepeatCount(full_option)
          try:
            result.repeat = int(rest)
          except ValueError:
            raise MalformedRepeatCount("--repeat")
          dup_repeats.append(full_option)
        case option if option.startswith("seed"):
          result.seed = parse_seed("--seed", option[4:].strip())
        case _:
          break
    else:
      assert False, "impossible"
    start = m.start()
    args = args[:start]
  result.expr = args.strip()
  if len(result.expr) == 0:
    raise MissingDiceExpr
  if len(dup_repeats) > 1:
    dup_repeats.reverse()
    raise DuplicateRepeats(dup_repeats)
  return result
