from pydantic import BaseModel, PositiveInt


class Limits(BaseModel):
  """Bounds on the work a single expression may ask for."""

  reroll_limit: PositiveInt = 50
  """rounds of `rr` before giving up with `TooManyRerolls`"""
  dice_limit: PositiveInt = 1 << 17
  """dice a single `NdS` may roll"""
  sides_limit: PositiveInt | None = None
