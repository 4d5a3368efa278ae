import os
import textwrap
import traceback
from typing import Final, assert_never

import nonebot as nb
import nonebot.adapters as nba
import nonebot.adapters.onebot.v11 as ob11
import nonebot.params as nbp
from pydantic import BaseModel, PositiveInt

from tally.config import Limits
from tally.evaluate import RollResult, roll
from tally.filter import (
  IncompatibleSetOperation,
  InvalidSetOperation,
  TooManyRerolls,
)
from tally.lower import MissingOperand, TooManyDice, TooManySides, ZeroSides
from tally.parse import ExpectError
from tally.roll import RollContext
from tally.syntax import Node
from tally.token import Number, Simple, Unknown
from tally.total import DivideByZero
from tally.validation import ValidationError

from .argparse import (
  DuplicateRepeats,
  Help,
  MalformedRepeatCount,
  MalformedSeed,
  MissingDiceExpr,
  MissingRepeatCount,
  RollArgs,
  parse_args,
)


class Config(BaseModel):
  bot_uin: str
  line_limit: int = 80
  msg_limit: int = 200
  rep_limit: int = 20
  reroll_limit: PositiveInt = 50
  dice_limit: PositiveInt = 1 << 17
  sides_limit: PositiveInt | None = None


config: Final = nb.get_plugin_config(Config)

limits: Final = Limits(
  reroll_limit=config.reroll_limit,
  dice_limit=config.dice_limit,
  sides_limit=config.sides_limit,
)

full_help_res_id: str | None = None

on_roll = nb.on_command("roll", aliases={"r"}, block=True)


@on_roll.handle()
async def handle_roll(
  bot: nba.Bot, evt: nba.Event, arg: nba.Message = nbp.CommandArg()
):
  global full_help_res_id
  if not all(seg.is_text() for seg in arg):
    await on_roll.finish("不要在掷骰命令里夹杂非文本内容！需要帮助请用 .r -h")
  # begin parse args
  try:
    parsed = parse_args(arg.extract_plain_text())
  except MissingDiceExpr:
    await on_roll.finish("请问是要让我骰什么？需要讲解格式的话请用 .r -h")
  except MissingRepeatCount as ex:
    await on_roll.finish(
      f"请在 {ex.option} 后面给出需要重复的次数！需要帮助请用 .r -h"
    )
  except MalformedRepeatCount as ex:
    await on_roll.finish(
      f"{ex.option} 后面必须是正确的数字！需要帮助请用 .r -h"
    )
  except DuplicateRepeats as ex:
    await on_roll.finish(
      f"你给出了多个不同的重复次数：{"，".join(ex.options)}。到底以哪个为准？"
    )
  except MalformedSeed as ex:
    await on_roll.finish(
      f"{ex.option} 后面必须是一个非负整数！需要帮助请用 .r -h"
    )
  # end parse args
  match parsed:
    case RollArgs() as args:
      if args.repeat == 0:
        await on_roll.finish("重复 0 次，意思就是什么都不用做咯？")
      if args.repeat > config.rep_limit:
        await on_roll.finish(
          "想让我多陪一会可以直说，没必要用这么多次掷骰拖时间~"
        )
      expr = args.expr.lower()
      ctx = RollContext.from_seed(args.seed)
      # begin roll
      results: list[RollResult] = []
      try:
        for _ in range(args.repeat):
          results.append(roll(expr, ctx, limits))
      except Exception as ex:
        await on_roll.finish(error_message(args.expr, ex))
      # end roll
      # begin compose message
      msg: list[nba.Message | str]
      if isinstance(evt, ob11.GroupMessageEvent):
        msg = [ob11.MessageSegment.at(evt.get_user_id()) + " 的掷骰结果如下"]
      else:
        msg = ["掷骰结果如下"]
      if args.repeat == 1:
        msg[-1] += "：\n"
        msg[-1] += compose_message(results[0], args.quiet)
      else:
        msg[-1] += "\n"
        for i, result in enumerate(results):
          msg[-1] += f"第 {i + 1} 次掷骰：\n"
          msg[-1] += compose_message(result, args.quiet)
          if i < args.repeat - 1:
            if len(msg[-1]) > config.msg_limit:
              msg.append("")
            else:
              msg[-1] += "\n"
      # end compose message
      for m in msg:
        if isinstance(m, ob11.Message):
          m.reduce()
        await on_roll.send(m)
    case Help(full):
      if full:
        if isinstance(evt, ob11.GroupMessageEvent):
          if full_help_res_id is None:
            res_id = await bot.call_api(
              "send_forward_msg", messages=full_help_forward_msg
            )
            full_help_res_id = res_id
          else:
            res_id = full_help_res_id
          await on_roll.finish(ob11.MessageSegment.forward(res_id))
        else:
          for seg in full_help:
            await on_roll.send(seg)
      else:
        await on_roll.finish(short_help)
    case never:
      assert_never(never)


def compose_message(result: RollResult, quiet: bool) -> str:
  if quiet:
    return str(result.total)
  breakdown = result.format(config.line_limit)
  if breakdown == str(result.total):
    return breakdown
  elif len(breakdown) < config.line_limit:
    return f"{breakdown} = {result.total}"
  else:
    return f"{breakdown}\n= {result.total}"


def quote(expr: str, span: slice) -> str:
  return f"“{expr[span].strip()}”"


def error_message(expr: str, ex: Exception) -> str:
  match ex:
    case ExpectError(expected, got, span):
      return expect_error_message(expr, expected, got, span)
    case ValidationError(ValidationError.Kind.NUMBER_TOO_LARGE, span):
      return f"{quote(expr, span)}这个数字太大了，我数不过来"
    case (
      ValidationError(ValidationError.Kind.ZERO_SIDES, span) | ZeroSides(span)
    ):
      return f"{quote(expr, span)}坍缩成黑洞吞噬了你，你死了"
    case MissingOperand(span):
      return f"{quote(expr, span)}里缺少了数字！需要帮助请用 .r -h"
    case TooManyDice(span):
      return f"{quote(expr, span)}产生的巨量骰子充满了整个房间，你被挤压而死"
    case TooManySides(span):
      return f"{quote(expr, span)}中巨量的面淹没了你，你淹死了"
    case IncompatibleSetOperation(_, operation):
      return f"“{operation}”这种选择方式没有意义！需要帮助请用 .r -h"
    case InvalidSetOperation(_, operation):
      return f"括号里的一组表达式只能用 k 或 p 来挑选，不能用“{operation}”"
    case TooManyRerolls(_, operation):
      return f"“{operation}”的重骰次数太多了！"
    case DivideByZero():
      return "除数是零，这道题我算不出来"
    case _:
      nb.logger.exception("unexpected error while rolling")
      return "掷骰和运算过程中发生了意料之外的异常：\n" + "".join(
        traceback.format_exception(ex)
      ).replace(os.getcwd(), ".")


def expect_error_message(
  expr: str,
  expected: ExpectError.Expectation | tuple[ExpectError.Expectation, ...],
  got: Simple | Number | Unknown | None,
  span: slice,
) -> str:
  match got:
    case None:
      error_msg = "表达式不完整！末尾缺少"
    case _:
      error_msg = "表达式中有错误！"
      lookback_limit = 10
      if span.start == 0:
        error_msg += "开头"
      elif span.start <= lookback_limit:
        error_msg += f"“{expr[: span.start]}”后面"
      else:
        error_msg += f"“…{expr[span.start - lookback_limit : span.start]}”后面"
      error_msg += f"不应该是“{expr[span]}”，而应该接"
  match expected:
    case (*exps, exp_last):
      error_msg += (
        "、".join(expectation_to_str(exp) for exp in exps)
        + "或者"
        + expectation_to_str(exp_last)
      )
    case (exp,) | exp:
      error_msg += expectation_to_str(exp)
  return error_msg


def expectation_to_str(exp: ExpectError.Expectation):
  if exp == Node:
    return "表达式"
  elif exp == Number:
    return "数字"
  elif isinstance(exp, Simple.Kind):
    return f"“{exp.value}”"
  else:
    raise ValueError("unexpected expectation")


short_help: Final = textwrap.dedent("""\
  .rd6  掷一个 d6
  .rd20  掷一个 d20
  .r2d6  掷两个 d6，求和
  .rd%  掷一个 d100
  .rd20+5  掷一个 d20，加上 5
  .r2d20kh1  掷两个 d20，取高
  .r2d20kl1  掷两个 d20，取低
  .r4d6pl1  掷 4 个 d6，去掉最低值后求和
  .r(d6, d8)kh1  掷一个 d6 和一个 d8，取高
  .rd20ro1  掷一个 d20，出 1 时重骰一次
  .rd20rr<3  掷一个 d20，小于 3 时一直重骰
  .r3d6e6  掷 3 个 d6，出 6 的骰子再加骰一个
  .r4d6mi2  掷 4 个 d6，小于 2 的都当作 2
  .rd20 -r5  重复掷 5 次 d20
  若要了解更多高级用法请用 .r --help""")

full_help: Final = [
  textwrap.dedent(seg)
  for seg in (
    """\
    * 塔利给你递了一张印着密密麻麻小字的说明书
    指令格式：
      .roll<expr> [options]
      .r<expr> [options]
    （……）""",
    """\
    骰子表达式 <expr>：
      <expr> + <expr>  加法
      <expr> - <expr>  减法
      <expr> * <expr>  乘法
      <expr> / <expr>  除法（向零取整）
      - <expr>  取相反数
      (<expr>)  括号
      <number>  一个数字
      <dice>  掷骰后求和
      (<expr>, ...)  一组表达式，求和；只有一项时写作 (<expr>,)
      (<expr>, ...)<op>...  对一组表达式依次进行挑选，只能用 k 或 p
    （……）""",
    """\
    骰子 <dice>：
      <number>d<sides>  掷 <number> 个 <sides> 面骰，省略 <number> 则为 1
      <number>d%  掷 <number> 个 100 面骰
      <dice><op>...  依次对骰子进行操作
    """,
    """\
    操作 <op> 的格式是 <操作><选择><number>：
      k  保留选中的骰子，去掉其余的
      p  去掉选中的骰子
      rr  重骰选中的骰子，直到没有骰子被选中为止
      ro  重骰选中的骰子一次
      e  选中的骰子额外加骰一个，再重新选择，直到没有新的骰子被选中
      ra  选中的骰子额外加骰一个
      mi  小于 <number> 的骰子都当作 <number>
      ma  大于 <number> 的骰子都当作 <number>
    （……）""",
    """\
    选择：
      （省略）  等于 <number> 的骰子
      h  最大的 <number> 个骰子
      l  最小的 <number> 个骰子
      >  大于 <number> 的骰子
      <  小于 <number> 的骰子
    rr 不能与 h、l 连用，mi 和 ma 不能与任何选择连用
    （……）""",
    """\
    选项 [options]：
      -r<number>, --repeat <number>  重复掷骰 <number> 次
      --seed <number>  用给定的种子掷骰，结果可以复现
      -q, --quiet  只给出最终结果
      -h  获取简短的说明
      --help  获取本说明
    指令中所有字母均不区分大小写""",
  )
]

full_help_forward_msg: Final = [
  {
    "type": "node",
    "data": {
      "name": "Tally",
      "uin": config.bot_uin,
      "content": [ob11.MessageSegment.text(seg)],
    },
  }
  for seg in full_help
]
