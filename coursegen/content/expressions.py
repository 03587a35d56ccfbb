"""Closed-grammar compiler for author and model supplied math expressions.

Expressions are tokenised and parsed by hand into a tree of Python closures. Only
arithmetic, a fixed table of math functions, numeric literals, named constants and the
caller's allowed variables are reachable, so no expression can touch host objects.
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Final

Scope = Mapping[str, float]
Evaluator = Callable[[Scope], float]

MAX_EXPRESSION_CHARS: Final[int] = 2000
MAX_NESTING_DEPTH: Final[int] = 64

_MATH_PREFIX_RE = re.compile(r"\bMath\.")
_NAN = float("nan")
_INF = float("inf")
_DIGITS: Final[frozenset[str]] = frozenset("0123456789")

CONSTANTS: Final[dict[str, float]] = {"pi": math.pi, "PI": math.pi, "e": math.e, "E": math.e, "tau": math.tau}


@dataclass(frozen=True)
class CompileError:
  """Why an expression was rejected; returned, never raised."""

  expression: str
  message: str
  position: int | None = None

  def __str__(self) -> str:
    if self.position is None:
      return self.message
    return f"{self.message} (at position {self.position})"


@dataclass(frozen=True)
class CompiledExpression:
  """An evaluable expression bound to a fixed ordered set of variable names."""

  source: str
  variables: tuple[str, ...]
  _evaluator: Evaluator = field(repr=False, compare=False)

  def evaluate(self, bindings: Mapping[str, float]) -> float:
    """Evaluate with IEEE semantics; failures come back as inf or nan."""
    scope = {name: _as_float(bindings.get(name)) for name in self.variables}
    return self._evaluator(scope)

  def evaluate_at(self, *values: float) -> float:
    """Positional variant following the order of `variables`."""
    return self.evaluate(dict(zip(self.variables, values, strict=False)))


class _ParseError(Exception):
  def __init__(self, message: str, position: int | None) -> None:
    super().__init__(message)
    self.message = message
    self.position = position


def _as_float(value: object) -> float:
  if value is None or isinstance(value, bool):
    return _NAN
  try:
    return float(value)  # type: ignore[arg-type]
  except OverflowError:
    return _INF
  except (TypeError, ValueError):
    return _NAN


# --- numeric primitives -----------------------------------------------------


def _div(a: float, b: float) -> float:
  if b == 0:
    if a == 0 or math.isnan(a):
      return _NAN
    return math.copysign(_INF, a) * math.copysign(1.0, b)
  return a / b


def _mod(a: float, b: float) -> float:
  if b == 0 or math.isinf(a):
    return _NAN
  return a % b


def _pow(a: float, b: float) -> float:
  try:
    return math.pow(a, b)
  except OverflowError:
    if a < 0 and float(b).is_integer() and int(b) % 2 == 1:
      return -_INF
    return _INF
  except ValueError:
    # math.pow rejects 0 ** negative and negative ** fractional.
    if a == 0:
      return _INF
    return _NAN


def _log(a: float, base: float | None = None) -> float:
  if math.isnan(a) or a < 0:
    return _NAN
  if a == 0:
    return -_INF
  if base is None:
    return math.log(a)
  if base <= 0 or base == 1 or math.isnan(base):
    return _NAN
  return math.log(a) / math.log(base)


def _integral(op: Callable[[float], float]) -> Callable[[float], float]:
  def apply(a: float) -> float:
    if not math.isfinite(a):
      return a
    return float(op(a))

  return apply


def _round(a: float) -> float:
  return math.copysign(math.floor(abs(a) + 0.5), a)


def _sign(a: float) -> float:
  if math.isnan(a):
    return _NAN
  if a == 0:
    return 0.0
  return 1.0 if a > 0 else -1.0


def _cbrt(a: float) -> float:
  return math.copysign(abs(a) ** (1.0 / 3.0), a)


def _guarded(fn: Callable[..., float]) -> Callable[..., float]:
  """Map math-module exceptions onto IEEE results so evaluation stays total."""

  def call(*args: float) -> float:
    try:
      result = fn(*args)
    except OverflowError:
      return _INF
    except (ValueError, ZeroDivisionError):
      return _NAN
    if isinstance(result, complex):
      return _NAN
    return float(result)

  return call


@dataclass(frozen=True)
class _Function:
  impl: Callable[..., float]
  min_args: int
  max_args: int | None


def _unary(fn: Callable[[float], float]) -> _Function:
  return _Function(_guarded(fn), 1, 1)


FUNCTIONS: Final[dict[str, _Function]] = {
  "sin": _unary(math.sin),
  "cos": _unary(math.cos),
  "tan": _unary(math.tan),
  "asin": _unary(math.asin),
  "acos": _unary(math.acos),
  "atan": _unary(math.atan),
  "sinh": _unary(math.sinh),
  "cosh": _unary(math.cosh),
  "tanh": _unary(math.tanh),
  "asinh": _unary(math.asinh),
  "acosh": _unary(math.acosh),
  "atanh": _unary(math.atanh),
  "sqrt": _unary(math.sqrt),
  "cbrt": _unary(_cbrt),
  "exp": _unary(math.exp),
  "ln": _unary(_log),
  "log10": _unary(math.log10),
  "log2": _unary(math.log2),
  "abs": _unary(abs),
  "floor": _unary(_integral(math.floor)),
  "ceil": _unary(_integral(math.ceil)),
  "round": _unary(_integral(_round)),
  "sign": _unary(_sign),
  "log": _Function(_guarded(_log), 1, 2),
  "atan2": _Function(_guarded(math.atan2), 2, 2),
  "pow": _Function(_pow, 2, 2),
  "mod": _Function(_mod, 2, 2),
  "hypot": _Function(_guarded(math.hypot), 1, None),
  "min": _Function(_guarded(min), 1, None),
  "max": _Function(_guarded(max), 1, None),
}


# --- tokenizer ---------------------------------------------------------------

_NUMBER = "number"
_IDENT = "ident"
_OP = "op"
_LPAREN = "("
_RPAREN = ")"
_COMMA = ","
_END = "end"


@dataclass(frozen=True)
class _Token:
  kind: str
  text: str
  position: int


def _tokenize(source: str) -> list[_Token]:
  tokens: list[_Token] = []
  index = 0
  length = len(source)

  while index < length:
    char = source[index]

    if char.isspace():
      index += 1
      continue

    if char in _DIGITS or (char == "." and index + 1 < length and source[index + 1] in _DIGITS):
      start = index
      while index < length and source[index] in _DIGITS:
        index += 1
      if index < length and source[index] == ".":
        index += 1
        while index < length and source[index] in _DIGITS:
          index += 1
      # Only treat e/E as an exponent when digits follow, so "2e" reads as 2 * e.
      if index < length and source[index] in "eE":
        lookahead = index + 1
        if lookahead < length and source[lookahead] in "+-":
          lookahead += 1
        if lookahead < length and source[lookahead] in _DIGITS:
          index = lookahead
          while index < length and source[index] in _DIGITS:
            index += 1
      tokens.append(_Token(_NUMBER, source[start:index], start))
      continue

    if char.isalpha() or char == "_":
      start = index
      while index < length and (source[index].isalnum() or source[index] == "_"):
        index += 1
      tokens.append(_Token(_IDENT, source[start:index], start))
      continue

    if char == "*" and index + 1 < length and source[index + 1] == "*":
      tokens.append(_Token(_OP, "^", index))
      index += 2
      continue

    if char in "+-*/%^":
      tokens.append(_Token(_OP, char, index))
      index += 1
      continue

    if char in "(),":
      tokens.append(_Token(char, char, index))
      index += 1
      continue

    raise _ParseError(f"Unexpected character {char!r}", index)

  tokens.append(_Token(_END, "", length))
  return tokens


# --- parser ------------------------------------------------------------------


def _constant(value: float) -> Evaluator:
  return lambda _scope: value


def _variable(name: str) -> Evaluator:
  return lambda scope: scope.get(name, _NAN)


_OPERATORS: Final[dict[str, Callable[[float, float], float]]] = {
  "+": operator.add,
  "-": operator.sub,
  "*": operator.mul,
  "/": _div,
  "%": _mod,
  "^": _pow,
}


def _binary(op: str, left: Evaluator, right: Evaluator) -> Evaluator:
  apply = _OPERATORS[op]
  return lambda scope: apply(left(scope), right(scope))


def _chain(first: Evaluator, rest: list[tuple[str, Evaluator]]) -> Evaluator:
  """Fold a left-associative run of operators iteratively instead of nesting closures."""
  if not rest:
    return first
  steps = [(_OPERATORS[op], node) for op, node in rest]

  def evaluate(scope: Scope) -> float:
    value = first(scope)
    for apply, node in steps:
      value = apply(value, node(scope))
    return value

  return evaluate


def _call(function: _Function, args: list[Evaluator]) -> Evaluator:
  impl = function.impl
  return lambda scope: impl(*(arg(scope) for arg in args))


class _Parser:
  def __init__(self, tokens: list[_Token], allowed_variables: tuple[str, ...]) -> None:
    self._tokens = tokens
    self._index = 0
    self._depth = 0
    self._allowed = allowed_variables

  @property
  def _current(self) -> _Token:
    return self._tokens[self._index]

  def _advance(self) -> _Token:
    token = self._tokens[self._index]
    self._index += 1
    return token

  def _expect(self, kind: str) -> _Token:
    token = self._current
    if token.kind != kind:
      raise _ParseError(f"Expected {kind!r} but found {token.text or 'end of expression'!r}", token.position)
    return self._advance()

  def parse(self) -> Evaluator:
    if self._current.kind == _END:
      raise _ParseError("Expression is empty", 0)
    node = self._expression()
    if self._current.kind != _END:
      raise _ParseError(f"Unexpected token {self._current.text!r}", self._current.position)
    return node

  def _nest(self, position: int) -> None:
    self._depth += 1
    if self._depth > MAX_NESTING_DEPTH:
      raise _ParseError("Expression is nested too deeply", position)

  def _expression(self) -> Evaluator:
    first = self._term()
    rest: list[tuple[str, Evaluator]] = []
    while self._current.kind == _OP and self._current.text in "+-":
      op = self._advance().text
      rest.append((op, self._term()))
    return _chain(first, rest)

  def _term(self) -> Evaluator:
    first = self._unary()
    rest: list[tuple[str, Evaluator]] = []
    while self._current.kind == _OP and self._current.text in "*/%":
      op = self._advance().text
      rest.append((op, self._unary()))
    return _chain(first, rest)

  def _unary(self) -> Evaluator:
    token = self._current
    if token.kind == _OP and token.text in "+-":
      self._advance()
      self._nest(token.position)
      operand = self._unary()
      self._depth -= 1
      if token.text == "-":
        return lambda scope: -operand(scope)
      return operand
    return self._power()

  def _power(self) -> Evaluator:
    base = self._primary()
    if self._current.kind == _OP and self._current.text == "^":
      token = self._advance()
      self._nest(token.position)
      exponent = self._unary()
      self._depth -= 1
      return _binary("^", base, exponent)
    return base

  def _primary(self) -> Evaluator:
    token = self._current

    if token.kind == _NUMBER:
      self._advance()
      literal = _constant(float(token.text))
      # Implicit multiplication: 2x, 3(x + 1), 2 sin(x).
      if self._current.kind in (_IDENT, _LPAREN):
        return _binary("*", literal, self._power())
      return literal

    if token.kind == _IDENT:
      self._advance()
      if self._current.kind == _LPAREN:
        return self._function_call(token)
      if token.text in self._allowed:
        return _variable(token.text)
      if token.text in CONSTANTS:
        return _constant(CONSTANTS[token.text])
      if token.text in FUNCTIONS:
        raise _ParseError(f"Function {token.text!r} must be called with arguments", token.position)
      raise _ParseError(f"Unknown variable {token.text!r}", token.position)

    if token.kind == _LPAREN:
      self._advance()
      self._nest(token.position)
      node = self._expression()
      self._expect(_RPAREN)
      self._depth -= 1
      return node

    if token.kind == _END:
      raise _ParseError("Unexpected end of expression", token.position)
    raise _ParseError(f"Unexpected token {token.text!r}", token.position)

  def _function_call(self, name: _Token) -> Evaluator:
    function = FUNCTIONS.get(name.text)
    if function is None:
      raise _ParseError(f"Unknown function {name.text!r}", name.position)

    self._expect(_LPAREN)
    self._nest(name.position)
    args: list[Evaluator] = []
    if self._current.kind != _RPAREN:
      args.append(self._expression())
      while self._current.kind == _COMMA:
        self._advance()
        args.append(self._expression())
    self._expect(_RPAREN)
    self._depth -= 1

    if len(args) < function.min_args or (function.max_args is not None and len(args) > function.max_args):
      raise _ParseError(f"Function {name.text!r} called with {len(args)} argument(s)", name.position)
    return _call(function, args)


def strip_math_prefix(expression: str) -> str:
  """Drop `Math.` prefixes that models copy from JavaScript."""
  return _MATH_PREFIX_RE.sub("", expression)


def compile_expression(expression: str, allowed_variables: Sequence[str]) -> CompiledExpression | CompileError:
  """Compile `expression` over `allowed_variables`, or explain why it cannot be compiled."""
  if not isinstance(expression, str):
    return CompileError(expression=str(expression), message="Expression must be a string")

  variables = tuple(dict.fromkeys(allowed_variables))
  cleaned = strip_math_prefix(expression)
  if len(cleaned) > MAX_EXPRESSION_CHARS:
    return CompileError(expression=expression, message=f"Expression exceeds {MAX_EXPRESSION_CHARS} characters")

  try:
    evaluator = _Parser(_tokenize(cleaned), variables).parse()
  except _ParseError as exc:
    return CompileError(expression=expression, message=exc.message, position=exc.position)

  return CompiledExpression(source=expression, variables=variables, _evaluator=evaluator)


@dataclass(frozen=True)
class VectorField:
  """Pair of compiled component expressions over (x, y)."""

  dx: CompiledExpression
  dy: CompiledExpression

  def evaluate(self, x: float, y: float) -> tuple[float, float]:
    bindings = {"x": x, "y": y}
    return self.dx.evaluate(bindings), self.dy.evaluate(bindings)


@dataclass(frozen=True)
class ParametricSurface:
  """Three compiled coordinate expressions over (u, v)."""

  x: CompiledExpression
  y: CompiledExpression
  z: CompiledExpression

  def evaluate(self, u: float, v: float) -> tuple[float, float, float]:
    bindings = {"u": u, "v": v}
    return self.x.evaluate(bindings), self.y.evaluate(bindings), self.z.evaluate(bindings)


def compile_vector_field(dx_expression: str, dy_expression: str) -> VectorField | CompileError:
  dx = compile_expression(dx_expression, ("x", "y"))
  if isinstance(dx, CompileError):
    return dx
  dy = compile_expression(dy_expression, ("x", "y"))
  if isinstance(dy, CompileError):
    return dy
  return VectorField(dx=dx, dy=dy)


def compile_parametric_surface(x_expression: str, y_expression: str, z_expression: str) -> ParametricSurface | CompileError:
  compiled: list[CompiledExpression] = []
  for source in (x_expression, y_expression, z_expression):
    result = compile_expression(source, ("u", "v"))
    if isinstance(result, CompileError):
      return result
    compiled.append(result)
  return ParametricSurface(x=compiled[0], y=compiled[1], z=compiled[2])
