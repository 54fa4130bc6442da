"""
Instruction Parser.

Converts one line of a ``luac -l`` listing into an immutable `Instruction`.

A listing line has the shape::

    <index>  [<line>]  <OPCODE>  <a> <b> <c>  ; <comment>

Operands are optional (``JMP`` prints one, ``RETURN0`` none) and may carry the
``k`` suffix Lua 5.4 uses for constant operands. The comment is decoded into a
constant only where the opcode defines what it holds.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from lglob.enums import OpcodeKind

_INSTRUCTION_RE = re.compile(
  r"^\s*(?P<index>\d+)\s+"
  r"(?:\[(?P<line>\d+|-)\]\s+)?"
  r"(?P<opcode>[A-Z][A-Z0-9_]*)"
  r"(?P<operands>(?:\s+-?\d+k?){0,4})"
  r"\s*(?:;\s*(?P<comment>.*?))?\s*$"
)

_OPERAND_RE = re.compile(r"-?\d+")

# Quoted strings may contain spaces and escaped quotes; everything else splits on whitespace.
_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\S+')

OPCODE_KINDS = {
  "GETGLOBAL": OpcodeKind.GLOBAL_GET,
  "GETTABUP": OpcodeKind.GLOBAL_GET,
  "SETGLOBAL": OpcodeKind.GLOBAL_SET,
  "SETTABUP": OpcodeKind.GLOBAL_SET,
  "GETTABLE": OpcodeKind.TABLE_GET,
  "GETFIELD": OpcodeKind.TABLE_GET,
  "SELF": OpcodeKind.TABLE_GET,
  "SETTABLE": OpcodeKind.TABLE_SET,
  "SETFIELD": OpcodeKind.TABLE_SET,
  "GETUPVAL": OpcodeKind.UPVALUE_GET,
  "LOADK": OpcodeKind.LOAD_CONSTANT,
  "CALL": OpcodeKind.CALL,
  "TAILCALL": OpcodeKind.CALL,
  "RETURN": OpcodeKind.RETURN,
  "RETURN1": OpcodeKind.RETURN,
  "RETURN0": OpcodeKind.RETURN_NONE,
}

# Opcodes whose comment names the upvalue holding the table, followed by the key.
_TABUP_OPCODES = frozenset(("GETTABUP", "SETTABUP"))

# Opcodes whose comment is a bare symbol (global name or upvalue name).
_SYMBOL_OPCODES = frozenset(("GETGLOBAL", "SETGLOBAL", "GETUPVAL"))


class ListingSyntaxError(ValueError):
  """
  Raised when a listing line does not match the expected grammar.

  Malformed input aborts analysis of the current unit; later state tracking
  assumes every instruction was understood.
  """


class FunctionBoundary:
  """Sentinel marking the end of a function's instruction block."""

  _instance = None

  def __new__(cls) -> "FunctionBoundary":
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __repr__(self) -> str:
    return "FUNCTION_BOUNDARY"


FUNCTION_BOUNDARY = FunctionBoundary()


@dataclass(frozen=True)
class Instruction:
  """
  One disassembled VM instruction.
  """

  index: int
  """Position within the function (1-based, as printed by luac)."""

  line: int
  """Source line number, 0 when debug information was stripped."""

  opcode: str
  a: Optional[int] = None
  b: Optional[int] = None
  c: Optional[int] = None

  constant: Optional[str] = None
  """Decoded constant: string payload or raw symbol, when the opcode carries one."""

  upvalue: Optional[str] = None
  """Upvalue name printed by GETTABUP/SETTABUP comments."""

  @property
  def kind(self) -> OpcodeKind:
    """The opcode's classification."""
    return OPCODE_KINDS.get(self.opcode, OpcodeKind.OTHER)

  @property
  def table_register(self) -> Optional[int]:
    """
    Register holding the table indexed by a field read or write.

    Reads (``GETTABLE``, ``GETFIELD``, ``SELF``) index ``R(B)``; writes
    (``SETTABLE``, ``SETFIELD``) index ``R(A)``.
    """
    kind = self.kind
    if kind is OpcodeKind.TABLE_GET:
      return self.b
    if kind is OpcodeKind.TABLE_SET:
      return self.a
    return None


def parse_instruction(line: str) -> Union[Instruction, FunctionBoundary]:
  """
  Parses a single listing line.

  Args:
      line: Raw text of the line, with or without the trailing newline.

  Returns:
      The parsed `Instruction`, or `FUNCTION_BOUNDARY` for a blank line.

  Raises:
      ListingSyntaxError: If the line is not a valid instruction line.
  """
  if not line.strip():
    return FUNCTION_BOUNDARY

  match = _INSTRUCTION_RE.match(line)
  if not match:
    raise ListingSyntaxError(f"Malformed instruction line: {line.strip()!r}")

  operands = [int(op) for op in _OPERAND_RE.findall(match.group("operands"))]
  # Lua 5.4 prints a fourth flag operand on a few opcodes; only A, B and C matter here.
  operands = operands[:3] + [None] * (3 - len(operands))

  raw_line = match.group("line")
  line_no = int(raw_line) if raw_line and raw_line != "-" else 0

  opcode = match.group("opcode")
  constant, upvalue = _decode_comment(opcode, match.group("comment"))

  return Instruction(
    index=int(match.group("index")),
    line=line_no,
    opcode=opcode,
    a=operands[0],
    b=operands[1],
    c=operands[2],
    constant=constant,
    upvalue=upvalue,
  )


def _decode_comment(opcode: str, comment: Optional[str]):
  """
  Extracts the constant (and upvalue name) an opcode's comment carries.

  Args:
      opcode: The instruction mnemonic.
      comment: Text following ``;``, if any.

  Returns:
      Tuple of (constant, upvalue name).
  """
  if not comment:
    return None, None

  tokens = tokenize_comment(comment)
  if not tokens:
    return None, None

  if opcode in _SYMBOL_OPCODES:
    return tokens[0], None

  if opcode in _TABUP_OPCODES:
    key = unquote(tokens[1]) if len(tokens) > 1 else None
    return key, tokens[0]

  if OPCODE_KINDS.get(opcode) in (OpcodeKind.TABLE_GET, OpcodeKind.TABLE_SET, OpcodeKind.LOAD_CONSTANT):
    return unquote(tokens[0]), None

  return None, None


def tokenize_comment(comment: str) -> List[str]:
  """Splits a comment into tokens, keeping quoted strings whole."""
  return _TOKEN_RE.findall(comment)


def unquote(token: str) -> Optional[str]:
  """
  Returns the payload of a quoted string token, or None for anything else.

  Handles the escapes luac emits for quotes and backslashes.
  """
  if len(token) < 2 or not (token.startswith('"') and token.endswith('"')):
    return None
  return re.sub(r"\\(.)", r"\1", token[1:-1])
