"""
Disassembly Stream.

Turns the text of a ``luac -l [-l]`` listing into a lazy sequence of
`FunctionListing` objects, one per function in the order luac prints them
(the main chunk first, then nested functions depth-first).

Each block in the listing looks like::

    main <file.lua:0,0> (4 instructions at 0x55d0)
    0+ params, 2 slots, 1 upvalue, 1 local, 2 constants, 0 functions
            1       [1]     GETTABUP        0 0 -1  ; _ENV "require"
            ...
    constants (2) for 0x55d0:
            ...
    locals (1) for 0x55d0:
            0       t       4       5
    upvalues (1) for 0x55d0:
            0       _ENV    1       0

The symbol sections only appear with the doubled ``-l`` flag; without them a
function gets empty tables. Since locals are printed after the code, each block
is read completely before it is handed out.
"""

import re
from typing import Iterable, Iterator, List, Optional, Tuple

from lglob.bytecode.instruction import (
  FUNCTION_BOUNDARY,
  FunctionBoundary,
  Instruction,
  ListingSyntaxError,
  parse_instruction,
)
from lglob.bytecode.scope import KnownLocals, ScopeTracker
from lglob.enums import OpcodeKind

_HEADER_RE = re.compile(r"^\s*(main|function)\s+<(.*):(\d+),(\d+)>")
_SUMMARY_RE = re.compile(r"^\s*\d+\+?\s+params?,")
_SECTION_RE = re.compile(r"^\s*(constants|locals|upvalues)\s+\((\d+)\)")


class FunctionListing:
  """
  The instructions and symbol tables of one function.
  """

  def __init__(
    self,
    kind: str,
    source: str,
    line_defined: int,
    instructions: List[Instruction],
    scope: ScopeTracker,
  ):
    self.kind = kind
    self.source = source
    self.line_defined = line_defined
    self.instructions = instructions
    self.scope = scope

  @property
  def is_main(self) -> bool:
    return self.kind == "main"

  def cursor(self) -> "InstructionCursor":
    """Returns a fresh cursor over this function's instructions."""
    return InstructionCursor(self.instructions)

  def final_return(self) -> Optional[Instruction]:
    """
    Finds the last explicit return of the function.

    luac always closes a function with an implicit ``return`` of no values;
    those trailing instructions are skipped.

    Returns:
        The return instruction preceding the implicit one, if it is the last
        real instruction, else None.
    """
    for ins in reversed(self.instructions):
      if ins.kind is OpcodeKind.RETURN_NONE:
        continue
      if ins.kind is OpcodeKind.RETURN and ins.opcode == "RETURN" and ins.b == 1:
        continue
      return ins if ins.kind is OpcodeKind.RETURN else None
    return None

  def __repr__(self) -> str:
    return f"FunctionListing({self.kind} <{self.source}:{self.line_defined}>, {len(self.instructions)} instructions)"


class InstructionCursor:
  """
  Pull-based iterator over one function's instructions.

  Yields every instruction in order, then `FUNCTION_BOUNDARY` once. `peek`
  looks ahead without consuming and `skip` consumes instructions already
  inspected through `peek`.
  """

  def __init__(self, instructions: List[Instruction]):
    self._instructions = instructions
    self._pos = 0
    self._done = False

  def __iter__(self) -> "InstructionCursor":
    return self

  def __next__(self):
    if self._pos < len(self._instructions):
      ins = self._instructions[self._pos]
      self._pos += 1
      return ins
    if not self._done:
      self._done = True
      return FUNCTION_BOUNDARY
    raise StopIteration

  def peek(self, offset: int = 1) -> Optional[Instruction]:
    """
    Returns the instruction `offset` positions ahead (1 = the next one).

    Args:
        offset: Distance from the current position.

    Returns:
        The instruction, or None past the end of the function.
    """
    pos = self._pos + offset - 1
    if 0 <= pos < len(self._instructions):
      return self._instructions[pos]
    return None

  def skip(self, count: int) -> None:
    """Consumes `count` instructions."""
    self._pos = min(self._pos + count, len(self._instructions))


class _LineReader:
  """Line iterator with a single line of pushback."""

  def __init__(self, lines: Iterable[str]):
    self._lines = iter(lines)
    self._pushed: Optional[str] = None
    self.number = 0

  def next(self) -> Optional[str]:
    if self._pushed is not None:
      line, self._pushed = self._pushed, None
      return line
    line = next(self._lines, None)
    if line is not None:
      self.number += 1
      line = line.rstrip("\r\n")
    return line

  def push_back(self, line: str) -> None:
    self._pushed = line


class DisassemblyStream:
  """
  Lazy, finite, non-restartable sequence of per-function listings.

  All functions share one `KnownLocals` registry, so a module alias bound in
  the main chunk stays recognizable inside nested functions.
  """

  def __init__(self, lines: Iterable[str], known: Optional[KnownLocals] = None):
    """
    Initializes the stream.

    Args:
        lines: Lines of listing text.
        known: Registry of known locals for the unit (a new one if omitted).
    """
    self.known = known if known is not None else KnownLocals()
    self._reader = _LineReader(lines)
    self._outermost: Optional[FunctionListing] = None
    self._buffered: Optional[FunctionListing] = None
    self._started = False

  @classmethod
  def from_text(cls, text: str, known: Optional[KnownLocals] = None) -> "DisassemblyStream":
    return cls(text.splitlines(), known)

  def __iter__(self) -> Iterator[FunctionListing]:
    return self

  def __next__(self) -> FunctionListing:
    if self._buffered is not None:
      listing, self._buffered = self._buffered, None
      return listing
    listing = self._read_function()
    if listing is None:
      raise StopIteration
    return listing

  def outermost(self) -> Optional[FunctionListing]:
    """
    One-shot lookahead to the first (outermost) function of the listing.

    Reading it early does not consume it: iteration still starts with it.

    Returns:
        The main chunk's listing, or None for an empty listing.
    """
    if not self._started:
      self._buffered = self._read_function()
    return self._outermost

  def _read_function(self) -> Optional[FunctionListing]:
    line = self._reader.next()
    while line is not None and not line.strip():
      line = self._reader.next()
    if line is None:
      self._started = True
      return None

    header = _HEADER_RE.match(line)
    if not header:
      raise ListingSyntaxError(f"Line {self._reader.number}: expected a function header, got {line.strip()!r}")

    summary = self._reader.next()
    if summary is None or not _SUMMARY_RE.match(summary):
      raise ListingSyntaxError(f"Line {self._reader.number}: missing parameter/slot summary")

    instructions = self._read_instructions()
    local_rows, upvalue_rows = self._read_sections()

    listing = FunctionListing(
      kind=header.group(1),
      source=header.group(2),
      line_defined=int(header.group(3)),
      instructions=instructions,
      scope=ScopeTracker.from_sections(local_rows, upvalue_rows, self.known),
    )
    if not self._started:
      self._started = True
      self._outermost = listing
    return listing

  def _read_instructions(self) -> List[Instruction]:
    instructions: List[Instruction] = []
    while True:
      line = self._reader.next()
      if line is None:
        break
      if _SECTION_RE.match(line) or _HEADER_RE.match(line):
        self._reader.push_back(line)
        break
      try:
        parsed = parse_instruction(line)
      except ListingSyntaxError as e:
        raise ListingSyntaxError(f"Line {self._reader.number}: {e}") from e
      if isinstance(parsed, FunctionBoundary):
        break
      instructions.append(parsed)
    return instructions

  def _read_sections(self) -> Tuple[List[str], List[str]]:
    sections = {"constants": [], "locals": [], "upvalues": []}
    while True:
      line = self._reader.next()
      if line is None:
        break
      match = _SECTION_RE.match(line)
      if not match:
        self._reader.push_back(line)
        break
      rows = sections[match.group(1)]
      for _ in range(int(match.group(2))):
        row = self._reader.next()
        if row is None:
          raise ListingSyntaxError(f"Truncated {match.group(1)} section")
        rows.append(row)
    return sections["locals"], sections["upvalues"]
