"""
Bytecode Listing Package.

Readers for the text listings ``luac -l -l`` prints.

Modules:
    - ``instruction``: Parsing single instruction lines and opcode classification.
    - ``scope``: Local live ranges, upvalue tables and the known-locals registry.
    - ``stream``: Splitting a listing into per-function blocks.
"""

from lglob.bytecode.instruction import (
  FUNCTION_BOUNDARY,
  Instruction,
  ListingSyntaxError,
  parse_instruction,
)
from lglob.bytecode.scope import CapturedVariable, KnownLocals, LocalSlot, ScopeTracker
from lglob.bytecode.stream import DisassemblyStream, FunctionListing, InstructionCursor

__all__ = [
  "FUNCTION_BOUNDARY",
  "CapturedVariable",
  "DisassemblyStream",
  "FunctionListing",
  "Instruction",
  "InstructionCursor",
  "KnownLocals",
  "ListingSyntaxError",
  "LocalSlot",
  "ScopeTracker",
  "parse_instruction",
]
