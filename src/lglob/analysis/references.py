"""
Reference Resolution over Bytecode Listings.

This module provides the `ReferenceResolver`, which walks the instructions of
every function in a listing and reports each access to a name living outside
the unit's own locals and upvalues.

For every relevant instruction it decides between:

1.  **Global access**: ``GETGLOBAL``/``SETGLOBAL`` (Lua 5.1) or
    ``GETTABUP``/``SETTABUP`` on ``_ENV`` (Lua 5.2+).
2.  **Composite access**: a field read/write chained onto a global read a
    couple of instructions earlier (``foo.bar``), or performed on a local known
    to hold a module value (``local t = require "x"; t.y``).
3.  **Module idioms**: ``require "name"`` stored into a local, ``module(...)``
    declarations, and a main chunk ending in ``return M``.

Everything else is a local table operation and is ignored.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from lglob.bytecode.instruction import FUNCTION_BOUNDARY, Instruction
from lglob.bytecode.scope import KnownLocals, ScopeTracker
from lglob.bytecode.stream import DisassemblyStream, FunctionListing, InstructionCursor
from lglob.enums import OpcodeKind

ENVIRONMENT_UPVALUE = "_ENV"
REQUIRE_FUNCTIONS = frozenset(("require",))
MODULE_FUNCTIONS = frozenset(("module",))

# Maximum distance between a global read and the field access completing it.
CHAIN_WINDOW = 2


@dataclass(frozen=True)
class Reference:
  """An access to a name outside the unit's local scope."""

  line: int
  name: str
  """Qualified (dot-joined) name."""

  write: bool = False

  @property
  def root(self) -> str:
    return self.name.split(".", 1)[0]


@dataclass(frozen=True)
class Requirement:
  """A ``require`` call with a literal module name."""

  module: str
  line: int
  alias: Optional[str] = None
  """Local the result is stored into, if any."""


@dataclass
class ModuleRemark:
  """
  Module idioms detected in a unit.
  """

  declared: bool = False
  """The unit calls ``module(...)``."""

  line: int = 0
  """Line of the ``module`` call."""

  strict: bool = False
  """The call passes an explicit option such as ``package.seeall``."""

  name: Optional[str] = None
  """Literal module name passed to ``module``, if any."""

  simple_module: Optional[str] = None
  """Local returned by the main chunk, taken as the unit's exported table."""

  @property
  def is_open(self) -> bool:
    """True for a bare ``module(...)``, which replaces the unit's environment."""
    return self.declared and not self.strict


@dataclass
class ReferenceReport:
  """Everything the resolver learned about one unit."""

  references: List[Reference] = field(default_factory=list)
  requirements: List[Requirement] = field(default_factory=list)
  remark: ModuleRemark = field(default_factory=ModuleRemark)

  @property
  def aliases(self) -> List[str]:
    """Local names bound to required modules."""
    return [req.alias for req in self.requirements if req.alias]


@dataclass
class _Pending:
  """A global (or known alias) read that a following field access may complete."""

  instruction: Instruction
  qualifier: str
  reference: Optional[int] = None
  """Index of the reference this read produced, replaced when chained."""


class ReferenceResolver:
  """
  State machine classifying instructions into references.

  The only state carried between instructions is `last`, the most recent read
  of a global or known alias. It is cleared at every function boundary and
  whenever a field access consumes it.
  """

  def __init__(self, known: Optional[KnownLocals] = None):
    """
    Initializes the resolver.

    Args:
        known: The unit's KnownLocals registry; must be the one the stream's
            scope trackers share.
    """
    self.known = known if known is not None else KnownLocals()
    self.report = ReferenceReport()
    self.last: Optional[_Pending] = None
    self._in_outermost = True

    self._handlers: Dict[OpcodeKind, Callable[[Instruction, InstructionCursor, ScopeTracker], None]] = {
      OpcodeKind.GLOBAL_GET: self._global_get,
      OpcodeKind.GLOBAL_SET: self._global_set,
      OpcodeKind.TABLE_GET: self._field_access,
      OpcodeKind.TABLE_SET: self._field_access,
      OpcodeKind.UPVALUE_GET: self._upvalue_get,
      OpcodeKind.LOAD_CONSTANT: self._ignore,
      OpcodeKind.CALL: self._ignore,
      OpcodeKind.RETURN: self._ignore,
      OpcodeKind.RETURN_NONE: self._ignore,
      OpcodeKind.OTHER: self._ignore,
    }

  def resolve(self, stream: DisassemblyStream) -> ReferenceReport:
    """
    Walks every function of the stream.

    Args:
        stream: The unit's listing. Its KnownLocals registry is adopted.

    Returns:
        The collected ReferenceReport.
    """
    self.known = stream.known
    self._detect_simple_module(stream.outermost())
    for listing in stream:
      self.walk(listing)
    return self.report

  def walk(self, listing: FunctionListing) -> None:
    """
    Processes one function's instructions in order.

    Args:
        listing: The function to walk.
    """
    cursor = listing.cursor()
    scope = listing.scope
    self.last = None
    for ins in cursor:
      if ins is FUNCTION_BOUNDARY:
        self.last = None
        self._in_outermost = False
        break
      self._handlers[ins.kind](ins, cursor, scope)

  # --- Lookahead ---

  def _detect_simple_module(self, main: Optional[FunctionListing]) -> None:
    """
    Treats a main chunk ending in ``return <local>`` as exporting that local.
    """
    if main is None:
      return
    ret = main.final_return()
    if ret is None:
      return
    single_value = ret.opcode == "RETURN1" or ret.b == 2
    if not single_value:
      return
    local = main.scope.resolve_local(ret.a, ret.index)
    if local is None:
      return
    self.known.register(local)
    self.report.remark.simple_module = local.name

  # --- Transition rules ---

  def _ignore(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    pass

  def _global_get(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    name = ins.constant
    owner = self._table_owner(ins, ins.b, scope)
    if name is None or owner is None:
      return

    if owner:
      index = self._add(ins.line, f"{owner}.{name}", write=False)
      self.last = _Pending(ins, f"{owner}.{name}", index)
      return

    index = self._add(ins.line, name, write=False)
    self.last = _Pending(ins, name, index)

    if name in REQUIRE_FUNCTIONS:
      self._require_idiom(ins, cursor, scope)
    elif name in MODULE_FUNCTIONS and self._in_outermost:
      self._module_idiom(ins, cursor)

  def _global_set(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    name = ins.constant
    owner = self._table_owner(ins, ins.a, scope)
    if name is None or owner is None:
      return
    self._add(ins.line, f"{owner}.{name}" if owner else name, write=True)

  def _field_access(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    key = ins.constant
    if key is None:
      return
    write = ins.kind is OpcodeKind.TABLE_SET
    register = ins.table_register

    pending = self.last
    if (
      pending is not None
      and 0 < ins.index - pending.instruction.index <= CHAIN_WINDOW
      and register == pending.instruction.a
    ):
      ref = Reference(pending.instruction.line, f"{pending.qualifier}.{key}", write)
      if pending.reference is not None:
        self.report.references[pending.reference] = ref
      else:
        self.report.references.append(ref)
      self.last = None
      return

    local = scope.resolve_local(register, ins.index)
    if local is not None and local.known:
      self._add(ins.line, f"{local.name}.{key}", write)

  def _upvalue_get(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    captured = scope.resolve_captured(ins.b)
    name = captured.name if captured else ins.constant
    if name and scope.lookup_known(name) is not None:
      self.last = _Pending(ins, name)

  # --- Idioms ---

  def _require_idiom(self, ins: Instruction, cursor: InstructionCursor, scope: ScopeTracker) -> None:
    """
    Consumes ``LOADK "name"`` and the ``CALL`` following a ``require`` read.
    """
    load = cursor.peek(1)
    call = cursor.peek(2)
    if load is None or call is None:
      return
    if load.kind is not OpcodeKind.LOAD_CONSTANT or load.constant is None or load.a != (ins.a or 0) + 1:
      return
    if call.kind is not OpcodeKind.CALL or call.a != ins.a:
      return
    cursor.skip(2)
    self.last = None

    alias = None
    # C == 1 means the call's results are discarded.
    if call.c != 1:
      local = scope.resolve_local(call.a, call.index)
      if local is not None:
        scope.register_known(local)
        alias = local.name
    self.report.requirements.append(Requirement(module=load.constant, line=ins.line, alias=alias))

  def _module_idiom(self, ins: Instruction, cursor: InstructionCursor) -> None:
    """
    Records a ``module(...)`` declaration.

    Looks ahead (without consuming) up to the call on the same register to see
    whether an option such as ``package.seeall`` is passed.
    """
    remark = self.report.remark
    remark.declared = True
    remark.line = ins.line

    first = cursor.peek(1)
    if first is not None and first.kind is OpcodeKind.LOAD_CONSTANT:
      remark.name = first.constant

    offset = 1
    prev: Optional[Instruction] = None
    while True:
      nxt = cursor.peek(offset)
      if nxt is None:
        break
      if nxt.kind is OpcodeKind.CALL and nxt.a == ins.a:
        break
      if (
        prev is not None
        and prev.kind is OpcodeKind.GLOBAL_GET
        and prev.constant == "package"
        and nxt.kind is OpcodeKind.TABLE_GET
        and nxt.constant == "seeall"
      ):
        remark.strict = True
      prev = nxt
      offset += 1

  # --- Helpers ---

  def _table_owner(self, ins: Instruction, upvalue_slot: Optional[int], scope: ScopeTracker) -> Optional[str]:
    """
    Determines whose table a global-style instruction indexes.

    Returns:
        "" for the real environment, the alias name for an upvalue holding a
        known local, or None for any other upvalue table.
    """
    if ins.opcode in ("GETGLOBAL", "SETGLOBAL"):
      return ""
    captured = scope.resolve_captured(upvalue_slot)
    name = captured.name if captured else ins.upvalue
    if name is None or name == ENVIRONMENT_UPVALUE:
      return ""
    if scope.lookup_known(name) is not None:
      return name
    return None

  def _add(self, line: int, name: str, write: bool) -> int:
    self.report.references.append(Reference(line, name, write))
    return len(self.report.references) - 1


def resolve_listing(text: str) -> ReferenceReport:
  """
  Convenience wrapper resolving the references of a complete listing.

  Args:
      text: Output of ``luac -l -l``.

  Returns:
      ReferenceReport for the unit.
  """
  stream = DisassemblyStream.from_text(text)
  return ReferenceResolver(stream.known).resolve(stream)
