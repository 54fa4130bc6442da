"""
Scope Tracker.

Reconstructs per-function variable information from the symbol sections of a
``luac -l -l`` listing:

1.  **Locals** (``locals (<n>)`` rows of ``<idx> <name> <start> <end>``) become
    `LocalSlot` live ranges keyed by register.
2.  **Upvalues** (``upvalues (<n>)`` rows of ``<idx> <name> ...``) become
    `CapturedVariable` entries.
3.  **Known locals**: locals bound to a module value (a ``require`` alias or the
    table a unit returns) are registered in a `KnownLocals` registry shared by
    every function of the unit, since such aliases are usually captured once
    and reused by nested functions.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

_LOCAL_ROW_RE = re.compile(r"^\s*(\d+)\s+(.+?)\s+(\d+)\s+(\d+)\s*$")
_UPVALUE_ROW_RE = re.compile(r"^\s*(\d+)\s+(\S+)")


@dataclass
class LocalSlot:
  """
  A local variable and the instruction range it occupies its register.
  """

  slot: int
  """Register number."""

  name: str

  start: int
  """First instruction index (inclusive) at which the register holds this local."""

  end: int
  """Last instruction index (inclusive)."""

  known: bool = False
  """True once bound to a tracked module value or require alias."""

  def covers(self, position: int) -> bool:
    return self.start <= position <= self.end


@dataclass(frozen=True)
class CapturedVariable:
  """An upvalue visible to the current function from an enclosing scope."""

  slot: int
  name: str


class KnownLocals:
  """
  Registry of locals known to hold module values, persisting across one unit.

  The registry only grows; it is discarded together with the unit's analysis.
  """

  def __init__(self) -> None:
    self._by_name: Dict[str, LocalSlot] = {}

  def register(self, local: LocalSlot) -> None:
    """
    Flags a local as known and makes it queryable by name.

    Args:
        local: The slot to register.
    """
    local.known = True
    self._by_name[local.name] = local

  def lookup(self, name: str) -> Optional[LocalSlot]:
    """
    Finds the registered local with the given name.

    Args:
        name: Variable identifier.

    Returns:
        The LocalSlot if registered, else None.
    """
    return self._by_name.get(name)

  def names(self) -> List[str]:
    return list(self._by_name)

  def __contains__(self, name: object) -> bool:
    return name in self._by_name

  def __len__(self) -> int:
    return len(self._by_name)


class ScopeTracker:
  """
  Local and captured-variable tables for one function.
  """

  def __init__(
    self,
    locals_: Optional[List[LocalSlot]] = None,
    captured: Optional[List[CapturedVariable]] = None,
    known: Optional[KnownLocals] = None,
  ):
    """
    Initializes the tracker.

    Args:
        locals_: Resolved local slots.
        captured: Upvalues of the function.
        known: The unit-wide registry of known locals.
    """
    self.locals: List[LocalSlot] = locals_ or []
    self.captured: List[CapturedVariable] = captured or []
    self.known = known if known is not None else KnownLocals()

  @classmethod
  def from_sections(
    cls,
    local_rows: Iterable[str],
    upvalue_rows: Iterable[str],
    known: Optional[KnownLocals] = None,
  ) -> "ScopeTracker":
    """
    Builds the tables from raw section rows.

    Registers are not printed by luac, so they are reconstructed from the
    ranges: the register of a local is the number of earlier locals still live
    where it starts. Compiler-generated locals (``(for index)`` and friends)
    take part in that count but are not kept, and neither are rows without
    resolvable bounds.

    The start of each range moves one instruction earlier, onto the instruction
    that performs the initial assignment.

    Args:
        local_rows: Lines following the ``locals (<n>)`` header.
        upvalue_rows: Lines following the ``upvalues (<n>)`` header.
        known: The unit-wide registry of known locals.

    Returns:
        A populated ScopeTracker.
    """
    declared = []
    for row in local_rows:
      match = _LOCAL_ROW_RE.match(row)
      if match:
        declared.append((match.group(2), int(match.group(3)), int(match.group(4))))

    slots: List[LocalSlot] = []
    for i, (name, start, end) in enumerate(declared):
      register = sum(1 for _, _, prev_end in declared[:i] if prev_end > start)
      if name.startswith("("):
        continue
      slots.append(LocalSlot(slot=register, name=name, start=max(start - 1, 0), end=max(end, start - 1)))

    captured = []
    for row in upvalue_rows:
      match = _UPVALUE_ROW_RE.match(row)
      if match:
        captured.append(CapturedVariable(slot=int(match.group(1)), name=match.group(2)))

    return cls(slots, captured, known)

  def resolve_local(self, slot: Optional[int], position: int) -> Optional[LocalSlot]:
    """
    Finds the local occupying a register at an instruction position.

    Args:
        slot: Register number.
        position: Instruction index.

    Returns:
        The matching LocalSlot, or None.
    """
    if slot is None:
      return None
    for local in self.locals:
      if local.slot == slot and local.covers(position):
        return local
    return None

  def resolve_captured(self, slot: Optional[int]) -> Optional[CapturedVariable]:
    """
    Finds the upvalue with the given index.

    Args:
        slot: Upvalue index.

    Returns:
        The CapturedVariable, or None.
    """
    if slot is None:
      return None
    for upvalue in self.captured:
      if upvalue.slot == slot:
        return upvalue
    return None

  def register_known(self, local: LocalSlot) -> None:
    """Registers a local in the unit-wide KnownLocals registry."""
    self.known.register(local)

  def lookup_known(self, name: str) -> Optional[LocalSlot]:
    """Returns the registered known local with that name, if any."""
    return self.known.lookup(name)
