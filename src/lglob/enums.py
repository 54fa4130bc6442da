"""
Enumerations for lglob.

This module defines the closed enumerations shared across the codebase:
opcode classification for the reference resolver and diagnostic severities.
"""

from enum import Enum


class OpcodeKind(str, Enum):
  """
  Classification of Lua VM opcodes relevant to global access tracking.

  Every opcode printed by ``luac`` maps to exactly one kind. The reference
  resolver dispatches on this value, one handler per transition rule.
  """

  GLOBAL_GET = "global_get"  # GETGLOBAL, GETTABUP
  GLOBAL_SET = "global_set"  # SETGLOBAL, SETTABUP
  TABLE_GET = "table_get"  # GETTABLE, GETFIELD, SELF
  TABLE_SET = "table_set"  # SETTABLE, SETFIELD
  UPVALUE_GET = "upvalue_get"  # GETUPVAL
  LOAD_CONSTANT = "load_constant"  # LOADK
  CALL = "call"  # CALL, TAILCALL
  RETURN = "return"  # RETURN, RETURN1
  RETURN_NONE = "return_none"  # RETURN0
  OTHER = "other"


class Severity(str, Enum):
  """
  Diagnostic severity. Only errors turn a unit's verdict into a failure.
  """

  ERROR = "error"
  WARNING = "warning"
