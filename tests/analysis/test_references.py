"""
Tests for the Reference Resolver.

Each scenario feeds a hand-checked listing through the resolver and inspects
the references, requirements and module remark it reports.
"""

import re

from lglob.analysis.references import (
  CHAIN_WINDOW,
  ModuleRemark,
  Reference,
  ReferenceResolver,
  Requirement,
  resolve_listing,
)
from lglob.bytecode.stream import DisassemblyStream


def _listing_lines(listing: str):
  return {int(m.group(1)) for m in re.finditer(r"^\t\d+\t\[(\d+)\]", listing, re.MULTILINE)}


def test_chained_field_read_yields_one_reference(require_listing):
  """
  Scenario: `string` read immediately followed by a `format` field read on
  the same register.
  Expectation: exactly one `string.format` read at the global read's line.
  """
  report = resolve_listing(require_listing)
  names = [ref.name for ref in report.references]
  assert "string.format" in names
  assert "string" not in names
  assert Reference(3, "string.format", False) in report.references


def test_require_alias_and_field_write(require_listing):
  report = resolve_listing(require_listing)
  assert report.requirements == [Requirement(module="mod", line=1, alias="t")]
  assert Reference(2, "t.x", True) in report.references
  assert report.aliases == ["t"]


def test_references_keep_instruction_order(require_listing):
  report = resolve_listing(require_listing)
  assert report.references == [
    Reference(1, "require", False),
    Reference(2, "t.x", True),
    Reference(3, "print", False),
    Reference(3, "string.format", False),
  ]


def test_every_reference_line_exists_in_listing(
  require_listing,
  open_module_listing,
  strict_module_listing,
  upvalue_alias_listing,
  env_listing_52,
  simple_module_listing_54,
):
  for listing in (
    require_listing,
    open_module_listing,
    strict_module_listing,
    upvalue_alias_listing,
    env_listing_52,
    simple_module_listing_54,
  ):
    lines = _listing_lines(listing)
    for ref in resolve_listing(listing).references:
      assert ref.line in lines


def test_alias_captured_by_nested_function(upvalue_alias_listing):
  """A require alias captured as an upvalue still qualifies field reads."""
  report = resolve_listing(upvalue_alias_listing)
  assert Reference(2, "t.y", False) in report.references
  assert Reference(2, "f", True) in report.references


def test_open_module_remark(open_module_listing):
  report = resolve_listing(open_module_listing)
  remark = report.remark
  assert remark.declared
  assert remark.line == 1
  assert remark.name == "M"
  assert not remark.strict
  assert remark.is_open
  assert Reference(2, "M.f", True) in report.references
  assert Reference(3, "bar", False) in report.references


def test_strict_module_remark(strict_module_listing):
  report = resolve_listing(strict_module_listing)
  assert report.remark.declared
  assert report.remark.strict
  assert not report.remark.is_open
  assert Reference(1, "package.seeall", False) in report.references
  assert Reference(3, "helper", True) in report.references


def test_simple_module_detection(simple_module_listing):
  stream = DisassemblyStream.from_text(simple_module_listing)
  report = ReferenceResolver(stream.known).resolve(stream)
  assert report.remark.simple_module == "M"
  assert "M" in stream.known
  assert report.references == [Reference(2, "M.f", True)]


def test_env_upvalue_accesses_52(env_listing_52):
  report = resolve_listing(env_listing_52)
  assert report.references == [
    Reference(1, "print", False),
    Reference(1, "x", False),
    Reference(2, "y", True),
  ]
  assert report.remark == ModuleRemark()


def test_simple_module_54(simple_module_listing_54):
  """
  Lua 5.4 shapes: VARARGPREP, GETFIELD/SETFIELD, `k` operands and the
  `RETURN 1 2 1k` / `RETURN 2 1 1k` pair closing the main chunk.
  """
  stream = DisassemblyStream.from_text(simple_module_listing_54)
  report = ReferenceResolver(stream.known).resolve(stream)
  assert report.remark.simple_module == "M"
  assert report.requirements == [Requirement(module="json", line=1, alias="json")]
  assert report.references == [
    Reference(1, "require", False),
    Reference(3, "M.f", True),
    Reference(3, "json.encode", False),
  ]
  assert sorted(stream.known.names()) == ["M", "json"]


def test_local_table_operations_are_ignored():
  listing = """
main <loc.lua:0,0> (4 instructions at 0x1)
0+ params, 2 slots, 0 upvalues, 1 local, 1 constant, 0 functions
\t1\t[1]\tNEWTABLE \t0 0 0
\t2\t[2]\tSETTABLE \t0 -1 -1\t; "k" "k"
\t3\t[3]\tGETTABLE \t1 0 -1\t; "k"
\t4\t[3]\tRETURN   \t0 1
constants (1) for 0x1:
\t1\t"k"
locals (1) for 0x1:
\t0\tlocal_t\t2\t5
upvalues (0) for 0x1:
"""
  assert resolve_listing(listing).references == []


def test_chain_window_is_bounded():
  """A field read more than two instructions after the global read stands alone."""
  listing = """
main <w.lua:0,0> (5 instructions at 0x1)
0+ params, 3 slots, 0 upvalues, 0 locals, 2 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; foo
\t2\t[1]\tLOADNIL  \t1 1
\t3\t[1]\tLOADNIL  \t2 2
\t4\t[2]\tGETTABLE \t0 0 -2\t; "bar"
\t5\t[2]\tRETURN   \t0 1
constants (2) for 0x1:
\t1\t"foo"
\t2\t"bar"
locals (0) for 0x1:
upvalues (0) for 0x1:
"""
  assert CHAIN_WINDOW == 2
  assert resolve_listing(listing).references == [Reference(1, "foo", False)]


def test_chain_requires_same_register():
  listing = """
main <r.lua:0,0> (3 instructions at 0x1)
0+ params, 3 slots, 0 upvalues, 0 locals, 2 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; foo
\t2\t[1]\tGETTABLE \t1 2 -2\t; "bar"
\t3\t[1]\tRETURN   \t0 1
constants (2) for 0x1:
\t1\t"foo"
\t2\t"bar"
locals (0) for 0x1:
upvalues (0) for 0x1:
"""
  assert resolve_listing(listing).references == [Reference(1, "foo", False)]


def test_chain_does_not_cross_function_boundary():
  """`last` is cleared when a function's instructions end."""
  listing = """
main <b.lua:0,0> (2 instructions at 0x1)
0+ params, 2 slots, 0 upvalues, 0 locals, 1 constant, 1 function
\t1\t[1]\tGETGLOBAL\t0 -1\t; foo
\t2\t[1]\tRETURN   \t0 1
constants (1) for 0x1:
\t1\t"foo"
locals (0) for 0x1:
upvalues (0) for 0x1:

function <b.lua:2,2> (2 instructions at 0x2)
0 params, 2 slots, 0 upvalues, 0 locals, 1 constant, 0 functions
\t1\t[2]\tGETTABLE \t0 0 -1\t; "bar"
\t2\t[2]\tRETURN   \t0 1
constants (1) for 0x2:
\t1\t"bar"
locals (0) for 0x2:
upvalues (0) for 0x2:
"""
  assert resolve_listing(listing).references == [Reference(1, "foo", False)]


def test_require_with_discarded_result_has_no_alias():
  listing = """
main <d.lua:0,0> (4 instructions at 0x1)
0+ params, 2 slots, 0 upvalues, 0 locals, 2 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; require
\t2\t[1]\tLOADK    \t1 -2\t; "socket"
\t3\t[1]\tCALL     \t0 2 1
\t4\t[1]\tRETURN   \t0 1
constants (2) for 0x1:
\t1\t"require"
\t2\t"socket"
locals (0) for 0x1:
upvalues (0) for 0x1:
"""
  report = resolve_listing(listing)
  assert report.requirements == [Requirement(module="socket", line=1, alias=None)]
  assert report.aliases == []


def test_module_call_in_nested_function_is_not_a_declaration():
  listing = """
main <n.lua:0,0> (1 instruction at 0x1)
0+ params, 2 slots, 0 upvalues, 0 locals, 0 constants, 1 function
\t1\t[3]\tRETURN   \t0 1
constants (0) for 0x1:
locals (0) for 0x1:
upvalues (0) for 0x1:

function <n.lua:1,3> (4 instructions at 0x2)
0 params, 2 slots, 0 upvalues, 0 locals, 2 constants, 0 functions
\t1\t[2]\tGETGLOBAL\t0 -1\t; module
\t2\t[2]\tLOADK    \t1 -2\t; "M"
\t3\t[2]\tCALL     \t0 2 1
\t4\t[3]\tRETURN   \t0 1
constants (2) for 0x2:
\t1\t"module"
\t2\t"M"
locals (0) for 0x2:
upvalues (0) for 0x2:
"""
  report = resolve_listing(listing)
  assert not report.remark.declared
  assert report.references == [Reference(2, "module", False)]
