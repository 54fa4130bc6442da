"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Console isolation so log output lands in a buffer instead of stdout.
- Hand-checked ``luac -l -l`` listings for Lua 5.1, 5.2 and 5.4 units.
"""

import io
import sys
import pytest
from pathlib import Path

from rich.console import Console

# Add src to path so we can import 'lglob' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from lglob.utils.console import THEME, reset_console, set_console  # noqa: E402


@pytest.fixture(autouse=True)
def captured_console():
  """
  Routes the rich console and the package logger into a buffer for the
  duration of a test, so JSON printed to stdout stays parseable.
  """
  buf = io.StringIO()
  set_console(Console(file=buf, width=200, force_terminal=False, color_system=None, theme=THEME))
  yield buf
  reset_console()


# local t = require "mod"
# t.x = 1
# print(string.format("%d", 1))
REQUIRE_LISTING = """
main <req.lua:0,0> (12 instructions, 48 bytes at 0x1)
0+ params, 5 slots, 0 upvalues, 1 local, 8 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; require
\t2\t[1]\tLOADK    \t1 -2\t; "mod"
\t3\t[1]\tCALL     \t0 2 2
\t4\t[2]\tSETTABLE \t0 -3 -4\t; "x" 1
\t5\t[3]\tGETGLOBAL\t1 -5\t; print
\t6\t[3]\tGETGLOBAL\t2 -6\t; string
\t7\t[3]\tGETTABLE \t2 2 -7\t; "format"
\t8\t[3]\tLOADK    \t3 -8\t; "%d"
\t9\t[3]\tLOADK    \t4 -4\t; 1
\t10\t[3]\tCALL     \t2 3 0
\t11\t[3]\tCALL     \t1 0 1
\t12\t[3]\tRETURN   \t0 1
constants (8) for 0x1:
\t1\t"require"
\t2\t"mod"
\t3\t"x"
\t4\t1
\t5\t"print"
\t6\t"string"
\t7\t"format"
\t8\t"%d"
locals (1) for 0x1:
\t0\tt\t4\t13
upvalues (0) for 0x1:
"""

# module("M")
# function M.f() end
# bar()
OPEN_MODULE_LISTING = """
main <m.lua:0,0> (9 instructions, 36 bytes at 0x1)
0+ params, 2 slots, 0 upvalues, 0 locals, 4 constants, 1 function
\t1\t[1]\tGETGLOBAL\t0 -1\t; module
\t2\t[1]\tLOADK    \t1 -2\t; "M"
\t3\t[1]\tCALL     \t0 2 1
\t4\t[2]\tGETGLOBAL\t0 -2\t; M
\t5\t[2]\tCLOSURE  \t1 0\t; 0x2
\t6\t[2]\tSETTABLE \t0 -3 1\t; "f" -
\t7\t[3]\tGETGLOBAL\t0 -4\t; bar
\t8\t[3]\tCALL     \t0 1 1
\t9\t[3]\tRETURN   \t0 1
constants (4) for 0x1:
\t1\t"module"
\t2\t"M"
\t3\t"f"
\t4\t"bar"
locals (0) for 0x1:
upvalues (0) for 0x1:

function <m.lua:2,2> (1 instruction, 4 bytes at 0x2)
0 params, 2 slots, 0 upvalues, 0 locals, 0 constants, 0 functions
\t1\t[2]\tRETURN   \t0 1
constants (0) for 0x2:
locals (0) for 0x2:
upvalues (0) for 0x2:
"""

# print()
# module("M")
# print()
PRINT_AROUND_MODULE_LISTING = """
main <p.lua:0,0> (8 instructions, 32 bytes at 0x1)
0+ params, 2 slots, 0 upvalues, 0 locals, 3 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; print
\t2\t[1]\tCALL     \t0 1 1
\t3\t[2]\tGETGLOBAL\t0 -2\t; module
\t4\t[2]\tLOADK    \t1 -3\t; "M"
\t5\t[2]\tCALL     \t0 2 1
\t6\t[3]\tGETGLOBAL\t0 -1\t; print
\t7\t[3]\tCALL     \t0 1 1
\t8\t[3]\tRETURN   \t0 1
constants (3) for 0x1:
\t1\t"print"
\t2\t"module"
\t3\t"M"
locals (0) for 0x1:
upvalues (0) for 0x1:
"""

# module("M", package.seeall)
# print()
# helper = 1
STRICT_MODULE_LISTING = """
main <s.lua:0,0> (10 instructions, 40 bytes at 0x1)
0+ params, 3 slots, 0 upvalues, 0 locals, 7 constants, 0 functions
\t1\t[1]\tGETGLOBAL\t0 -1\t; module
\t2\t[1]\tLOADK    \t1 -2\t; "M"
\t3\t[1]\tGETGLOBAL\t2 -3\t; package
\t4\t[1]\tGETTABLE \t2 2 -4\t; "seeall"
\t5\t[1]\tCALL     \t0 3 1
\t6\t[2]\tGETGLOBAL\t0 -5\t; print
\t7\t[2]\tCALL     \t0 1 1
\t8\t[3]\tLOADK    \t0 -7\t; 1
\t9\t[3]\tSETGLOBAL\t0 -6\t; helper
\t10\t[3]\tRETURN   \t0 1
constants (7) for 0x1:
\t1\t"module"
\t2\t"M"
\t3\t"package"
\t4\t"seeall"
\t5\t"print"
\t6\t"helper"
\t7\t1
locals (0) for 0x1:
upvalues (0) for 0x1:
"""

# local M = {}
# function M.f() end
# return M
SIMPLE_MODULE_LISTING = """
main <simple.lua:0,0> (5 instructions, 20 bytes at 0x1)
0+ params, 2 slots, 0 upvalues, 1 local, 1 constant, 1 function
\t1\t[1]\tNEWTABLE \t0 0 0
\t2\t[2]\tCLOSURE  \t1 0\t; 0x2
\t3\t[2]\tSETTABLE \t0 -1 1\t; "f" -
\t4\t[3]\tRETURN   \t0 2
\t5\t[3]\tRETURN   \t0 1
constants (1) for 0x1:
\t1\t"f"
locals (1) for 0x1:
\t0\tM\t2\t5
upvalues (0) for 0x1:

function <simple.lua:2,2> (1 instruction, 4 bytes at 0x2)
0 params, 2 slots, 0 upvalues, 0 locals, 0 constants, 0 functions
\t1\t[2]\tRETURN   \t0 1
constants (0) for 0x2:
locals (0) for 0x2:
upvalues (0) for 0x2:
"""

# local t = require "mod"
# function f() return t.y end
UPVALUE_ALIAS_LISTING = """
main <up.lua:0,0> (7 instructions, 28 bytes at 0x1)
0+ params, 2 slots, 0 upvalues, 1 local, 3 constants, 1 function
\t1\t[1]\tGETGLOBAL\t0 -1\t; require
\t2\t[1]\tLOADK    \t1 -2\t; "mod"
\t3\t[1]\tCALL     \t0 2 2
\t4\t[2]\tCLOSURE  \t1 0\t; 0x2
\t5\t[2]\tMOVE     \t0 0
\t6\t[2]\tSETGLOBAL\t1 -3\t; f
\t7\t[2]\tRETURN   \t0 1
constants (3) for 0x1:
\t1\t"require"
\t2\t"mod"
\t3\t"f"
locals (1) for 0x1:
\t0\tt\t4\t8
upvalues (0) for 0x1:

function <up.lua:2,2> (4 instructions, 16 bytes at 0x2)
0 params, 2 slots, 1 upvalue, 0 locals, 1 constant, 0 functions
\t1\t[2]\tGETUPVAL \t0 0\t; t
\t2\t[2]\tGETTABLE \t0 0 -1\t; "y"
\t3\t[2]\tRETURN   \t0 2
\t4\t[2]\tRETURN   \t0 1
constants (1) for 0x2:
\t1\t"y"
locals (0) for 0x2:
upvalues (1) for 0x2:
\t0\tt
"""

# print(x)
# y = 1
ENV_LISTING_52 = """
main <env.lua:0,0> (5 instructions at 0x1)
0+ params, 2 slots, 1 upvalue, 0 locals, 4 constants, 0 functions
\t1\t[1]\tGETTABUP\t0 0 -1\t; _ENV "print"
\t2\t[1]\tGETTABUP\t1 0 -2\t; _ENV "x"
\t3\t[1]\tCALL    \t0 2 1
\t4\t[2]\tSETTABUP\t0 -3 -4\t; _ENV "y" 1
\t5\t[2]\tRETURN  \t0 1
constants (4) for 0x1:
\t1\t"print"
\t2\t"x"
\t3\t"y"
\t4\t1
locals (0) for 0x1:
upvalues (1) for 0x1:
\t0\t_ENV\t1\t0
"""


# local json = require "json"
# local M = {}
# function M.f(v) return json.encode(v) end
# return M
SIMPLE_MODULE_LISTING_54 = """
main <m54.lua:0,0> (10 instructions at 0x1)
0+ params, 3 slots, 1 upvalue, 2 locals, 3 constants, 1 function
\t1\t[1]\tVARARGPREP\t0
\t2\t[1]\tGETTABUP \t0 0 0\t; _ENV "require"
\t3\t[1]\tLOADK    \t1 1\t; "json"
\t4\t[1]\tCALL     \t0 2 2\t; 1 in 1 out
\t5\t[2]\tNEWTABLE \t1 0 0\t; 0
\t6\t[2]\tEXTRAARG \t0
\t7\t[3]\tCLOSURE  \t2 0\t; 0x2
\t8\t[3]\tSETFIELD \t1 2 2\t; "f" -
\t9\t[4]\tRETURN   \t1 2 1k\t; 1 out
\t10\t[4]\tRETURN   \t2 1 1k\t; 0 out
constants (3) for 0x1:
\t0\tS\t"require"
\t1\tS\t"json"
\t2\tS\t"f"
locals (2) for 0x1:
\t0\tjson\t5\t11
\t1\tM\t7\t11
upvalues (1) for 0x1:
\t0\t_ENV\t1\t0

function <m54.lua:3,3> (6 instructions at 0x2)
1 param, 3 slots, 1 upvalue, 1 local, 1 constant, 0 functions
\t1\t[3]\tGETUPVAL \t1 0\t; json
\t2\t[3]\tGETFIELD \t1 1 0\t; "encode"
\t3\t[3]\tMOVE     \t2 0
\t4\t[3]\tTAILCALL \t1 2 0\t; 1 in 0 out
\t5\t[3]\tRETURN   \t1 0 0\t; all out
\t6\t[3]\tRETURN0
constants (1) for 0x2:
\t0\tS\t"encode"
locals (1) for 0x2:
\t0\tv\t1\t7
upvalues (1) for 0x2:
\t0\tjson\t1\t0
"""


@pytest.fixture
def require_listing() -> str:
  return REQUIRE_LISTING


@pytest.fixture
def open_module_listing() -> str:
  return OPEN_MODULE_LISTING


@pytest.fixture
def print_around_module_listing() -> str:
  return PRINT_AROUND_MODULE_LISTING


@pytest.fixture
def strict_module_listing() -> str:
  return STRICT_MODULE_LISTING


@pytest.fixture
def simple_module_listing() -> str:
  return SIMPLE_MODULE_LISTING


@pytest.fixture
def upvalue_alias_listing() -> str:
  return UPVALUE_ALIAS_LISTING


@pytest.fixture
def env_listing_52() -> str:
  return ENV_LISTING_52


@pytest.fixture
def simple_module_listing_54() -> str:
  return SIMPLE_MODULE_LISTING_54
