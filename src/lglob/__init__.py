"""
lglob Package.

A static checker for global variable access in Lua programs. It reads the
bytecode listing ``luac -l -l`` prints, works out every read and write of a
name outside the unit's locals, and checks each one against a whitelist of
permitted globals.

Usage
-----

Checking a File
^^^^^^^^^^^^^^^

.. code-block:: python

    import lglob
    result = lglob.check("game.lua", globals_within_module=True)
    for diag in result.diagnostics:
        print(diag.format())

Checking a Listing (Engine)
^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from lglob import AnalysisConfig, LintEngine

    engine = LintEngine(AnalysisConfig(lua_version="5.4", tolerant=True))
    res = engine.check_listing("game.lua", listing_text)

    if not res.success:
        print(res.errors)
"""

from pathlib import Path
from typing import Union

from lglob.config import AnalysisConfig
from lglob.core.engine import LintEngine
from lglob.core.result import BatchResult, Diagnostic, UnitResult

__version__ = "0.1.0"


def check(
  path: Union[str, Path],
  tolerant: bool = False,
  globals_within_module: bool = False,
  load_requires: bool = False,
  lua_version: str = "5.1",
) -> UnitResult:
  """
  Checks a single Lua source file against the standard globals.

  This is a convenience wrapper around `LintEngine`; use the engine directly
  for batches or custom whitelists.

  Args:
      path: The ``.lua`` file.
      tolerant: Accept any previously or newly defined global.
      globals_within_module: Permit the unit's own globals everywhere in it.
      load_requires: Whitelist the exports of required modules.
      lua_version: Selects the builtin whitelist.

  Returns:
      UnitResult: Verdict and diagnostics.
  """
  config = AnalysisConfig(
    tolerant=tolerant,
    globals_within_module=globals_within_module,
    load_requires=load_requires,
    lua_version=lua_version,
  )
  return LintEngine(config).check_file(Path(path))


__all__ = [
  "AnalysisConfig",
  "BatchResult",
  "Diagnostic",
  "LintEngine",
  "UnitResult",
  "check",
  "__version__",
]
