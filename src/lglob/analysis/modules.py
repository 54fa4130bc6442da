"""
Module Resolution for Require Tracking.

When ``load_requires`` is enabled, the policy engine asks a `ModuleLoader` for
the export surface of every module a unit requires, and binds it under the
local alias the result was stored into.

A module resolves, in order:

1.  From the whitelist itself, when it already holds a namespace under the
    module's name (``require "string"``, or an extra whitelist describing a
    third-party library).
2.  From a Lua source file found through ``package.path`` style templates
    (``?.lua``, ``?/init.lua``). The file is analyzed with the same engine and
    its surface derived from its module idiom:

    * ``return M`` (simple module): the members the unit assigns into ``M``.
    * ``module(...)``: the globals the unit defines after the declaration.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from lglob.analysis.references import ReferenceReport
from lglob.analysis.whitelist import ANY, Namespace, resolve, written_bindings
from lglob.bytecode.instruction import ListingSyntaxError
from lglob.core.luac import DisassemblerError


class ModuleResolutionError(LookupError):
  """Raised when a required module cannot be located or has no export table."""


def export_surface(report: ReferenceReport) -> Optional[Namespace]:
  """
  Derives the names a unit exports from its module idiom.

  Args:
      report: The unit's resolved references.

  Returns:
      A Namespace of exported members, or None when the unit follows
      neither module idiom. Member writes such as ``string.trim = f`` export
      only the written path.
  """
  remark = report.remark
  if remark.simple_module:
    prefix = remark.simple_module + "."
    members = {}
    for ref in report.references:
      if ref.write and ref.name.startswith(prefix):
        members[ref.name[len(prefix) :].split(".", 1)[0]] = ANY
    return Namespace(members)

  if remark.declared:
    names = {ref.name for ref in report.references if ref.write and ref.line >= remark.line}
    if remark.name:
      names.add(remark.name.split(".", 1)[0])
    return Namespace(written_bindings(names))

  return None


class ModuleLoader:
  """
  Resolves module names to export surfaces, with caching.
  """

  def __init__(
    self,
    analyze: Callable[[Path], ReferenceReport],
    lua_path: Sequence[str] = ("?.lua", "?/init.lua"),
    search_dirs: Optional[Sequence[Path]] = None,
    whitelist: Optional[Namespace] = None,
  ):
    """
    Initializes the loader.

    Args:
        analyze: Callback producing the ReferenceReport of a Lua source file.
        lua_path: Path templates, ``?`` standing for the module name with dots
            turned into directory separators.
        search_dirs: Base directories for relative templates (defaults to cwd).
        whitelist: Whitelist consulted before searching the filesystem.
    """
    self.analyze = analyze
    self.lua_path = list(lua_path)
    self.search_dirs = [Path(d) for d in search_dirs] if search_dirs else [Path.cwd()]
    self.whitelist = whitelist or Namespace()
    self._cache: Dict[str, Namespace] = {}
    self._in_progress: set = set()

  def __call__(self, module: str) -> Namespace:
    return self.resolve(module)

  def resolve(self, module: str) -> Namespace:
    """
    Finds the export surface of a module.

    Args:
        module: Name as passed to ``require``.

    Returns:
        The module's export Namespace.

    Raises:
        ModuleResolutionError: If no source is found, the module requires
            itself cyclically, or the source exports no table.
    """
    if module in self._cache:
      return self._cache[module]

    known, _ = resolve(self.whitelist, module)
    if isinstance(known, Namespace):
      self._cache[module] = known
      return known

    if module in self._in_progress:
      raise ModuleResolutionError(f"circular require of '{module}'")

    path = self.find(module)
    if path is None:
      raise ModuleResolutionError(f"module '{module}' not found on path {';'.join(self.lua_path)}")

    self._in_progress.add(module)
    try:
      report = self.analyze(path)
    except (DisassemblerError, ListingSyntaxError) as e:
      raise ModuleResolutionError(f"module '{module}' ({path}) cannot be analyzed: {e}") from e
    finally:
      self._in_progress.discard(module)

    surface = export_surface(report)
    if surface is None:
      raise ModuleResolutionError(f"module '{module}' ({path}) does not export a table")
    self._cache[module] = surface
    return surface

  def find(self, module: str) -> Optional[Path]:
    """
    Searches the path templates for a module's source file.

    Args:
        module: Dotted module name.

    Returns:
        The first existing file, or None.
    """
    rel = module.replace(".", "/")
    for base in self.search_dirs:
      for template in self.candidates(rel):
        candidate = Path(template)
        if not candidate.is_absolute():
          candidate = base / candidate
        if candidate.is_file():
          return candidate
    return None

  def candidates(self, rel: str) -> List[str]:
    return [template.replace("?", rel) for template in self.lua_path]
