"""
Whitelist Definitions.

Ships JSON whitelists of the Lua standard globals for each supported version
(``lua51.json`` ... ``lua54.json``) and loads user supplied whitelists in the
same format: JSON objects are namespaces, any other value is a terminal symbol.
"""

import json
import sys
from pathlib import Path
from typing import Iterable, Optional

from lglob.analysis.whitelist import Namespace

if sys.version_info >= (3, 9):
  from importlib.resources import files
else:
  files = None


def resolve_whitelists_dir() -> Path:
  """
  Locates the directory holding the builtin whitelist JSON files.

  Prefers the source tree next to this file (tests, editable installs) and
  falls back to package resources.

  Returns:
      Path: The absolute path to the whitelists directory.
  """
  local_path = Path(__file__).parent
  if (local_path / "lua51.json").exists():
    return local_path

  if files:
    try:
      return Path(str(files("lglob.whitelists")))
    except (ModuleNotFoundError, TypeError):
      pass

  return local_path


def load_whitelist(path: Path) -> Namespace:
  """
  Loads a whitelist from a JSON file.

  Args:
      path: File containing a JSON object.

  Returns:
      The whitelist root.

  Raises:
      ValueError: If the file does not hold a JSON object.
  """
  with open(path, "rt", encoding="utf-8") as f:
    data = json.load(f)
  if not isinstance(data, dict):
    raise ValueError(f"Whitelist {path} must contain a JSON object, got {type(data).__name__}")
  return Namespace.from_mapping(data)


def builtin_whitelist(lua_version: str = "5.1") -> Namespace:
  """
  Returns the standard globals of a Lua version.

  Args:
      lua_version: "5.1", "5.2", "5.3" or "5.4".

  Returns:
      The whitelist root.
  """
  return load_whitelist(resolve_whitelists_dir() / f"lua{lua_version.replace('.', '')}.json")


def build_whitelist(
  lua_version: Optional[str] = "5.1",
  extra_files: Iterable[Path] = (),
) -> Namespace:
  """
  Assembles the base whitelist of a run.

  Args:
      lua_version: Version of the builtin whitelist to start from, or None to
          start empty.
      extra_files: JSON whitelists merged on top, in order.

  Returns:
      The merged whitelist root.
  """
  whitelist = builtin_whitelist(lua_version) if lua_version else Namespace()
  for path in extra_files:
    whitelist = whitelist.merged(load_whitelist(Path(path)))
  return whitelist


__all__ = ["build_whitelist", "builtin_whitelist", "load_whitelist", "resolve_whitelists_dir"]
