"""
Runtime Configuration Store.

Analysis options are read from the ``[tool.lglob]`` table of the nearest
``pyproject.toml`` and overridden by command line arguments.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

SUPPORTED_LUA_VERSIONS = ("5.1", "5.2", "5.3", "5.4")


class AnalysisConfig(BaseModel):
  """
  Scoping policies and collaborators for a check run.
  """

  tolerant: bool = Field(False, description="Accept any previously or newly defined global without error.")
  globals_within_module: bool = Field(
    False, description="Globals the unit defines are permitted anywhere in that unit."
  )
  load_requires: bool = Field(
    False, description="Resolve required modules and whitelist their exports under the local alias."
  )
  lua_version: str = Field("5.1", description="Lua version selecting the builtin whitelist.")
  builtin_whitelist: bool = Field(True, description="Start from the Lua standard globals of `lua_version`.")
  whitelist_files: List[Path] = Field(default_factory=list, description="Extra JSON whitelists to merge.")
  luac: str = Field("luac", description="Compiler executable used to produce listings.")
  lua_path: List[str] = Field(
    default_factory=lambda: ["?.lua", "?/init.lua"],
    description="Templates used to locate required modules.",
  )

  @field_validator("lua_version")
  @classmethod
  def validate_lua_version(cls, v: str) -> str:
    """
    Ensures a builtin whitelist exists for the requested version.

    Args:
        v (str): Version string such as "5.1".

    Returns:
        str: The normalized version.

    Raises:
        ValueError: If the version is not supported.
    """
    v_clean = str(v).strip()
    if v_clean not in SUPPORTED_LUA_VERSIONS:
      raise ValueError(f"Unsupported Lua version: '{v_clean}'. Supported versions: {list(SUPPORTED_LUA_VERSIONS)}")
    return v_clean

  @classmethod
  def load(
    cls,
    tolerant: Optional[bool] = None,
    globals_within_module: Optional[bool] = None,
    load_requires: Optional[bool] = None,
    lua_version: Optional[str] = None,
    whitelist_files: Optional[List[Path]] = None,
    luac: Optional[str] = None,
    search_path: Optional[Path] = None,
  ) -> "AnalysisConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        tolerant (Optional[bool]): Override for tolerant mode.
        globals_within_module (Optional[bool]): Override for module-scoped globals.
        load_requires (Optional[bool]): Override for require tracking.
        lua_version (Optional[str]): Override for the Lua version.
        whitelist_files (Optional[List[Path]]): Whitelists added to the configured ones.
        luac (Optional[str]): Override for the compiler executable.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        AnalysisConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    def pick(override: Any, key: str, default: Any) -> Any:
      return override if override is not None else toml_config.get(key, default)

    files = [Path(p) for p in toml_config.get("whitelist_files", [])]
    if toml_dir:
      files = [(toml_dir / p).resolve() for p in files]
    files.extend(whitelist_files or [])

    settings: Dict[str, Any] = {
      "tolerant": pick(tolerant, "tolerant", False),
      "globals_within_module": pick(globals_within_module, "globals_within_module", False),
      "load_requires": pick(load_requires, "load_requires", False),
      "lua_version": pick(lua_version, "lua_version", "5.1"),
      "builtin_whitelist": toml_config.get("builtin_whitelist", True),
      "whitelist_files": files,
      "luac": pick(luac, "luac", "luac"),
    }
    if "lua_path" in toml_config:
      settings["lua_path"] = list(toml_config["lua_path"])

    return cls(**settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory definition was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("lglob", {}), parent

  return {}, None
