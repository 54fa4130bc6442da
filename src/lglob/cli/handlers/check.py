"""
Check Command Handler.

Runs the global access check over files or directories and renders the
diagnostics, either as a Rich table or as JSON.
"""

import json
from pathlib import Path
from typing import List, Optional

from rich.markup import escape
from rich.table import Table

from lglob.config import AnalysisConfig
from lglob.core.engine import LintEngine
from lglob.core.result import BatchResult
from lglob.utils.console import console, log_error, log_info, log_success


def collect_sources(paths: List[Path], pattern: str = "*.lua") -> List[Path]:
  """
  Expands directories into the files they contain.

  Args:
      paths: Files and directories given on the command line.
      pattern: Glob for files inside directories.

  Returns:
      Files in command line order, directory contents sorted.
  """
  files: List[Path] = []
  for path in paths:
    if path.is_dir():
      files.extend(sorted(p for p in path.rglob(pattern) if p.is_file()))
    else:
      files.append(path)
  return files


def run_check(engine: LintEngine, files: List[Path], listing_mode: bool = False) -> BatchResult:
  """
  Checks every file with the engine.

  Args:
      engine: Configured engine.
      files: Lua sources, or listing files when `listing_mode` is set.
      listing_mode: Treat inputs as pre-generated ``luac -l -l`` output.

  Returns:
      The batch result.
  """
  if not listing_mode:
    return engine.check_files(files)

  batch = BatchResult()
  for f in files:
    listing = f.read_text("utf-8")
    batch.add(engine.check_listing(str(f), listing, base_dir=f.parent))
  return batch


def handle_check(
  paths: List[Path],
  tolerant: Optional[bool] = None,
  globals_within_module: Optional[bool] = None,
  load_requires: Optional[bool] = None,
  lua_version: Optional[str] = None,
  whitelist_files: Optional[List[Path]] = None,
  luac: Optional[str] = None,
  listing_mode: bool = False,
  json_mode: bool = False,
) -> int:
  """
  Handles the 'check' command.

  Args:
      paths: Input files or directories.
      tolerant: Override for tolerant mode.
      globals_within_module: Override for module-scoped globals.
      load_requires: Override for require tracking.
      lua_version: Override for the builtin whitelist version.
      whitelist_files: Extra JSON whitelists.
      luac: Override for the compiler executable.
      listing_mode: Inputs are listings rather than sources.
      json_mode: If True, print JSON to stdout instead of a table.

  Returns:
      int: Exit code (0 if every unit passes, 1 otherwise).
  """
  missing = [p for p in paths if not p.exists()]
  if missing:
    for p in missing:
      log_error(f"Path not found: [path]{escape(str(p))}[/path]")
    return 1

  first = paths[0] if paths else Path.cwd()
  config = AnalysisConfig.load(
    tolerant=tolerant,
    globals_within_module=globals_within_module,
    load_requires=load_requires,
    lua_version=lua_version,
    whitelist_files=whitelist_files,
    luac=luac,
    search_path=first if first.is_dir() else first.parent,
  )
  engine = LintEngine(config)

  files = collect_sources(paths, "*" if listing_mode else "*.lua")
  if not json_mode:
    log_info(f"Checking {len(files)} unit(s) against the Lua {config.lua_version} globals...")

  batch = run_check(engine, files, listing_mode)

  if json_mode:
    output = {
      "success": batch.success,
      "units": {name: result.model_dump(mode="json") for name, result in batch.units.items()},
    }
    print(json.dumps(output, indent=2))
    return 0 if batch.success else 1

  _print_report(batch)
  return 0 if batch.success else 1


def _print_report(batch: BatchResult) -> None:
  """
  Renders the diagnostics of a batch.

  Args:
      batch: Checked units.
  """
  diagnostics = batch.diagnostics
  if diagnostics:
    table = Table(title="Global Access Report")
    table.add_column("Unit", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Severity")
    table.add_column("Message", style="red")

    for diag in diagnostics:
      severity = "[error]error[/error]" if diag.severity.value == "error" else "[warning]warning[/warning]"
      table.add_row(escape(diag.unit), str(diag.line), severity, escape(diag.message))

    console.print(table)

  failed = [name for name, result in batch.units.items() if not result.success]
  total = len(batch.units)
  if not failed:
    log_success(f"All {total} unit(s) passed.")
  else:
    console.print(f"\n[bold]Summary:[/bold] {total - len(failed)} passed, {len(failed)} failed.")
