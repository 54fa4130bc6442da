"""
Cross-reference and Dependency Handlers.

``xref`` lists every global (qualified) name a unit touches with the lines it
is used on; ``deps`` lists the modules it requires.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from rich.markup import escape
from rich.table import Table

from lglob.analysis.references import ReferenceReport
from lglob.analysis.whitelist import Namespace
from lglob.analysis.xref import cross_reference, dependency_report
from lglob.bytecode.instruction import ListingSyntaxError
from lglob.cli.handlers.check import collect_sources
from lglob.config import AnalysisConfig
from lglob.core.engine import LintEngine
from lglob.core.luac import DisassemblerError
from lglob.utils.console import console, log_error


def _analyze_all(paths: List[Path], listing_mode: bool, luac: Optional[str] = None) -> Dict[str, ReferenceReport]:
  """
  Resolves the references of every unit that can be analyzed.

  Units failing to disassemble or parse are logged and skipped.
  """
  engine = LintEngine(AnalysisConfig.load(luac=luac), whitelist=Namespace())
  reports: Dict[str, ReferenceReport] = {}
  for f in collect_sources(paths, "*" if listing_mode else "*.lua"):
    try:
      if listing_mode:
        reports[str(f)] = engine.analyze_listing(f.read_text("utf-8"))
      else:
        reports[str(f)] = engine.analyze_file(f)
    except (DisassemblerError, ListingSyntaxError) as e:
      log_error(f"{escape(str(f))}: {escape(str(e))}")
  return reports


def _render(title: str, key_header: str, data: Dict[str, Dict[str, List[int]]], json_mode: bool) -> None:
  if json_mode:
    print(json.dumps(data, indent=2))
    return

  table = Table(title=title)
  table.add_column("Unit", style="cyan")
  table.add_column(key_header, style="name")
  table.add_column("Lines", style="dim")
  for unit, entries in data.items():
    for key, lines in entries.items():
      table.add_row(escape(unit), escape(key), ", ".join(str(n) for n in lines))
  console.print(table)


def handle_xref(paths: List[Path], listing_mode: bool = False, json_mode: bool = False, luac: Optional[str] = None) -> int:
  """
  Handles the 'xref' command.

  Args:
      paths: Input files or directories.
      listing_mode: Inputs are pre-generated listings.
      json_mode: Print JSON instead of a table.
      luac: Compiler executable override.

  Returns:
      int: Exit code (1 if any unit could not be analyzed).
  """
  files = collect_sources(paths, "*" if listing_mode else "*.lua")
  reports = _analyze_all(paths, listing_mode, luac)
  data = {unit: cross_reference(report) for unit, report in reports.items()}
  _render("Global Cross Reference", "Name", data, json_mode)
  return 0 if len(reports) == len(files) else 1


def handle_deps(paths: List[Path], listing_mode: bool = False, json_mode: bool = False, luac: Optional[str] = None) -> int:
  """
  Handles the 'deps' command.

  Args:
      paths: Input files or directories.
      listing_mode: Inputs are pre-generated listings.
      json_mode: Print JSON instead of a table.
      luac: Compiler executable override.

  Returns:
      int: Exit code (1 if any unit could not be analyzed).
  """
  files = collect_sources(paths, "*" if listing_mode else "*.lua")
  reports = _analyze_all(paths, listing_mode, luac)
  data = {unit: dependency_report(report) for unit, report in reports.items()}
  _render("Required Modules", "Module", data, json_mode)
  return 0 if len(reports) == len(files) else 1
