"""
CLI Command Handlers Facade.

This module re-exports handlers from `lglob.cli.handlers` so the entry point
dispatches (and tests patch) through a single module.
"""

from lglob.cli.handlers.check import handle_check, collect_sources, run_check
from lglob.cli.handlers.xref import handle_xref, handle_deps

__all__ = [
  "collect_sources",
  "handle_check",
  "handle_deps",
  "handle_xref",
  "run_check",
]
