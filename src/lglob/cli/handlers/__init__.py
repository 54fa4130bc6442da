from .check import handle_check, collect_sources, run_check
from .xref import handle_xref, handle_deps

__all__ = [
  "collect_sources",
  "handle_check",
  "handle_deps",
  "handle_xref",
  "run_check",
]
