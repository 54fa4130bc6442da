"""
Cross-reference and dependency queries over resolved references.
"""

from typing import Dict, List

from lglob.analysis.references import ReferenceReport


def cross_reference(report: ReferenceReport, writes_only: bool = False) -> Dict[str, List[int]]:
  """
  Maps each qualified name to the lines it is accessed on.

  Args:
      report: The unit's resolved references.
      writes_only: Only count assignments.

  Returns:
      Dict of name -> ascending, de-duplicated line numbers, sorted by name.
  """
  hits: Dict[str, List[int]] = {}
  for ref in report.references:
    if writes_only and not ref.write:
      continue
    lines = hits.setdefault(ref.name, [])
    if ref.line not in lines:
      lines.append(ref.line)
  return {name: sorted(hits[name]) for name in sorted(hits)}


def dependency_report(report: ReferenceReport) -> Dict[str, List[int]]:
  """
  Maps each required module to the lines it is required on.

  Args:
      report: The unit's resolved references.

  Returns:
      Dict of module name -> ascending line numbers, in first-require order.
  """
  deps: Dict[str, List[int]] = {}
  for req in report.requirements:
    lines = deps.setdefault(req.module, [])
    if req.line not in lines:
      lines.append(req.line)
  return {module: sorted(lines) for module, lines in deps.items()}
