"""
Data structures representing the output of a check.

This module defines the `Diagnostic`, `UnitResult` and `BatchResult` Pydantic
models: the per-occurrence findings, the verdict for one analyzed unit, and the
combined verdict of a batch run.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from lglob.enums import Severity


class Diagnostic(BaseModel):
  """
  A single finding in a unit.
  """

  unit: str = Field(description="Identifier of the analyzed unit (usually its path).")
  line: int = Field(default=0, description="Source line, 0 when not attributable to a line.")
  severity: Severity = Field(default=Severity.ERROR)
  message: str
  name: Optional[str] = Field(default=None, description="Offending qualified name, if any.")

  def format(self) -> str:
    """
    Renders the diagnostic in the conventional ``file:line: message`` shape.

    Returns:
        The formatted line.
    """
    prefix = "" if self.severity is Severity.ERROR else f"{self.severity.value}: "
    return f"{self.unit}:{self.line}: {prefix}{self.message}"


class UnitResult(BaseModel):
  """
  Verdict and diagnostics for one analyzed unit.
  """

  unit: str
  success: bool = Field(default=True, description="False if any error diagnostic was produced.")
  diagnostics: List[Diagnostic] = Field(default_factory=list)

  @property
  def errors(self) -> List[Diagnostic]:
    return [d for d in self.diagnostics if d.severity is Severity.ERROR]

  @property
  def warnings(self) -> List[Diagnostic]:
    return [d for d in self.diagnostics if d.severity is Severity.WARNING]

  def add(self, diagnostic: Diagnostic) -> None:
    """
    Records a diagnostic, failing the unit for errors.

    Args:
        diagnostic: The finding to record.
    """
    self.diagnostics.append(diagnostic)
    if diagnostic.severity is Severity.ERROR:
      self.success = False


class BatchResult(BaseModel):
  """
  Results of every unit in a run, in the order they were checked.
  """

  units: Dict[str, UnitResult] = Field(default_factory=dict)

  @property
  def success(self) -> bool:
    """Logical AND of all unit verdicts."""
    return all(result.success for result in self.units.values())

  @property
  def diagnostics(self) -> List[Diagnostic]:
    return [d for result in self.units.values() for d in result.diagnostics]

  def add(self, result: UnitResult) -> None:
    self.units[result.unit] = result
