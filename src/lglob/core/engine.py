"""
Orchestration Engine for Global Checks.

This module provides the `LintEngine`, the driver tying the analysis passes
together for one or many Lua units.

The pipeline per unit:

1.  **Disassembly**: ``luac -p -l -l`` on the source file (skipped when a
    listing is supplied directly).
2.  **Reference Resolution**: the listing is split into functions and walked
    by the `ReferenceResolver`, producing references, requirements and module
    remarks.
3.  **Policy**: the `PolicyEngine` checks the references against the base
    whitelist under the configured scoping options.

Errors that make a unit unanalyzable (no listing, malformed listing) are
reported as an error diagnostic for that unit; a batch always runs to the end.
"""

from pathlib import Path
from typing import Callable, Iterable, Optional

from rich.markup import escape

from lglob.analysis.modules import ModuleLoader
from lglob.analysis.policy import PolicyEngine
from lglob.analysis.references import ReferenceReport, ReferenceResolver
from lglob.analysis.whitelist import Namespace
from lglob.bytecode.instruction import ListingSyntaxError
from lglob.bytecode.stream import DisassemblyStream
from lglob.config import AnalysisConfig
from lglob.core.luac import DisassemblerError, disassemble
from lglob.core.result import BatchResult, Diagnostic, UnitResult
from lglob.utils.console import log_error
from lglob.whitelists import build_whitelist

Disassembler = Callable[[Path, str], str]


class LintEngine:
  """
  Checks Lua units for accesses to names outside the whitelist.
  """

  def __init__(
    self,
    config: Optional[AnalysisConfig] = None,
    whitelist: Optional[Namespace] = None,
    disassembler: Disassembler = disassemble,
  ):
    """
    Initializes the Engine.

    Args:
        config: Scoping options and collaborators. Defaults to `AnalysisConfig()`.
        whitelist: Base whitelist. Built from the config when omitted.
        disassembler: Callable ``(path, luac) -> listing``.
    """
    self.config = config or AnalysisConfig()
    if whitelist is None:
      whitelist = build_whitelist(
        self.config.lua_version if self.config.builtin_whitelist else None,
        self.config.whitelist_files,
      )
    self.whitelist = whitelist
    self.disassembler = disassembler

  # --- Analysis ---

  def analyze_listing(self, listing: str) -> ReferenceReport:
    """
    Resolves the references of one unit's listing.

    Args:
        listing: Output of ``luac -l -l``.

    Returns:
        ReferenceReport for the unit.

    Raises:
        ListingSyntaxError: If the listing is malformed.
    """
    stream = DisassemblyStream.from_text(listing)
    return ReferenceResolver(stream.known).resolve(stream)

  def analyze_file(self, path: Path) -> ReferenceReport:
    """
    Disassembles a source file and resolves its references.

    Raises:
        DisassemblerError: If luac fails.
        ListingSyntaxError: If the listing is malformed.
    """
    return self.analyze_listing(self.disassembler(Path(path), self.config.luac))

  # --- Checking ---

  def check_listing(self, unit: str, listing: str, base_dir: Optional[Path] = None) -> UnitResult:
    """
    Checks a unit given its listing text.

    Args:
        unit: Identifier used in diagnostics.
        listing: Output of ``luac -l -l``.
        base_dir: Directory required modules are searched from.

    Returns:
        UnitResult with verdict and diagnostics.
    """
    try:
      report = self.analyze_listing(listing)
    except ListingSyntaxError as e:
      return self._failed(unit, f"malformed listing: {e}")
    return self.policy(base_dir).evaluate(unit, report)

  def check_file(self, path: Path) -> UnitResult:
    """
    Disassembles and checks a Lua source file.

    Args:
        path: The ``.lua`` file.

    Returns:
        UnitResult with verdict and diagnostics.
    """
    path = Path(path)
    unit = str(path)
    try:
      listing = self.disassembler(path, self.config.luac)
    except DisassemblerError as e:
      return self._failed(unit, f"cannot disassemble: {e}")
    return self.check_listing(unit, listing, base_dir=path.parent)

  def check_files(self, paths: Iterable[Path]) -> BatchResult:
    """
    Checks every file, reporting all diagnostics.

    Args:
        paths: Source files.

    Returns:
        BatchResult whose verdict is the AND of all unit verdicts.
    """
    batch = BatchResult()
    for path in paths:
      batch.add(self.check_file(path))
    return batch

  def policy(self, base_dir: Optional[Path] = None) -> PolicyEngine:
    """
    Builds the policy engine for units located in `base_dir`.

    Args:
        base_dir: Directory required modules are searched from.

    Returns:
        A PolicyEngine sharing this engine's whitelist and config.
    """
    resolver = None
    if self.config.load_requires:
      dirs = [base_dir] if base_dir else None
      resolver = ModuleLoader(self.analyze_file, self.config.lua_path, dirs, self.whitelist)
    return PolicyEngine(self.whitelist, self.config, resolver)

  def _failed(self, unit: str, message: str) -> UnitResult:
    log_error(f"{escape(unit)}: {escape(message)}")
    result = UnitResult(unit=unit)
    result.add(Diagnostic(unit=unit, message=message))
    return result
