"""
Whitelist Policy Engine.

Combines the references of one unit with the scoping options of an
`AnalysisConfig` and a base whitelist, and produces a `UnitResult`.

The procedure per unit:

1.  Start a copy-on-write working whitelist from the base whitelist.
2.  ``load_requires``: bind each require alias to its module's export surface.
3.  Simple modules (``return M``): bind ``M`` to the members the unit assigns.
4.  ``globals_within_module``: bind every global the unit writes. A bare name
    binds as `ANY`; a member write such as ``string.trim = f`` only adds that
    member to a copy of its table.
    For a strict module (``module(..., package.seeall)``) checked without
    ``tolerant`` this happens when the walk reaches the declaration instead.
5.  Walk the references in line order. Past the line of a bare ``module(...)``
    the environment is replaced, so the working whitelist is rebuilt from the
    unit's own names.
6.  Report undefined accesses and redefinitions of known globals.

The working copy lives in an `AnalysisContext` that is dropped after the unit;
the base whitelist is never modified.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from lglob.analysis.modules import ModuleResolutionError, export_surface
from lglob.analysis.references import Reference, ReferenceReport
from lglob.analysis.whitelist import ANY, Namespace, ScopedWhitelist, WhitelistValue, written_bindings
from lglob.config import AnalysisConfig
from lglob.core.result import Diagnostic, UnitResult
from lglob.enums import Severity
from lglob.utils.console import log_warning

ModuleResolver = Callable[[str], Namespace]


@dataclass
class AnalysisContext:
  """
  Mutable state of one unit's policy walk.
  """

  unit: str
  whitelist: ScopedWhitelist
  result: UnitResult

  local_bindings: Dict[str, WhitelistValue] = field(default_factory=dict)
  """Bindings for locals (require aliases, the simple-module table); they survive an environment swap."""

  defined: Set[str] = field(default_factory=set)
  """Qualified names the unit writes, plus the root of its declared module name."""

  crossed_declaration: bool = False

  def bind_local(self, name: str, value: WhitelistValue) -> None:
    self.local_bindings[name] = value
    self.whitelist.bind(name, value)

  def report(self, ref: Reference, message: str, severity: Severity = Severity.ERROR) -> None:
    self.result.add(
      Diagnostic(unit=self.unit, line=ref.line, severity=severity, message=message, name=ref.name)
    )


class PolicyEngine:
  """
  Applies scoping policies to the references of analyzed units.
  """

  def __init__(
    self,
    whitelist: Namespace,
    config: Optional[AnalysisConfig] = None,
    module_resolver: Optional[ModuleResolver] = None,
  ):
    """
    Initializes the engine.

    Args:
        whitelist: Base whitelist shared by every unit.
        config: Scoping options.
        module_resolver: Callable returning a module's export surface, used
            when ``load_requires`` is set. Raises ModuleResolutionError on failure.
    """
    self.whitelist = whitelist
    self.config = config or AnalysisConfig()
    self.module_resolver = module_resolver

  def evaluate(self, unit: str, report: ReferenceReport) -> UnitResult:
    """
    Checks one unit.

    Args:
        unit: Identifier used in diagnostics.
        report: The unit's references, requirements and module remark.

    Returns:
        UnitResult with the verdict and ordered diagnostics.
    """
    config = self.config
    remark = report.remark
    ctx = AnalysisContext(unit=unit, whitelist=ScopedWhitelist(self.whitelist), result=UnitResult(unit=unit))
    ctx.defined = self._defined_names(report)

    if config.load_requires:
      self._bind_requires(ctx, report)

    if remark.simple_module:
      self._bind_exports(ctx, report)

    deferred = remark.declared and remark.strict and not config.tolerant
    if config.globals_within_module and not deferred:
      self._bind_defined(ctx)

    # Aliases of unresolved requires are locals, not globals.
    skipped = set() if config.load_requires else set(report.aliases)

    for ref in sorted(report.references, key=lambda r: r.line):
      if remark.declared and not config.tolerant and not ctx.crossed_declaration and ref.line > remark.line:
        self._cross_declaration(ctx, report, deferred)
      if ref.root in skipped:
        continue
      self._check(ctx, ref)

    return ctx.result

  # --- Setup ---

  def _defined_names(self, report: ReferenceReport) -> Set[str]:
    names = {ref.name for ref in report.references if ref.write}
    if report.remark.name:
      names.add(report.remark.name.split(".", 1)[0])
    locals_ = set(report.aliases)
    if report.remark.simple_module:
      locals_.add(report.remark.simple_module)
    return {name for name in names if name.split(".", 1)[0] not in locals_}

  def _bind_defined(self, ctx: AnalysisContext) -> None:
    for name, value in written_bindings(ctx.defined, ctx.whitelist.root).items():
      ctx.whitelist.bind(name, value)

  def _bind_requires(self, ctx: AnalysisContext, report: ReferenceReport) -> None:
    for req in report.requirements:
      if self.module_resolver is None:
        surface = None
        reason = "no module resolver configured"
      else:
        try:
          surface = self.module_resolver(req.module)
          reason = ""
        except ModuleResolutionError as e:
          surface = None
          reason = str(e)

      if surface is None:
        log_warning(f"{ctx.unit}:{req.line}: cannot resolve module '{req.module}': {reason}")
        ctx.result.add(
          Diagnostic(
            unit=ctx.unit,
            line=req.line,
            severity=Severity.WARNING,
            message=f"cannot resolve module `{req.module}`: {reason}",
            name=req.module,
          )
        )
        continue

      if req.alias:
        ctx.bind_local(req.alias, surface)

  def _bind_exports(self, ctx: AnalysisContext, report: ReferenceReport) -> None:
    ctx.bind_local(report.remark.simple_module, export_surface(report))

  def _cross_declaration(self, ctx: AnalysisContext, report: ReferenceReport, deferred: bool) -> None:
    ctx.crossed_declaration = True
    if report.remark.is_open:
      entries = written_bindings(ctx.defined)
      entries.update(ctx.local_bindings)
      ctx.whitelist.rebuild(entries)
    elif deferred and self.config.globals_within_module:
      self._bind_defined(ctx)

  # --- Checking ---

  def _check(self, ctx: AnalysisContext, ref: Reference) -> None:
    value, root_resolved = ctx.whitelist.resolve(ref.name)

    if value is ANY and ref.write:
      return

    if self.config.tolerant and ref.write:
      if not root_resolved:
        ctx.whitelist.bind(ref.root, ANY)
      return

    if value is not None:
      if ref.write:
        ctx.report(ref, f"redefining global `{ref.name}`")
      return

    if not root_resolved:
      ctx.report(ref, f"undefined {'set' if ref.write else 'get'} `{ref.name}`")
    elif not ref.write:
      ctx.report(ref, f"unknown field `{ref.name}`", Severity.WARNING)


def check_references(
  unit: str,
  report: ReferenceReport,
  whitelist: Namespace,
  config: Optional[AnalysisConfig] = None,
) -> UnitResult:
  """
  One-shot helper running the policy engine on a single unit.

  Args:
      unit: Identifier used in diagnostics.
      report: The unit's resolved references.
      whitelist: Base whitelist.
      config: Scoping options.

  Returns:
      The unit's result.
  """
  return PolicyEngine(whitelist, config).evaluate(unit, report)

