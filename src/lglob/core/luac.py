"""
External Disassembler.

Runs ``luac -p -l -l`` on a source file and returns the listing text. ``-p``
parses only, so no ``luac.out`` is written; the doubled ``-l`` adds the
constants, locals and upvalues sections the scope tracker needs.
"""

import subprocess
from pathlib import Path
from typing import List, Union


class DisassemblerError(RuntimeError):
  """Raised when luac cannot be started, fails, or prints no listing."""


def luac_command(source: Union[str, Path], luac: str = "luac") -> List[str]:
  return [luac, "-p", "-l", "-l", str(source)]


def disassemble(source: Union[str, Path], luac: str = "luac") -> str:
  """
  Produces the bytecode listing of a Lua source file.

  Args:
      source: Path to the ``.lua`` file.
      luac: Compiler executable.

  Returns:
      str: The listing text.

  Raises:
      DisassemblerError: If the compiler is missing, reports an error
          (typically a syntax error in the source), or prints nothing.
  """
  try:
    proc = subprocess.run(luac_command(source, luac), capture_output=True, text=True)
  except OSError as e:
    raise DisassemblerError(f"cannot run {luac}: {e}") from e

  if proc.returncode != 0:
    detail = proc.stderr.strip() or f"exit status {proc.returncode}"
    raise DisassemblerError(detail)

  if not proc.stdout.strip():
    raise DisassemblerError(f"{luac} produced no listing for {source}")

  return proc.stdout
