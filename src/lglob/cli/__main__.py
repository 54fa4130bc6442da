"""
Main Entry Point for the lglob CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `lglob.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from lglob.cli import commands
from lglob.config import SUPPORTED_LUA_VERSIONS
from lglob import __version__


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="lglob: Global Access Checker for Lua Bytecode Listings")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Check Lua units for undeclared global access")
  cmd_check.add_argument("paths", nargs="+", type=Path, help="Input files or directories")
  cmd_check.add_argument(
    "-t",
    "--tolerant",
    action="store_true",
    default=None,
    help="Accept any previously or newly defined global (Overrides config)",
  )
  cmd_check.add_argument(
    "-g",
    "--globals-in-module",
    dest="globals_within_module",
    action="store_true",
    default=None,
    help="Permit globals defined by a unit anywhere in that unit (Overrides config)",
  )
  cmd_check.add_argument(
    "-r",
    "--load-requires",
    action="store_true",
    default=None,
    help="Whitelist the exports of required modules under their local alias (Overrides config)",
  )
  cmd_check.add_argument(
    "-w",
    "--whitelist",
    dest="whitelists",
    action="append",
    type=Path,
    default=None,
    help="Extra JSON whitelist to merge (may be repeated)",
  )
  cmd_check.add_argument(
    "--lua-version",
    choices=list(SUPPORTED_LUA_VERSIONS),
    default=None,
    help="Lua version selecting the builtin whitelist (default: from toml, else 5.1)",
  )
  cmd_check.add_argument("--luac", default=None, help="Compiler executable (default: luac)")
  cmd_check.add_argument(
    "--listing",
    action="store_true",
    help="Inputs are saved `luac -l -l` listings instead of Lua sources",
  )
  cmd_check.add_argument("--json", dest="json_mode", action="store_true", help="Print results as JSON")

  # --- Command: XREF ---
  cmd_xref = subparsers.add_parser("xref", help="List the global names each unit touches")
  cmd_xref.add_argument("paths", nargs="+", type=Path, help="Input files or directories")
  cmd_xref.add_argument("--listing", action="store_true", help="Inputs are saved listings")
  cmd_xref.add_argument("--json", dest="json_mode", action="store_true", help="Print results as JSON")
  cmd_xref.add_argument("--luac", default=None, help="Compiler executable (default: luac)")

  # --- Command: DEPS ---
  cmd_deps = subparsers.add_parser("deps", help="List the modules each unit requires")
  cmd_deps.add_argument("paths", nargs="+", type=Path, help="Input files or directories")
  cmd_deps.add_argument("--listing", action="store_true", help="Inputs are saved listings")
  cmd_deps.add_argument("--json", dest="json_mode", action="store_true", help="Print results as JSON")
  cmd_deps.add_argument("--luac", default=None, help="Compiler executable (default: luac)")

  args = parser.parse_args(argv)

  if args.command == "check":
    return commands.handle_check(
      args.paths,
      tolerant=args.tolerant,
      globals_within_module=args.globals_within_module,
      load_requires=args.load_requires,
      lua_version=args.lua_version,
      whitelist_files=args.whitelists,
      luac=args.luac,
      listing_mode=args.listing,
      json_mode=args.json_mode,
    )

  elif args.command == "xref":
    return commands.handle_xref(args.paths, args.listing, args.json_mode, args.luac)

  elif args.command == "deps":
    return commands.handle_deps(args.paths, args.listing, args.json_mode, args.luac)

  return 0


if __name__ == "__main__":
  sys.exit(main())
