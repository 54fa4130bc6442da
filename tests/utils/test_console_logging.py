"""
Tests for the console proxy and logging helpers.
"""

import io
import logging

from rich.console import Console

from lglob.utils.console import (
  SUCCESS_LEVEL_NUM,
  console,
  log_error,
  log_info,
  log_success,
  log_warning,
  logger,
  set_console,
)


def test_log_helpers_write_to_active_console(captured_console):
  log_info("checking [bold]3[/bold] units")
  log_success("all passed")
  log_warning("cannot resolve module")
  log_error("malformed listing")
  out = captured_console.getvalue()
  assert "checking 3 units" in out
  assert "all passed" in out
  assert "cannot resolve module" in out
  assert "malformed listing" in out


def test_success_level_registered():
  assert logging.getLevelName(SUCCESS_LEVEL_NUM) == "SUCCESS"


def test_swapping_backend_moves_logging():
  first, second = io.StringIO(), io.StringIO()
  set_console(Console(file=first, width=120))
  log_info("one")
  set_console(Console(file=second, width=120))
  log_info("two")
  assert "one" in first.getvalue() and "two" not in first.getvalue()
  assert "two" in second.getvalue()
  # Only one rich handler stays attached.
  assert sum(1 for h in logger.handlers if type(h).__name__ == "RichHandler") == 1


def test_proxy_forwards_print(captured_console):
  console.print("hello")
  assert console.width == 200
  assert "hello" in captured_console.getvalue()
