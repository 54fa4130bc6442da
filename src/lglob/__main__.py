"""
Entry point for module execution (``python -m lglob``).

This module delegates execution to the CLI handler in ``lglob.cli.__main__``.
"""

import sys
from lglob.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
