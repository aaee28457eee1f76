"""
Entry point for module execution (``python -m apimeta``).

This module delegates execution to the CLI handler in ``apimeta.cli.__main__``.
"""

import sys
from apimeta.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
