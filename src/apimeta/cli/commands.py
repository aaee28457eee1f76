"""
CLI Command Handlers Facade.

Re-exports the handlers from `apimeta.cli.handlers`.
"""

from apimeta.cli.handlers.generate import (
  handle_augment,
  handle_collect,
  _print_batch_summary,
  _select_files,
)

__all__ = [
  "_print_batch_summary",
  "_select_files",
  "handle_augment",
  "handle_collect",
]
