"""
Main Entry Point for the apimeta CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `apimeta.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from apimeta import __version__
from apimeta.cli import commands
from apimeta.config import parse_cli_key_values


def _add_common_arguments(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument("path", type=Path, help="Input source file or directory")
  cmd.add_argument(
    "--config",
    nargs="*",
    help="Option overrides in key=value format (e.g. classValidatorShim=false dtoKeyOfComment=summary)",
  )
  cmd.add_argument("--debug", action="store_true", default=None, help="Log notes about skipped classes and properties")
  cmd.add_argument(
    "--introspect-comments",
    action="store_true",
    default=None,
    help="Extract descriptions, examples and deprecation notes from attribute docstrings",
  )


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="apimeta: API metadata synthesis for model classes")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: AUGMENT ---
  cmd_aug = subparsers.add_parser("augment", help="Add metadata factories to model classes")
  _add_common_arguments(cmd_aug)
  cmd_aug.add_argument("--out", type=Path, help="Output destination (file or dir); stdout/in place when omitted")
  cmd_aug.add_argument(
    "--in-place",
    action="store_true",
    help="Rewrite the input files instead of printing (directory runs without --out)",
  )

  # --- Command: COLLECT ---
  cmd_col = subparsers.add_parser("collect", help="Collect metadata of exported models into one module")
  _add_common_arguments(cmd_col)
  cmd_col.add_argument("--out", type=Path, required=True, help="Artifact module to write")
  cmd_col.add_argument(
    "--source-root",
    type=Path,
    default=None,
    help="Root module paths are relative to (default: pathToSource from config, else PATH)",
  )

  args = parser.parse_args(argv)
  settings = parse_cli_key_values(args.config)
  if args.debug is not None:
    settings["debug"] = args.debug
  if args.introspect_comments is not None:
    settings["introspect_comments"] = args.introspect_comments

  if args.command == "augment":
    return commands.handle_augment(args.path, args.out, args.in_place, settings)

  elif args.command == "collect":
    return commands.handle_collect(args.path, args.out, args.source_root, settings)

  return 0


if __name__ == "__main__":
  sys.exit(main())
