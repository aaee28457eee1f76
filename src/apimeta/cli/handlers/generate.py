"""
Augment and Collect Command Handlers.

This module implements the `apimeta augment` and `apimeta collect` commands.
Both:
1. Load options (`[tool.apimeta]` in pyproject.toml + CLI overrides).
2. Select the model files (a single file, or every file below a directory whose
   name ends with one of `dto_file_name_suffix`).
3. Run the Engine over each file.

`augment` writes the augmented sources; `collect` writes one artifact module
holding the metadata of every exported model.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.table import Table

from apimeta.config import PluginOptions
from apimeta.core.engine import MetadataEngine, TransformResult
from apimeta.enums import ClassEmission
from apimeta.errors import ConfigurationError
from apimeta.utils.console import (
  console,
  log_error,
  log_info,
  log_success,
  log_warning,
  set_debug,
)


def _select_files(root: Path, suffixes: Sequence[str]) -> List[Path]:
  """
  Lists the model files below a directory.

  Args:
      root: Directory to scan.
      suffixes: Accepted file name endings (e.g. "dto.py").

  Returns:
      List[Path]: Matching files, sorted for deterministic runs.
  """
  endings = tuple(suffixes)
  return sorted(p for p in root.rglob("*.py") if p.name.endswith(endings))


def _search_dir(input_path: Path) -> Path:
  return input_path if input_path.is_dir() else input_path.parent


def _load_options(input_path: Path, settings: Dict[str, Any]) -> Optional[PluginOptions]:
  try:
    options = PluginOptions.load(search_path=_search_dir(input_path), **settings)
  except ConfigurationError as e:
    log_error(str(e))
    return None
  set_debug(options.debug)
  return options


def _run_file(engine: MetadataEngine, src_file: Path) -> TransformResult:
  try:
    with open(src_file, "rt", encoding="utf-8") as f:
      code = f.read()
    return engine.run(code, str(src_file.resolve()))
  except Exception as e:
    log_error(f"Failed to process {src_file}: {e}")
    return TransformResult(success=False, errors=[str(e)])


def handle_augment(
  input_path: Path,
  output_path: Optional[Path],
  in_place: bool,
  settings: Dict[str, Any],
) -> int:
  """
  Handles the 'augment' command execution.

  Args:
      input_path: Source file or directory.
      output_path: Destination file or directory. A single file is printed when omitted.
      in_place: Rewrite the inputs when no destination is given.
      settings: Option overrides from the command line.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  options = _load_options(input_path, {**settings, "readonly": False})
  if options is None:
    return 1
  if options.path_to_source is None:
    # Module names (and the project index) are rooted at the input directory.
    options = options.model_copy(update={"path_to_source": _search_dir(input_path).resolve()})
  engine = MetadataEngine(options)
  batch_results: Dict[str, TransformResult] = {}

  if input_path.is_file():
    result = _run_file(engine, input_path)
    batch_results[input_path.name] = result
    if not result.success:
      return 1
    destination = output_path or (input_path if in_place else None)
    if destination is None:
      print(result.code)
    else:
      _write(destination, result.code)
      log_success(f"Augmented: [path]{input_path}[/path] -> [path]{destination}[/path]")
    return 0

  if output_path is None and not in_place:
    log_error("Directory augmentation requires --out destination directory or --in-place.")
    return 1

  files = _select_files(input_path, options.dto_file_name_suffix)
  if not files:
    log_warning(f"No model files ({', '.join(options.dto_file_name_suffix)}) found in {input_path}")
    return 0

  log_info(f"Processing {len(files)} files from {input_path}...")
  for src_file in files:
    rel_path = src_file.relative_to(input_path)
    result = _run_file(engine, src_file)
    batch_results[str(rel_path)] = result
    if result.success:
      _write(output_path / rel_path if output_path else src_file, result.code)

  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def handle_collect(
  input_path: Path,
  output_path: Path,
  source_root: Optional[Path],
  settings: Dict[str, Any],
) -> int:
  """
  Handles the 'collect' command execution.

  Args:
      input_path: Source file or directory.
      output_path: Artifact module to write.
      source_root: Root registry keys and module names are relative to. Falls back
          to `pathToSource`, then to the input directory.
      settings: Option overrides from the command line.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  base = _load_options(input_path, {**settings, "readonly": False})
  if base is None:
    return 1
  root = source_root or base.path_to_source or _search_dir(input_path)
  try:
    options = PluginOptions.model_validate(
      {**base.model_dump(), "readonly": True, "path_to_source": Path(root).resolve()}
    )
  except ValueError as e:
    log_error(f"Invalid apimeta options: {e}")
    return 1

  files = [input_path] if input_path.is_file() else _select_files(input_path, options.dto_file_name_suffix)
  if not files:
    log_warning(f"No model files ({', '.join(options.dto_file_name_suffix)}) found in {input_path}")

  engine = MetadataEngine(options)
  batch_results: Dict[str, TransformResult] = {}
  for src_file in files:
    batch_results[str(src_file)] = _run_file(engine, src_file)

  _write(output_path, engine.render_artifact())
  collected = sum(
    1 for result in batch_results.values() for _, emission in result.classes if emission == ClassEmission.COLLECT
  )
  log_success(f"Collected {collected} classes from {len(files)} files -> [path]{output_path}[/path]")
  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def _write(destination: Path, code: str) -> None:
  destination.parent.mkdir(parents=True, exist_ok=True)
  with open(destination, "wt", encoding="utf-8") as f:
    f.write(code)


def _print_batch_summary(results: Dict[str, TransformResult]) -> None:
  """
  Renders a summary table of the processed files to the console.

  Args:
      results: Dictionary mapping filenames to results.
  """
  total = len(results)
  failures = sum(1 for r in results.values() if not r.success or r.has_errors)
  successes = total - failures

  if failures == 0:
    log_success(f"Batch Complete: {successes}/{total} files processed.")
    return

  table = Table(title="Metadata Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success and not res.has_errors:
      continue
    status = "Failed" if not res.success else "Warnings"
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(filename, status, issues)

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {successes} Passed, {failures} with Issues.")
