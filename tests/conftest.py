"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Helpers running the metadata pass over source strings and executing the result.
- Console isolation so log output from one test never leaks into another.
"""

import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict

import libcst as cst
import pytest
from rich.console import Console

# Add src to path so we can import 'apimeta' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from apimeta.analysis.oracle import SourceTypeOracle  # noqa: E402
from apimeta.analysis.symbol_table import collect_symbols  # noqa: E402
from apimeta.config import PluginOptions  # noqa: E402
from apimeta.constants import METADATA_FACTORY_NAME  # noqa: E402
from apimeta.core.assembler import DescriptorAssembler  # noqa: E402
from apimeta.core.context import RunContext  # noqa: E402
from apimeta.core.engine import MetadataEngine  # noqa: E402
from apimeta.utils.console import reset_console, set_console  # noqa: E402


def augment_source(code: str, file_path: str = "models.py", **options: Any) -> str:
  """
  Runs augmentation over dedented source and returns the new code.

  Args:
      code: Python source (indentation is stripped).
      file_path: Path reported to the engine.
      **options: PluginOptions overrides.
  """
  engine = MetadataEngine(PluginOptions(**options))
  result = engine.run(textwrap.dedent(code), file_path)
  assert result.success, result.errors
  return result.code


def exec_module(code: str) -> Dict[str, Any]:
  namespace: Dict[str, Any] = {"__name__": "generated_models"}
  exec(compile(code, "<augmented>", "exec"), namespace)
  return namespace


@pytest.fixture
def augment() -> Callable[..., str]:
  """Fixture form of `augment_source`."""
  return augment_source


@pytest.fixture
def metadata_of() -> Callable[..., Dict[str, Any]]:
  """
  Augments source, executes it and returns the metadata map of one class.

  Usage: ``metadata_of(code, "UserDto", introspect_comments=True)``
  """

  def _run(code: str, class_name: str, **options: Any) -> Dict[str, Any]:
    namespace = exec_module(augment_source(code, **options))
    return getattr(namespace[class_name], METADATA_FACTORY_NAME)()

  return _run


@pytest.fixture
def assembler_for() -> Callable[..., DescriptorAssembler]:
  """
  Builds a DescriptorAssembler whose oracle is bound to the given module source.

  Usage: ``assembler_for("from enum import Enum\\nclass Color(Enum): ...", readonly=True)``
  """

  def _build(code: str = "", module_name: str = "models", **options: Any) -> DescriptorAssembler:
    if options.get("readonly") and "path_to_source" not in options:
      options["path_to_source"] = "."
    symbols = collect_symbols(cst.parse_module(textwrap.dedent(code)), module_name)
    context = RunContext(PluginOptions(**options))
    return DescriptorAssembler(context, SourceTypeOracle(symbols), file_path=f"{module_name}.py")

  return _build


@pytest.fixture(autouse=True)
def isolated_console():
  """Routes log output to an in-memory console for the duration of a test."""
  set_console(Console(record=True, width=200, force_terminal=False))
  yield
  reset_console()
