"""
Metadata Engine.

`MetadataEngine` runs the metadata pass over source units:

1.  **Parsing**: the source is parsed into a LibCST module. Unparsable input is
    reported in the result, never raised.
2.  **Symbol Analysis**: a `ModuleSymbols` table is built for the unit, and the
    `SourceTypeOracle` is bound to it (and to the project index, when one is
    available).
3.  **Emission**: `ModelClassVisitor` augments the classes or, in collection mode,
    records their metadata into the run context.

One engine owns one `RunContext`; every unit processed by the engine shares its
type-import table and registry. `render_artifact` reads them once all units were
processed.
"""

from pathlib import Path
from typing import List, Optional, Tuple

import libcst as cst
from pydantic import BaseModel, Field

from apimeta.analysis.oracle import SourceTypeOracle
from apimeta.analysis.symbol_table import ProjectIndex, collect_symbols, module_name_for
from apimeta.config import PluginOptions
from apimeta.core.artifact import render_artifact
from apimeta.core.context import RunContext
from apimeta.core.emitter import ModelClassVisitor
from apimeta.enums import ClassEmission


class TransformResult(BaseModel):
  """
  Result of processing one source unit.
  """

  code: str = Field(default="", description="The (possibly augmented) source code.")
  errors: List[str] = Field(default_factory=list, description="Error messages encountered.")
  success: bool = Field(default=True, description="False when the unit could not be processed.")
  classes: List[Tuple[str, ClassEmission]] = Field(
    default_factory=list, description="Classes seen, with what was done to each."
  )

  @property
  def has_errors(self) -> bool:
    return len(self.errors) > 0


class MetadataEngine:
  """
  Driver of the metadata pass.

  Attributes:
      options (PluginOptions): The active options.
      context (RunContext): Shared state of the run.
  """

  def __init__(
    self,
    options: Optional[PluginOptions] = None,
    context: Optional[RunContext] = None,
    project: Optional[ProjectIndex] = None,
  ):
    """
    Initializes the Engine.

    Args:
        options: Options of the run. Taken from `context` when omitted.
        context: An existing run context to accumulate into.
        project: Symbol tables of the source tree. Built lazily from
            `path_to_source` when omitted and that path is a directory.
    """
    if context is None:
      context = RunContext(options)
    elif options is not None:
      context.options = options
    self.context = context
    self.options = context.options
    self._project = project

  @property
  def project(self) -> Optional[ProjectIndex]:
    root = self.options.path_to_source
    if self._project is None and root is not None and Path(root).is_dir():
      self._project = ProjectIndex.from_directory(Path(root))
    return self._project

  def parse(self, code: str) -> cst.Module:
    """
    Parses source into a LibCST Module.

    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return cst.parse_module(code)

  def run(self, code: str, file_path: str = "<string>") -> TransformResult:
    """
    Processes one source unit.

    Args:
        code: Python source of the unit.
        file_path: Path of the unit, used for module naming and registry keys.

    Returns:
        TransformResult: The augmented code (unchanged in collection mode).
    """
    try:
      tree = self.parse(code)
    except cst.ParserSyntaxError as e:
      return TransformResult(code=code, errors=[f"Parse Error: {e}"], success=False)

    module_name, is_package = module_name_for(Path(file_path), self.options.path_to_source)
    symbols = collect_symbols(tree, module_name, is_package)
    oracle = SourceTypeOracle(symbols, self.project)

    visitor = ModelClassVisitor(self.context, oracle, symbols, file_path)
    updated = tree.visit(visitor)

    output = code if self.options.readonly else updated.code
    return TransformResult(code=output, classes=visitor.emissions)

  def render_artifact(self) -> str:
    """Renders everything collected so far as artifact module source."""
    return render_artifact(self.context)
