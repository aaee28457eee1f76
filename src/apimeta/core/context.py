"""
Run Context Module.

This module provides the `RunContext` container holding the state shared by every
source unit processed in one run:

* `TypeImportTable`: canonical type name -> module specifier, for every named
  reference that has to be re-imported by the consumer.
* `CollectedRegistry`: normalized file key -> class name -> class metadata map,
  filled in collection mode and read once at the end of the run.

Both accumulators are append-only. A run owns exactly one context; tests create
their own to stay isolated.
"""

import posixpath
from pathlib import PurePath
from typing import Dict, Iterator, List, Optional, Tuple, Union

import libcst as cst

from apimeta.config import PluginOptions

ClassMetadata = Dict[str, cst.Dict]
PathLike = Union[str, PurePath]


def convert_path(path: PathLike) -> str:
  """Converts a native path to POSIX separators."""
  return str(path).replace("\\", "/")


def normalize_import_path(path_to_source: PathLike, path: PathLike) -> str:
  """
  Computes the registry key of a source file.

  Args:
      path_to_source: The source root.
      path: The file being processed.

  Returns:
      str: A relative POSIX path, prefixed with "./" unless it leaves the root.
  """
  relative_path = posixpath.relpath(convert_path(path), convert_path(path_to_source))
  if not relative_path.startswith("."):
    relative_path = "./" + relative_path
  return relative_path


def module_specifier_for_key(file_key: str) -> Optional[str]:
  """
  Converts a registry key into an importable dotted module name.

  Args:
      file_key: Key produced by `normalize_import_path` (e.g. "./app/models.py").

  Returns:
      The module name ("app.models"), or None when the file lies outside the root.
  """
  path = file_key[2:] if file_key.startswith("./") else file_key
  if path.startswith("../") or path == "..":
    return None
  if path.endswith(".py"):
    path = path[:-3]
  parts = [p for p in path.split("/") if p]
  if parts and parts[-1] == "__init__":
    parts = parts[:-1]
  return ".".join(parts) or None


def late_bound_import(module: str) -> cst.Lambda:
  """Builds `lambda: importlib.import_module("<module>")`."""
  return cst.Lambda(
    params=cst.Parameters(),
    body=cst.parse_expression(f'importlib.import_module("{module}")'),
  )


class TypeImportTable:
  """
  Canonical type name -> module specifier.

  The first registration of a name wins; later registrations are ignored.
  """

  def __init__(self) -> None:
    self._imports: Dict[str, str] = {}

  def record(self, canonical_name: str, module: str) -> None:
    """
    Registers the module a named reference must be imported from.

    Args:
        canonical_name: Dotted name of the type (e.g. "app.enums.Color").
        module: Module the consumer imports it from (e.g. "app.enums").
    """
    self._imports.setdefault(canonical_name, module)

  def modules(self) -> List[str]:
    """Distinct module specifiers, sorted."""
    return sorted(set(self._imports.values()))

  def as_dict(self) -> Dict[str, str]:
    return dict(self._imports)

  def __contains__(self, canonical_name: str) -> bool:
    return canonical_name in self._imports

  def __len__(self) -> int:
    return len(self._imports)


class CollectedRegistry:
  """
  Normalized file key -> exported class name -> class metadata map.
  """

  def __init__(self) -> None:
    self._metadata: Dict[str, Dict[str, cst.Dict]] = {}

  def add(self, file_key: str, class_name: str, class_metadata: cst.Dict) -> None:
    """
    Records the metadata map of one class.

    Args:
        file_key: Normalized path of the declaring file.
        class_name: Name of the class.
        class_metadata: The aggregated property map.
    """
    self._metadata.setdefault(file_key, {})[class_name] = class_metadata

  def get(self, file_key: str) -> Dict[str, cst.Dict]:
    return dict(self._metadata.get(file_key, {}))

  def __iter__(self) -> Iterator[str]:
    return iter(self._metadata)

  def __len__(self) -> int:
    return len(self._metadata)

  def collected_metadata(self) -> List[Tuple[cst.Lambda, Dict[str, cst.Dict]]]:
    """
    Pairs every file's class maps with a late-bound import of that file.

    Returns:
        List of (`lambda: importlib.import_module(...)`, {class name: metadata map}),
        in the order files were first registered.
    """
    metadata_with_imports = []
    for file_key, classes in self._metadata.items():
      module = module_specifier_for_key(file_key)
      if module is None:
        continue
      metadata_with_imports.append((late_bound_import(module), dict(classes)))
    return metadata_with_imports


class RunContext:
  """
  Shared state container for one metadata run.

  Attributes:
      options (PluginOptions): The active options.
      type_imports (TypeImportTable): Modules named references are imported from.
      registry (CollectedRegistry): Class metadata gathered in collection mode.
  """

  def __init__(
    self,
    options: Optional[PluginOptions] = None,
    type_imports: Optional[TypeImportTable] = None,
    registry: Optional[CollectedRegistry] = None,
  ):
    self.options = options or PluginOptions()
    self.type_imports = type_imports if type_imports is not None else TypeImportTable()
    self.registry = registry if registry is not None else CollectedRegistry()

  @property
  def readonly(self) -> bool:
    return self.options.readonly
