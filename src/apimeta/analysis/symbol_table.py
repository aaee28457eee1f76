"""
Module Symbol Tables.

This module provides a static analysis pass that records, for one module, the
names a type annotation may refer to:

1.  **Imports**: `import x.y as z`, `from x import y`, and relative imports,
    resolved against the module's own dotted name.
2.  **Classes**: module-level class definitions with their base expressions and,
    for enumerations, their member names.
3.  **Type Aliases**: `X = <type>`, `X: TypeAlias = <type>` and `type X = <type>`.
4.  **Exports**: the literal contents of `__all__`, when present.

A `ProjectIndex` groups the tables of every module under a source root so that
imported names can be followed across files.
"""

from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Dict, Iterable, List, Optional, Tuple

import libcst as cst

from apimeta.utils.ast_utils import get_full_name, last_segment, string_value
from apimeta.utils.console import log_warning


@dataclass
class ImportBinding:
  """
  A name bound by an import statement.

  Attributes:
      module: Dotted module the name comes from.
      name: Imported attribute, or None when the binding is the module itself.
      type_only: True when the import sits under `if TYPE_CHECKING:` and is
          therefore not bound when the module runs.
  """

  module: str
  name: Optional[str] = None
  type_only: bool = False


@dataclass
class ClassSymbol:
  """A module-level class definition."""

  name: str
  bases: List[cst.BaseExpression] = field(default_factory=list)
  members: Tuple[str, ...] = ()


@dataclass
class ModuleSymbols:
  """
  Names visible at module level.

  Attributes:
      module_name: Dotted name of the module (e.g. "app.models").
      is_package: True for `__init__.py` modules.
      imports: Local binding -> import origin.
      classes: Class name -> definition.
      aliases: Alias name -> aliased annotation expression.
      exports: Contents of `__all__`, or None when it is not defined.
  """

  module_name: str
  is_package: bool = False
  imports: Dict[str, ImportBinding] = field(default_factory=dict)
  classes: Dict[str, ClassSymbol] = field(default_factory=dict)
  aliases: Dict[str, cst.BaseExpression] = field(default_factory=dict)
  exports: Optional[List[str]] = None

  def is_exported(self, class_name: str) -> bool:
    """
    Export predicate for module-level classes.

    Args:
        class_name: Name of a class defined in this module.

    Returns:
        bool: Membership in `__all__` when defined, else "no leading underscore".
    """
    if self.exports is not None:
      return class_name in self.exports
    return not class_name.startswith("_")

  def resolve_relative(self, level: int, target: Optional[str]) -> str:
    """
    Resolves a relative import (`from ..pkg import x`) to an absolute module.

    Args:
        level: Number of leading dots.
        target: Module text after the dots, if any.

    Returns:
        str: Absolute dotted module name.
    """
    parts = self.module_name.split(".") if self.module_name else []
    if not self.is_package and parts:
      parts = parts[:-1]
    if level > 1:
      parts = parts[: max(len(parts) - (level - 1), 0)]
    if target:
      parts.append(target)
    return ".".join(parts)


_TYPE_ALIAS_MARKERS = {"TypeAlias"}
_TYPE_CHECKING_FLAG = "TYPE_CHECKING"


def _looks_like_type(node: cst.BaseExpression) -> bool:
  if isinstance(node, (cst.Subscript, cst.Name, cst.Attribute)):
    return True
  if isinstance(node, cst.BinaryOperation) and isinstance(node.operator, cst.BitOr):
    return True
  return False


def _string_items(node: cst.BaseExpression) -> List[str]:
  items = []
  if isinstance(node, (cst.List, cst.Tuple)):
    for element in node.elements:
      value = string_value(element.value)
      if value is not None:
        items.append(value)
  return items


def _enum_member_names(body: cst.BaseSuite) -> Tuple[str, ...]:
  names = []
  if not isinstance(body, cst.IndentedBlock):
    return ()
  for stmt in body.body:
    if not isinstance(stmt, cst.SimpleStatementLine):
      continue
    for small in stmt.body:
      targets = []
      if isinstance(small, cst.Assign):
        targets = [t.target for t in small.targets]
      elif isinstance(small, cst.AnnAssign) and small.value is not None:
        targets = [small.target]
      for target in targets:
        if isinstance(target, cst.Name) and not target.value.startswith("_"):
          names.append(target.value)
  return tuple(names)


class SymbolCollector(cst.CSTVisitor):
  """
  Populates a `ModuleSymbols` table from a parsed module.

  Only module-level definitions are recorded; function bodies are not entered.
  Imports nested in module-level `if`/`try` blocks are recorded as well; those in
  the body of `if TYPE_CHECKING:` (or `if typing.TYPE_CHECKING:`) are marked
  type-only.
  """

  def __init__(self, module_name: str, is_package: bool = False):
    """
    Args:
        module_name: Dotted name of the module being analysed.
        is_package: True when the module is a package `__init__`.
    """
    self.symbols = ModuleSymbols(module_name=module_name, is_package=is_package)
    self._class_depth = 0
    self._type_checking_depth = 0

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    return False

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    if self._class_depth == 0:
      members = _enum_member_names(node.body)
      self.symbols.classes[node.name.value] = ClassSymbol(
        name=node.name.value,
        bases=[arg.value for arg in node.bases if arg.keyword is None],
        members=members,
      )
    self._class_depth += 1
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    self._class_depth -= 1

  def visit_If_body(self, node: cst.If) -> None:
    if last_segment(node.test) == _TYPE_CHECKING_FLAG:
      self._type_checking_depth += 1

  def leave_If_body(self, node: cst.If) -> None:
    if last_segment(node.test) == _TYPE_CHECKING_FLAG:
      self._type_checking_depth -= 1

  @property
  def _type_only(self) -> bool:
    return self._type_checking_depth > 0

  def visit_Import(self, node: cst.Import) -> None:
    if self._class_depth:
      return
    for alias in node.names:
      full_path = get_full_name(alias.name)
      if alias.asname and isinstance(alias.asname.name, cst.Name):
        self.symbols.imports[alias.asname.name.value] = ImportBinding(module=full_path, type_only=self._type_only)
      else:
        root = full_path.split(".")[0]
        self.symbols.imports[root] = ImportBinding(module=root, type_only=self._type_only)

  def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
    if self._class_depth or isinstance(node.names, cst.ImportStar):
      return
    target = get_full_name(node.module) if node.module else None
    if node.relative:
      base_mod = self.symbols.resolve_relative(len(node.relative), target)
    else:
      base_mod = target or ""

    for alias in node.names:
      import_name = get_full_name(alias.name)
      bind_name = import_name
      if alias.asname and isinstance(alias.asname.name, cst.Name):
        bind_name = alias.asname.name.value
      self.symbols.imports[bind_name] = ImportBinding(
        module=base_mod, name=import_name, type_only=self._type_only
      )

  def visit_Assign(self, node: cst.Assign) -> None:
    if self._class_depth or len(node.targets) != 1:
      return
    target = node.targets[0].target
    if not isinstance(target, cst.Name):
      return
    if target.value == "__all__":
      self.symbols.exports = _string_items(node.value)
    elif _looks_like_type(node.value):
      self.symbols.aliases[target.value] = node.value

  def visit_AugAssign(self, node: cst.AugAssign) -> None:
    if self._class_depth:
      return
    if isinstance(node.target, cst.Name) and node.target.value == "__all__":
      self.symbols.exports = (self.symbols.exports or []) + _string_items(node.value)

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    if self._class_depth or node.value is None or not isinstance(node.target, cst.Name):
      return
    if last_segment(node.annotation.annotation) in _TYPE_ALIAS_MARKERS:
      self.symbols.aliases[node.target.value] = node.value
    elif node.target.value == "__all__":
      self.symbols.exports = _string_items(node.value)

  def visit_TypeAlias(self, node: cst.TypeAlias) -> None:
    if not self._class_depth:
      self.symbols.aliases[node.name.value] = node.value


def module_name_for(path: PurePath, root: Optional[PurePath]) -> Tuple[str, bool]:
  """
  Derives the dotted module name of a source file.

  Args:
      path: The source file path.
      root: The source root; the file's own directory is used when None or unrelated.

  Returns:
      Tuple[str, bool]: The module name and whether the file is a package `__init__`.
  """
  path = PurePath(path)
  parts: Tuple[str, ...]
  try:
    parts = path.relative_to(root).parts if root is not None else (path.name,)
  except ValueError:
    parts = (path.name,)

  if not parts:
    return "", False
  *dirs, filename = parts
  stem = filename[:-3] if filename.endswith(".py") else filename
  if stem == "__init__":
    return ".".join(dirs), True
  return ".".join([*dirs, stem]), False


def collect_symbols(module: cst.Module, module_name: str, is_package: bool = False) -> ModuleSymbols:
  """
  Runs the SymbolCollector over a parsed module.

  Args:
      module: The parsed module.
      module_name: Its dotted name.
      is_package: Whether it is a package `__init__`.

  Returns:
      ModuleSymbols: The populated table.
  """
  collector = SymbolCollector(module_name, is_package)
  module.visit(collector)
  return collector.symbols


class ProjectIndex:
  """
  Symbol tables of every module below a source root, keyed by dotted module name.
  """

  def __init__(self, modules: Optional[Iterable[ModuleSymbols]] = None):
    self._modules: Dict[str, ModuleSymbols] = {}
    for symbols in modules or []:
      self.add(symbols)

  def add(self, symbols: ModuleSymbols) -> None:
    """Registers (or replaces) the table of one module."""
    self._modules[symbols.module_name] = symbols

  def get(self, module_name: str) -> Optional[ModuleSymbols]:
    """Returns the table of a module, if indexed."""
    return self._modules.get(module_name)

  def __contains__(self, module_name: str) -> bool:
    return module_name in self._modules

  def __len__(self) -> int:
    return len(self._modules)

  @classmethod
  def from_directory(cls, root: Path) -> "ProjectIndex":
    """
    Parses every `.py` file below `root`.

    Files that fail to parse are reported and left out of the index.

    Args:
        root: The source root.

    Returns:
        ProjectIndex: The populated index.
    """
    index = cls()
    for src_file in sorted(root.rglob("*.py")):
      module_name, is_package = module_name_for(src_file, root)
      try:
        module = cst.parse_module(src_file.read_text(encoding="utf-8"))
      except (cst.ParserSyntaxError, UnicodeDecodeError) as e:
        log_warning(f"Skipping unparsable module {src_file}: {e}")
        continue
      index.add(collect_symbols(module, module_name, is_package))
    return index
