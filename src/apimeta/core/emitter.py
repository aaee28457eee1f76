"""
Class Emitter.

`ModelClassVisitor` walks a module, describes the annotated properties of every
class, and emits the aggregated map in one of two ways:

* **Augmentation** (default): a static factory returning the map is appended to
  the class body::

      class UserDto:
          name: str

          @staticmethod
          def _OPENAPI_METADATA_FACTORY():
              return {"name": {"required": True, "type": lambda: str}}

  An existing factory is replaced, so running the pass twice yields the same code.

* **Collection** (`readonly`): exported module-level classes are recorded in the
  run's `CollectedRegistry` under the file's normalized path; the tree is not
  modified.

Properties are visited in declaration order. Hidden properties, `ClassVar`s and
computed targets are skipped, and a failure while describing one property drops
that property only.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import libcst as cst

from apimeta.analysis.oracle import TypeOracle
from apimeta.analysis.symbol_table import ModuleSymbols
from apimeta.analysis.types import NamedType, TypeKind
from apimeta.constants import METADATA_FACTORY_NAME
from apimeta.core.assembler import DescriptorAssembler
from apimeta.core.context import RunContext, module_specifier_for_key, normalize_import_path
from apimeta.core.declarations import PropertyDeclaration
from apimeta.core.literals import create_property_assignment
from apimeta.enums import ClassEmission
from apimeta.utils.ast_utils import string_value
from apimeta.utils.console import log_debug

_COMMENT_DOC_PREFIX = "#:"


def metadata_factory_for(metadata: cst.Dict) -> cst.FunctionDef:
  """
  Builds the static factory injected into augmented classes.

  Args:
      metadata: The class metadata map.

  Returns:
      cst.FunctionDef: `@staticmethod def _OPENAPI_METADATA_FACTORY(): return {...}`.
  """
  return cst.FunctionDef(
    name=cst.Name(METADATA_FACTORY_NAME),
    params=cst.Parameters(),
    body=cst.IndentedBlock(body=[cst.SimpleStatementLine(body=[cst.Return(value=metadata)])]),
    decorators=[cst.Decorator(decorator=cst.Name("staticmethod"))],
    leading_lines=[cst.EmptyLine(indent=False)],
  )


def _statements(body: cst.BaseSuite) -> List[cst.BaseStatement]:
  if isinstance(body, cst.IndentedBlock):
    return list(body.body)
  return [cst.SimpleStatementLine(body=list(body.body))]


def _docstring_of(statement: Optional[cst.BaseStatement]) -> Optional[str]:
  if not isinstance(statement, cst.SimpleStatementLine) or len(statement.body) != 1:
    return None
  expr = statement.body[0]
  if not isinstance(expr, cst.Expr):
    return None
  return string_value(expr.value)


def _comment_lines(statement: cst.BaseStatement) -> List[str]:
  lines = []
  for line in getattr(statement, "leading_lines", ()):
    if line.comment is None:
      # A blank line detaches the comments above it.
      lines = []
      continue
    text = line.comment.value
    if text.startswith(_COMMENT_DOC_PREFIX):
      lines.append(text[len(_COMMENT_DOC_PREFIX) :].strip())
  return lines


def class_properties(body: cst.BaseSuite) -> List[PropertyDeclaration]:
  """
  Lists the annotated assignments of a class body in declaration order.

  Args:
      body: The class body.

  Returns:
      List[PropertyDeclaration]: One declaration per annotated target.
  """
  statements = _statements(body)
  declarations = []
  for index, statement in enumerate(statements):
    if not isinstance(statement, cst.SimpleStatementLine):
      continue
    following = statements[index + 1] if index + 1 < len(statements) else None
    for small in statement.body:
      if isinstance(small, cst.AnnAssign):
        declarations.append(
          PropertyDeclaration.from_ann_assign(
            small,
            docstring=_docstring_of(following),
            comments=_comment_lines(statement),
          )
        )
  return declarations


def class_scope_names(body: cst.BaseSuite) -> List[str]:
  """Names bound directly in a class body."""
  names = []
  for statement in _statements(body):
    if isinstance(statement, (cst.FunctionDef, cst.ClassDef)):
      names.append(statement.name.value)
    elif isinstance(statement, cst.SimpleStatementLine):
      for small in statement.body:
        targets: Sequence[cst.BaseExpression] = ()
        if isinstance(small, cst.Assign):
          targets = [t.target for t in small.targets]
        elif isinstance(small, (cst.AnnAssign, cst.AugAssign)):
          targets = [small.target]
        names.extend(t.value for t in targets if isinstance(t, cst.Name))
  return names


class ModelClassVisitor(cst.CSTTransformer):
  """
  Describes the properties of every class in one module.

  Attributes:
      context (RunContext): Options, type-import table and registry of the run.
      oracle (TypeOracle): Type oracle of the module.
      symbols (ModuleSymbols): Symbol table of the module (export predicate).
      file_path (str): Path of the module file.
      emissions (List[Tuple[str, ClassEmission]]): What happened to each class, in order.
  """

  def __init__(
    self,
    context: RunContext,
    oracle: TypeOracle,
    symbols: ModuleSymbols,
    file_path: str,
  ):
    self.context = context
    self.oracle = oracle
    self.symbols = symbols
    self.file_path = file_path
    self.emissions: List[Tuple[str, ClassEmission]] = []
    self._scopes: List[str] = []
    self._class_names: List[str] = []

  @property
  def options(self):
    return self.context.options

  def _debug(self, message: str) -> None:
    if self.options.debug:
      log_debug(message)

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    self._scopes.append("function")
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    self._scopes.pop()
    return updated_node

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    self._scopes.append("class")
    self._class_names.append(node.name.value)
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    qualname = ".".join(self._class_names)
    self._scopes.pop()
    self._class_names.pop()
    module_level = not self._scopes

    emission = self.emission_for(original_node, module_level)
    self.emissions.append((qualname, emission))
    if emission == ClassEmission.SKIP:
      return updated_node

    metadata = self.class_metadata(original_node)
    if emission == ClassEmission.COLLECT:
      self._collect(original_node.name.value, metadata)
      return updated_node
    return self._augment(updated_node, metadata)

  def emission_for(self, node: cst.ClassDef, module_level: bool) -> ClassEmission:
    """
    Decides how a class is emitted.

    Args:
        node: The class.
        module_level: True when the class is defined at module level.

    Returns:
        ClassEmission: SKIP, AUGMENT or COLLECT.
    """
    name = node.name.value
    if not self._is_model(node):
      self._debug(f'Skipping class "{name}" because it is not a model class.')
      return ClassEmission.SKIP
    if not self.options.readonly:
      return ClassEmission.AUGMENT
    if module_level and self.symbols.is_exported(name):
      return ClassEmission.COLLECT
    self._debug(f'Skipping class "{name}" because it\'s not exported.')
    return ClassEmission.SKIP

  def _is_model(self, node: cst.ClassDef) -> bool:
    for arg in node.bases:
      if arg.keyword is not None:
        continue
      base = arg.value.value if isinstance(arg.value, cst.Subscript) else arg.value
      if self.oracle.special_form(base) == "TypedDict" and not self.options.readonly:
        # TypedDict bodies may only hold annotations.
        return False
      resolved = self.oracle.type_of(base)
      if isinstance(resolved, NamedType) and resolved.kind == TypeKind.ENUM:
        return False
    return True

  def class_metadata(self, node: cst.ClassDef) -> cst.Dict:
    """
    Builds the class metadata map: property name -> descriptor.

    Args:
        node: The class, as written in source.

    Returns:
        cst.Dict: Entries in declaration order.
    """
    assembler = DescriptorAssembler(
      self.context,
      self.oracle,
      file_path=self.file_path,
      class_scope_names=class_scope_names(node.body),
    )
    descriptors: Dict[str, cst.Dict] = {}
    for declaration in class_properties(node.body):
      try:
        unwrapped = assembler.unwrap(declaration)
        reason = assembler.skip_reason(declaration, unwrapped)
        if reason is not None:
          self._debug(f'Skipping "{declaration.name}" property of class "{node.name.value}" because {reason}.')
          continue
        descriptors[declaration.name] = assembler.assemble(declaration, unwrapped)
      except Exception as e:
        self._debug(f'Skipping "{declaration.name}" property in "{self.file_path}" after an error: {e}')
    return cst.Dict([create_property_assignment(name, value) for name, value in descriptors.items()])

  def _collect(self, class_name: str, metadata: cst.Dict) -> None:
    file_key = normalize_import_path(self.options.path_to_source, self.file_path)
    if module_specifier_for_key(file_key) is None:
      self._debug(f'Skipping class "{class_name}" because "{self.file_path}" is outside "pathToSource".')
      return
    self.context.registry.add(file_key, class_name, metadata)

  def _augment(self, node: cst.ClassDef, metadata: cst.Dict) -> cst.ClassDef:
    body = [
      statement
      for statement in _statements(node.body)
      if not (isinstance(statement, cst.FunctionDef) and statement.name.value == METADATA_FACTORY_NAME)
    ]
    body.append(metadata_factory_for(metadata))
    indented = node.body if isinstance(node.body, cst.IndentedBlock) else cst.IndentedBlock(body=[])
    return node.with_changes(body=indented.with_changes(body=body))
