"""
Descriptor Assembler.

Composes the resolvers into the ordered metadata map of one property:

1.  Seed entries (keyword arguments of an `ApiProperty(...)` marker).
2.  `required`: False when the property is `NotRequired`.
3.  `type` / `nullable` (Type Descriptor Resolver).
4.  Description, example(s), `deprecated` (Documentation Extractor).
5.  `default`: the assigned value, when it can be copied.
6.  `enum` / `isArray` (Enum Resolver).
7.  Validation entries (Validation-Marker Mapper), when `class_validator_shim` is set.

Derived entries never replace a seeded key; when two derived entries share a key
the first one is kept.
"""

from typing import Collection, List, Optional

import libcst as cst

from apimeta.analysis.oracle import TypeOracle
from apimeta.config import PluginOptions
from apimeta.constants import HIDE_PROPERTY_MARKER, SEED_PROPERTY_MARKER
from apimeta.core.context import RunContext
from apimeta.core.declarations import (
  PropertyDeclaration,
  UnwrappedAnnotation,
  get_marker_or_none,
  marker_keywords,
  unwrap_annotation,
  unwrap_default,
)
from apimeta.core.literals import (
  can_reference_node,
  clone_primitive_literal,
  create_boolean_literal,
  create_property_assignment,
  property_key,
)
from apimeta.core.resolvers.docs import resolve_docs_assignments
from apimeta.core.resolvers.enums import resolve_enum_assignments
from apimeta.core.resolvers.type_descriptor import resolve_type_assignments
from apimeta.core.resolvers.validation import resolve_validation_assignments
from apimeta.utils import ast_utils
from apimeta.utils.console import log_debug

REQUIRED_KEY = "required"
DEFAULT_KEY = "default"


class DescriptorAssembler:
  """
  Builds property descriptors for the properties of one class.

  Attributes:
      context (RunContext): Options and run-wide accumulators.
      oracle (TypeOracle): Type oracle of the host module.
      file_path (str): Path of the host file, used in diagnostic notes.
      class_scope_names (frozenset): Names bound in the class body.
  """

  def __init__(
    self,
    context: RunContext,
    oracle: TypeOracle,
    file_path: str = "",
    class_scope_names: Collection[str] = (),
  ):
    self.context = context
    self.oracle = oracle
    self.file_path = file_path
    self.class_scope_names = frozenset(class_scope_names)
    self._current: Optional[str] = None

  @property
  def options(self) -> PluginOptions:
    return self.context.options

  def unwrap(self, declaration: PropertyDeclaration) -> UnwrappedAnnotation:
    return unwrap_annotation(declaration.annotation, self.oracle)

  def skip_reason(self, declaration: PropertyDeclaration, unwrapped: UnwrappedAnnotation) -> Optional[str]:
    """
    Names why a property gets no descriptor, or returns None when it gets one.
    """
    if declaration.name is None:
      return "its name is computed"
    if get_marker_or_none(unwrapped.markers, (HIDE_PROPERTY_MARKER,)) is not None:
      return f"it is marked with {HIDE_PROPERTY_MARKER}"
    if unwrapped.class_var:
      return "it is a ClassVar"
    return None

  @property
  def subject(self) -> str:
    """Names the property being assembled, for diagnostic notes."""
    if self._current:
      return f'"{self._current}" property in "{self.file_path}"'
    return f'"{self.file_path}"'

  def note(self, message: str) -> None:
    """Logs a diagnostic note (debug option only)."""
    if self.options.debug:
      log_debug(message)

  def code_for(self, node: cst.CSTNode) -> str:
    return ast_utils.code_for(node)

  def assemble(
    self,
    declaration: PropertyDeclaration,
    unwrapped: Optional[UnwrappedAnnotation] = None,
  ) -> cst.Dict:
    """
    Builds the metadata map of one property.

    Args:
        declaration: The property.
        unwrapped: The property's annotation with wrappers removed (computed when omitted).

    Returns:
        cst.Dict: The ordered, de-duplicated descriptor.
    """
    if unwrapped is None:
      unwrapped = self.unwrap(declaration)

    outer = self._current
    self._current = declaration.name
    try:
      seed = self._seed_assignments(unwrapped)
      existing_keys = frozenset(self._seed_keys(unwrapped))

      assignments: List[cst.DictElement] = list(seed)
      if REQUIRED_KEY not in existing_keys:
        required = unwrapped.is_required(declaration.optional_by_default)
        assignments.append(create_property_assignment(REQUIRED_KEY, create_boolean_literal(required)))
      assignments.extend(resolve_type_assignments(self, unwrapped.type_node, existing_keys))
      assignments.extend(resolve_docs_assignments(self, declaration, existing_keys))
      default = self._default_assignment(declaration, existing_keys)
      if default is not None:
        assignments.append(default)
      assignments.extend(resolve_enum_assignments(self, unwrapped.type_node, existing_keys))
      if self.options.class_validator_shim:
        assignments.extend(resolve_validation_assignments(self, unwrapped.markers))
    finally:
      self._current = outer

    return cst.Dict(_dedupe(assignments))

  def _seed_keys(self, unwrapped: UnwrappedAnnotation) -> List[str]:
    marker = get_marker_or_none(unwrapped.markers, (SEED_PROPERTY_MARKER,))
    if marker is None:
      return []
    return [key for key, _ in marker_keywords(marker)]

  def _seed_assignments(self, unwrapped: UnwrappedAnnotation) -> List[cst.DictElement]:
    marker = get_marker_or_none(unwrapped.markers, (SEED_PROPERTY_MARKER,))
    if marker is None:
      return []
    assignments = []
    for key, value in marker_keywords(marker):
      if not can_reference_node(value, self.options, self.class_scope_names):
        self.note(
          f'Skipping seeded "{key}" value for {self.subject} because it is not a referenceable value '
          f'("{self.code_for(value)}").'
        )
        continue
      assignments.append(create_property_assignment(key, value))
    return assignments

  def _default_assignment(
    self,
    declaration: PropertyDeclaration,
    existing_keys: Collection[str],
  ) -> Optional[cst.DictElement]:
    if DEFAULT_KEY in existing_keys:
      return None
    initializer = unwrap_default(declaration.value, self.oracle)
    if initializer is None:
      return None
    cloned = clone_primitive_literal(initializer)
    if cloned is not None:
      initializer = cloned

    if not can_reference_node(initializer, self.options, self.class_scope_names):
      self.note(
        f"Skipping registering default value for {self.subject} because it is not a referenceable value "
        f'("{self.code_for(initializer)}").'
      )
      return None
    return create_property_assignment(DEFAULT_KEY, initializer)


def _dedupe(assignments: List[cst.DictElement]) -> List[cst.DictElement]:
  seen = set()
  result = []
  for element in assignments:
    key = property_key(element)
    if key is not None:
      if key in seen:
        continue
      seen.add(key)
    result.append(element)
  return result
