"""
Validation-Marker Mapper.

Translates validation markers found in a property's `Annotated` metadata into
descriptor entries:

=============  ==========================================
Marker         Entries
=============  ==========================================
`IsIn`         `enum` = 1st argument (augmentation mode only)
`Min`          `minimum` = 1st argument
`Max`          `maximum` = 1st argument
`MinLength`    `minLength` = 1st argument
`MaxLength`    `maxLength` = 1st argument
`IsPositive`   `minimum` = 1
`IsNegative`   `maximum` = -1
`Length`       `minLength` = 1st, `maxLength` = 2nd argument
`Matches`      `pattern` = regex source
=============  ==========================================

The `annotated-types` constraints pydantic understands are accepted under their
own names as well (`Ge`, `Le`, `MinLen`, `MaxLen`, `Len`). For each marker only
the first occurrence is used. An argument that cannot be copied into the metadata
map drops its entry without affecting the others.
"""

from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

import libcst as cst

from apimeta.core.declarations import get_marker_or_none, marker_arguments
from apimeta.core.literals import (
  can_reference_node,
  clone_primitive_literal,
  create_primitive_literal,
  create_property_assignment,
  create_string_literal,
)
from apimeta.utils.ast_utils import last_segment, string_value

if TYPE_CHECKING:
  from apimeta.core.assembler import DescriptorAssembler

MarkerHandler = Callable[[cst.BaseExpression], List[cst.DictElement]]


class ValidationMapper:
  """
  Collects validation entries for one property.

  Attributes:
      assembler: The assembler describing the property.
      markers: The property's `Annotated` metadata entries.
  """

  def __init__(self, assembler: "DescriptorAssembler", markers: Sequence[cst.BaseExpression]):
    self.assembler = assembler
    self.markers = markers
    self.assignments: List[cst.DictElement] = []

  def map(self) -> List[cst.DictElement]:
    if not self.assembler.options.readonly:
      # Collected metadata is evaluated in another module, where the values may not resolve.
      self.add_property_by_marker(("IsIn",), "enum")
    self.add_property_by_marker(("Min", "Ge"), "minimum")
    self.add_property_by_marker(("Max", "Le"), "maximum")
    self.add_property_by_marker(("MinLength", "MinLen"), "minLength")
    self.add_property_by_marker(("MaxLength", "MaxLen"), "maxLength")
    self.add_properties_by_marker(
      ("IsPositive",),
      lambda marker: [create_property_assignment("minimum", create_primitive_literal(1))],
    )
    self.add_properties_by_marker(
      ("IsNegative",),
      lambda marker: [create_property_assignment("maximum", create_primitive_literal(-1))],
    )
    self.add_properties_by_marker(("Length", "Len"), self._length)
    self.add_properties_by_marker(("Matches",), self._matches)
    return self.assignments

  def add_property_by_marker(self, names: Sequence[str], key: str) -> None:
    def single_argument(marker: cst.BaseExpression) -> List[cst.DictElement]:
      value = self._referenceable(self._argument(marker, 0))
      if value is None:
        return []
      return [create_property_assignment(key, value)]

    self.add_properties_by_marker(names, single_argument)

  def add_properties_by_marker(self, names: Sequence[str], handler: MarkerHandler) -> None:
    marker = get_marker_or_none(self.markers, names)
    if marker is None:
      return
    self.assignments.extend(handler(marker))

  def _argument(self, marker: cst.BaseExpression, index: int) -> Optional[cst.BaseExpression]:
    args = marker_arguments(marker)
    return args[index] if len(args) > index else None

  def _referenceable(self, node: Optional[cst.BaseExpression]) -> Optional[cst.BaseExpression]:
    if node is None:
      return None
    cloned = clone_primitive_literal(node)
    value = cloned if cloned is not None else node
    if not can_reference_node(value, self.assembler.options, self.assembler.class_scope_names):
      self.assembler.note(
        f"Skipping validation argument for {self.assembler.subject} because it is not a referenceable value "
        f'("{self.assembler.code_for(node)}").'
      )
      return None
    return value

  def _length(self, marker: cst.BaseExpression) -> List[cst.DictElement]:
    result = []
    min_length = self._referenceable(self._argument(marker, 0))
    if min_length is None:
      return result
    result.append(create_property_assignment("minLength", min_length))

    max_node = self._argument(marker, 1)
    if max_node is not None:
      max_length = self._referenceable(max_node)
      if max_length is not None:
        result.append(create_property_assignment("maxLength", max_length))
    return result

  def _matches(self, marker: cst.BaseExpression) -> List[cst.DictElement]:
    pattern = _pattern_source(self._argument(marker, 0))
    if pattern is None:
      return []
    return [create_property_assignment("pattern", create_string_literal(pattern))]


def _pattern_source(node: Optional[cst.BaseExpression]) -> Optional[str]:
  """Regex source of `"..."` or `re.compile("...")`."""
  if node is None:
    return None
  if isinstance(node, cst.Call) and last_segment(node.func) == "compile":
    args = marker_arguments(node)
    return string_value(args[0]) if args else None
  return string_value(node)


def resolve_validation_assignments(
  assembler: "DescriptorAssembler",
  markers: Sequence[cst.BaseExpression],
) -> List[cst.DictElement]:
  """
  Maps a property's validation markers to descriptor entries.

  Args:
      assembler: The assembler describing the property.
      markers: The property's `Annotated` metadata entries.

  Returns:
      List[cst.DictElement]: Entries in marker-table order.
  """
  return ValidationMapper(assembler, markers).map()
