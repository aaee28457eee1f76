"""
Enum Resolver.

Detects an enumerable domain behind a property type and emits `enum` (plus
`isArray` for arrays of it):

* an explicit enumeration class -> `"enum": Color`
* a single enum member (`Literal[Color.RED]`) -> `"enum": Color.RED`
* a literal union (`Literal["A", "B"]`) -> `"enum": ["A", "B"]`
* a literal union of members of one enumeration -> `"enum": Color`
"""

from typing import TYPE_CHECKING, Collection, List

import libcst as cst

from apimeta.analysis.types import EnumMemberType, LiteralType, NoneType, UnionType
from apimeta.core.literals import create_boolean_literal, create_primitive_literal, create_property_assignment
from apimeta.core.type_refs import (
  TypeReferenceDescriptor,
  auto_generated_enum_union,
  enum_member_reference,
  extract_type_argument_if_array,
  is_auto_generated_type_union,
  is_enum,
  type_reference_to_identifier,
)

if TYPE_CHECKING:
  from apimeta.core.assembler import DescriptorAssembler

ENUM_KEY = "enum"
IS_ARRAY_KEY = "isArray"


def resolve_enum_assignments(
  assembler: "DescriptorAssembler",
  node: cst.BaseExpression,
  existing_keys: Collection[str],
) -> List[cst.DictElement]:
  """
  Builds the `enum` (and `isArray`) entries of a descriptor.

  Args:
      assembler: The assembler describing the enclosing property.
      node: The property's type expression.
      existing_keys: Keys already supplied by the seed.

  Returns:
      List[cst.DictElement]: Nothing when the type has no enumerable domain.
  """
  if ENUM_KEY in existing_keys:
    return []
  t = assembler.oracle.type_of(node)
  if t is None:
    return []
  if is_auto_generated_type_union(t):
    t = next(m for m in t.members if not isinstance(m, NoneType))

  t, is_array = extract_type_argument_if_array(t)
  is_member = isinstance(t, EnumMemberType)
  if not is_enum(t) or is_member:
    if not is_member:
      t = auto_generated_enum_union(t)
    if t is None:
      return []
    t, nested_array = extract_type_argument_if_array(t)
    is_array = is_array or nested_array

  context = assembler.context
  host_module = assembler.oracle.host_module
  if is_enum(t):
    value = type_reference_to_identifier(TypeReferenceDescriptor(type_name=t.name, named=t), context, host_module)
  elif isinstance(t, EnumMemberType):
    value = enum_member_reference(t, context, host_module)
  elif isinstance(t, LiteralType):
    value = cst.List([cst.Element(create_primitive_literal(t.value))])
  elif isinstance(t, UnionType):
    value = cst.List([cst.Element(create_primitive_literal(m.value)) for m in t.members])
  else:
    return []

  assignments = [create_property_assignment(ENUM_KEY, value)]
  if is_array:
    assignments.append(create_property_assignment(IS_ARRAY_KEY, create_boolean_literal(True)))
  return assignments
