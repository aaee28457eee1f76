"""
Type Descriptor Resolver.

Produces the `type` entry of a property descriptor (and `nullable` when a `None`
branch was removed). An annotation is first classified into one of three shapes:

* `InlineShapeAnnotation`: a `TypedDict("Name", {...})` call or a bare dict display.
  Every member is described by the full assembler and the result is wrapped in a
  thunk: `lambda: {"a": {...}, "b": {...}}`.
* `UnionAnnotation`: `A | B`, `Optional[A]`, `Union[A, B]`. `None` branches are
  removed; exactly one branch must remain, otherwise the type is not representable.
* `NamedAnnotation`: anything else, resolved through the Type Oracle and emitted as
  a thunk around a named reference: `lambda: User`, `lambda: [str]`.

Types without a printable name produce no entries. This is never an error.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Collection, List, Tuple, Union

import libcst as cst

from apimeta.analysis.oracle import TypeOracle, WRAPPER_FORMS
from apimeta.core.declarations import PropertyDeclaration
from apimeta.core.literals import create_boolean_literal, create_property_assignment
from apimeta.core.type_refs import type_reference_as_string, type_reference_to_identifier
from apimeta.utils.ast_utils import literal_value, string_value, subscript_args

if TYPE_CHECKING:
  from apimeta.core.assembler import DescriptorAssembler

TYPE_KEY = "type"
NULLABLE_KEY = "nullable"


@dataclass(frozen=True)
class InlineShapeAnnotation:
  """An anonymous object shape and its members."""

  members: Tuple[PropertyDeclaration, ...]


@dataclass(frozen=True)
class UnionAnnotation:
  """A syntactic union; `branches` keeps declaration order."""

  branches: Tuple[cst.BaseExpression, ...]


@dataclass(frozen=True)
class NamedAnnotation:
  """An annotation only the oracle can interpret."""

  node: cst.BaseExpression


AnnotationShape = Union[InlineShapeAnnotation, UnionAnnotation, NamedAnnotation]


def _shape_members(display: cst.Dict, total: bool) -> Tuple[PropertyDeclaration, ...]:
  members = []
  for element in display.elements:
    if not isinstance(element, cst.DictElement):
      continue
    members.append(
      PropertyDeclaration(
        name=string_value(element.key),
        annotation=element.value,
        optional_by_default=not total,
      )
    )
  return tuple(members)


def _typed_dict_shape(node: cst.Call) -> InlineShapeAnnotation:
  total = True
  display = None
  positional = [arg.value for arg in node.args if arg.keyword is None]
  if len(positional) > 1 and isinstance(positional[1], cst.Dict):
    display = positional[1]
  for arg in node.args:
    if arg.keyword is None:
      continue
    if arg.keyword.value == "total":
      ok, value = literal_value(arg.value)
      total = bool(value) if ok else True
    elif arg.keyword.value == "fields" and isinstance(arg.value, cst.Dict):
      display = arg.value
  if display is None:
    return InlineShapeAnnotation(members=())
  return InlineShapeAnnotation(members=_shape_members(display, total))


def _union_branches(node: cst.BaseExpression, oracle: TypeOracle) -> List[cst.BaseExpression]:
  """
  Flattens nested unions into one branch list.

  `Optional[Union[A, B]]`, `Union[A, Optional[B]]` and `A | B | None` all yield
  `[A, B, None]`.
  """
  if isinstance(node, cst.BinaryOperation) and isinstance(node.operator, cst.BitOr):
    return _union_branches(node.left, oracle) + _union_branches(node.right, oracle)
  if isinstance(node, cst.Subscript):
    special = oracle.special_form(node.value)
    args = subscript_args(node)
    if len(args) == 1 and special == "Optional":
      return _union_branches(args[0], oracle) + [cst.Name("None")]
    if args and special == "Union":
      return [branch for arg in args for branch in _union_branches(arg, oracle)]
  return [node]


def classify_annotation(node: cst.BaseExpression, oracle: TypeOracle) -> AnnotationShape:
  """
  Classifies an annotation into one of the three shapes.

  Args:
      node: The annotation, with property-level wrappers already removed.
      oracle: Oracle of the host module.

  Returns:
      AnnotationShape: The matching variant.
  """
  forward = string_value(node)
  if forward is not None:
    try:
      return classify_annotation(cst.parse_expression(forward.strip()), oracle)
    except cst.ParserSyntaxError:
      return NamedAnnotation(node=node)

  if isinstance(node, cst.Dict):
    return InlineShapeAnnotation(members=_shape_members(node, total=True))

  if isinstance(node, cst.Call) and oracle.special_form(node.func) == "TypedDict":
    return _typed_dict_shape(node)

  if isinstance(node, cst.BinaryOperation) and isinstance(node.operator, cst.BitOr):
    return UnionAnnotation(branches=tuple(_union_branches(node, oracle)))

  if isinstance(node, cst.Subscript):
    special = oracle.special_form(node.value)
    args = subscript_args(node)
    if args and special in WRAPPER_FORMS:
      return classify_annotation(args[0], oracle)
    if (len(args) == 1 and special == "Optional") or (args and special == "Union"):
      return UnionAnnotation(branches=tuple(_union_branches(node, oracle)))

  return NamedAnnotation(node=node)


def _is_null_branch(node: cst.BaseExpression, oracle: TypeOracle) -> bool:
  if isinstance(node, cst.Name) and node.value == "None":
    return True
  if string_value(node) == "None":
    return True
  if isinstance(node, cst.Call) and oracle.special_form(node.func) == "type" and len(node.args) == 1:
    inner = node.args[0].value
    return isinstance(inner, cst.Name) and inner.value == "None"
  return False


def _thunk(body: cst.BaseExpression) -> cst.Lambda:
  return cst.Lambda(params=cst.Parameters(), body=body)


def resolve_type_assignments(
  assembler: "DescriptorAssembler",
  node: cst.BaseExpression,
  existing_keys: Collection[str],
) -> List[cst.DictElement]:
  """
  Builds the `type` (and `nullable`) entries of a descriptor.

  Args:
      assembler: The assembler describing the enclosing property.
      node: The property's type expression.
      existing_keys: Keys already supplied by the seed.

  Returns:
      List[cst.DictElement]: Zero, one or two entries.
  """
  if TYPE_KEY in existing_keys:
    return []

  shape = classify_annotation(node, assembler.oracle)

  if isinstance(shape, InlineShapeAnnotation):
    return [create_property_assignment(TYPE_KEY, _thunk(_inline_shape(assembler, shape)))]

  if isinstance(shape, UnionAnnotation):
    nullable = any(_is_null_branch(b, assembler.oracle) for b in shape.branches)
    remaining = [b for b in shape.branches if not _is_null_branch(b, assembler.oracle)]
    # More than one non-null branch would need "oneOf" semantics.
    if len(remaining) != 1:
      return []
    assignments = resolve_type_assignments(assembler, remaining[0], existing_keys)
    if not nullable:
      return assignments
    return assignments + [create_property_assignment(NULLABLE_KEY, create_boolean_literal(True))]

  resolved = assembler.oracle.type_of(shape.node)
  descriptor = type_reference_as_string(resolved)
  if not descriptor.type_name:
    return []
  identifier = type_reference_to_identifier(descriptor, assembler.context, assembler.oracle.host_module)
  return [create_property_assignment(TYPE_KEY, _thunk(identifier))]


def _inline_shape(assembler: "DescriptorAssembler", shape: InlineShapeAnnotation) -> cst.Dict:
  elements = []
  for member in shape.members:
    if member.name is None:
      continue
    unwrapped = assembler.unwrap(member)
    if assembler.skip_reason(member, unwrapped) is not None:
      continue
    elements.append(create_property_assignment(member.name, assembler.assemble(member, unwrapped)))
  return cst.Dict(elements)
