"""
Named Type References.

Turns oracle types into printable descriptors and printable descriptors into the
expressions a metadata map uses to point at a type.

How a named type is spelled depends on where the map is evaluated:

* Augmentation mode: inside the class's own module. Types bound there keep their
  local spelling (`User`, `models.User`); other types, and names imported only
  under `if TYPE_CHECKING:`, are fetched with
  `__import__("pkg.mod", fromlist=["Name"]).Name`.
* Collection mode: inside the artifact's `metadata()` function, where `t` maps a
  module name to the imported module. Every type is spelled `t["pkg.mod"].Name`.

Every cross-module reference, and every reference emitted in collection mode, is
recorded in the run's `TypeImportTable`.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import libcst as cst

from apimeta.analysis.types import (
  ArrayType,
  EnumMemberType,
  LiteralType,
  NamedType,
  NoneType,
  OracleType,
  TypeKind,
  UnionType,
  make_union,
)
from apimeta.constants import TYPE_IMPORTS_BINDING
from apimeta.core.context import RunContext
from apimeta.core.literals import create_string_literal
from apimeta.errors import AnnotationError


@dataclass(frozen=True)
class TypeReferenceDescriptor:
  """
  Printable form of a type.

  Attributes:
      type_name: Printable name (e.g. "User", "[str]"), or None when the type has none.
      named: The innermost named type.
      array_depth: How many array levels wrap `named`.
  """

  type_name: Optional[str]
  named: Optional[NamedType] = None
  array_depth: int = 0


ABSENT = TypeReferenceDescriptor(type_name=None)


def _without_none(t: UnionType) -> Optional[OracleType]:
  members = [m for m in t.members if not isinstance(m, NoneType)]
  if not members:
    return None
  return make_union(members)


def _literal_base(t: OracleType) -> Optional[NamedType]:
  """Common base of a literal or a union of literals sharing one base."""
  if isinstance(t, LiteralType):
    return t.base
  if isinstance(t, UnionType) and all(isinstance(m, LiteralType) for m in t.members):
    bases = {m.base for m in t.members}
    if len(bases) == 1:
      return bases.pop()
  return None


def type_reference_as_string(t: Optional[OracleType]) -> TypeReferenceDescriptor:
  """
  Computes the printable name of an oracle type.

  Enumerations, enum members, multi-branch unions and `None` have no printable
  name; their descriptor is `ABSENT`.

  Args:
      t: The resolved type.

  Returns:
      TypeReferenceDescriptor: The printable descriptor.
  """
  if t is None or isinstance(t, (NoneType, EnumMemberType)):
    return ABSENT

  if isinstance(t, ArrayType):
    inner = type_reference_as_string(t.element)
    if inner.type_name is None:
      return ABSENT
    return TypeReferenceDescriptor(
      type_name=f"[{inner.type_name}]",
      named=inner.named,
      array_depth=inner.array_depth + 1,
    )

  if isinstance(t, UnionType):
    base = _literal_base(_without_none(t) or t)
    if base is not None:
      return type_reference_as_string(base)
    remaining = _without_none(t)
    if remaining is None or isinstance(remaining, UnionType):
      return ABSENT
    return type_reference_as_string(remaining)

  if isinstance(t, LiteralType):
    return type_reference_as_string(t.base)

  if t.kind == TypeKind.ENUM:
    return ABSENT
  return TypeReferenceDescriptor(type_name=t.name, named=t)


def _named_reference(named: NamedType, context: RunContext, host_module: str) -> cst.BaseExpression:
  if named.is_builtin:
    return cst.Name(named.name)

  if named.module != host_module or context.readonly:
    context.type_imports.record(named.qualname, named.module)

  if context.readonly:
    expr = f"{TYPE_IMPORTS_BINDING}[{create_string_literal(named.module).value}].{named.name}"
  elif named.local is not None:
    expr = named.local
  else:
    module = create_string_literal(named.module).value
    head = create_string_literal(named.name.split(".")[0]).value
    expr = f"__import__({module}, fromlist=[{head}]).{named.name}"
  return cst.parse_expression(expr)


def type_reference_to_identifier(
  descriptor: TypeReferenceDescriptor,
  context: RunContext,
  host_module: str,
) -> cst.BaseExpression:
  """
  Builds the expression a metadata map uses to refer to a type.

  Args:
      descriptor: Printable descriptor with a named type.
      context: The run context (mode and type-import table).
      host_module: Dotted name of the module being processed.

  Returns:
      cst.BaseExpression: The reference, wrapped in one list display per array level.
  """
  if descriptor.named is None:
    raise AnnotationError(f"Descriptor {descriptor.type_name!r} names no type")
  node = _named_reference(descriptor.named, context, host_module)
  for _ in range(descriptor.array_depth):
    node = cst.List([cst.Element(node)])
  return node


def enum_member_reference(member: EnumMemberType, context: RunContext, host_module: str) -> cst.BaseExpression:
  """`Color.RED` in the spelling of the current mode."""
  owner = _named_reference(member.enum, context, host_module)
  return cst.Attribute(value=owner, attr=cst.Name(member.member))


def extract_type_argument_if_array(t: OracleType) -> Tuple[OracleType, bool]:
  """
  Unwraps one level of array.

  Returns:
      Tuple[OracleType, bool]: The element type and True, or the type itself and False.
  """
  if isinstance(t, ArrayType):
    return t.element, True
  return t, False


def is_enum(t: Optional[OracleType]) -> bool:
  return isinstance(t, NamedType) and t.kind == TypeKind.ENUM


def is_auto_generated_type_union(t: Optional[OracleType]) -> bool:
  """True for `T | None` with exactly one other branch (e.g. an `Optional` behind an alias)."""
  if not isinstance(t, UnionType) or len(t.members) != 2:
    return False
  return any(isinstance(m, NoneType) for m in t.members)


def auto_generated_enum_union(t: Optional[OracleType]) -> Optional[OracleType]:
  """
  Detects a literal union that behaves like an enumeration.

  * `Literal["A", "B"]` (and a single literal) is returned without its `None`
    branch.
  * `Literal[Color.RED, Color.GREEN]` collapses to `Color` when every member
    belongs to the same enumeration.
  * Arrays of either keep their array wrapper.

  Args:
      t: The resolved type.

  Returns:
      The enum domain, or None when `t` is not enum-like.
  """
  if isinstance(t, ArrayType):
    inner = auto_generated_enum_union(t.element)
    return ArrayType(inner) if inner is not None else None
  if isinstance(t, UnionType):
    t = _without_none(t)
  if t is None:
    return None
  if isinstance(t, LiteralType):
    return t
  if not isinstance(t, UnionType):
    return None
  if all(isinstance(m, LiteralType) for m in t.members):
    return t
  if all(isinstance(m, EnumMemberType) for m in t.members):
    owners = {m.enum for m in t.members}
    if len(owners) == 1:
      return owners.pop()
  return None
