"""
Resolved type model returned by the Type Oracle.

The oracle maps a syntactic annotation to one of a closed set of frozen variants.
Everything downstream (printable names, enum detection, array unwrapping) works on
these values rather than on syntax.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple, Union


class TypeKind(str, Enum):
  """Classification of a named type."""

  BUILTIN = "builtin"
  CLASS = "class"
  ENUM = "enum"


BUILTINS_MODULE = "builtins"


@dataclass(frozen=True)
class NamedType:
  """
  A type reachable by name.

  Attributes:
      name: The simple name of the type (e.g. "User").
      module: Dotted module defining the type ("builtins" for builtins).
      local: Expression text binding the type inside the host module
          (e.g. "models.User"), or None when the host cannot name it directly.
      kind: Builtin, plain class or enumeration.
      members: Member names, for enumerations.
  """

  name: str
  module: str
  local: Optional[str] = None
  kind: TypeKind = TypeKind.CLASS
  members: Tuple[str, ...] = field(default=(), compare=False)

  @property
  def qualname(self) -> str:
    """Canonical dotted name (e.g. "app.models.User")."""
    return f"{self.module}.{self.name}"

  @property
  def is_builtin(self) -> bool:
    return self.kind == TypeKind.BUILTIN


@dataclass(frozen=True)
class ArrayType:
  """A homogeneous sequence of `element`."""

  element: "OracleType"


@dataclass(frozen=True)
class LiteralType:
  """A single primitive literal (`Literal["A"]`) together with its base type."""

  value: Any
  base: NamedType


@dataclass(frozen=True)
class EnumMemberType:
  """A single member of an enumeration (`Literal[Color.RED]`)."""

  enum: NamedType
  member: str


@dataclass(frozen=True)
class UnionType:
  """A union of two or more types, in declaration order."""

  members: Tuple["OracleType", ...]


@dataclass(frozen=True)
class NoneType:
  """The `None` type."""


OracleType = Union[NamedType, ArrayType, LiteralType, EnumMemberType, UnionType, NoneType]


def builtin(name: str) -> NamedType:
  """
  Creates the NamedType of a builtin.

  Args:
      name: Builtin name (e.g. "str").

  Returns:
      NamedType: A builtin type bound under its own name.
  """
  return NamedType(name=name, module=BUILTINS_MODULE, local=name, kind=TypeKind.BUILTIN)


def make_union(members) -> OracleType:
  """
  Builds a flattened union, collapsing to the single member when only one remains.

  Args:
      members: Iterable of OracleType values; nested unions are flattened.

  Returns:
      OracleType: The union, or its only member.
  """
  flat = []
  for member in members:
    items = member.members if isinstance(member, UnionType) else (member,)
    for item in items:
      if item not in flat:
        flat.append(item)
  if len(flat) == 1:
    return flat[0]
  return UnionType(tuple(flat))
