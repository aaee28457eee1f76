"""
Type Oracle.

The oracle answers the type-level questions the metadata pass asks about an
annotation: what type does it denote, is it an enumeration, which typing special
form does an expression name. `TypeOracle` is the interface; `SourceTypeOracle`
is a purely syntactic implementation backed by `ModuleSymbols` tables.

Resolution order for a bare name is: classes defined in the module, type aliases,
imports (followed through the `ProjectIndex` when the target module is indexed),
then builtins. Anything else resolves to None, which callers treat as
"unrepresentable".
"""

from dataclasses import replace
from typing import FrozenSet, List, Optional, Protocol, Tuple

import libcst as cst

from apimeta.analysis.symbol_table import ModuleSymbols, ProjectIndex
from apimeta.analysis.types import (
  ArrayType,
  EnumMemberType,
  LiteralType,
  NamedType,
  NoneType,
  OracleType,
  TypeKind,
  UnionType,
  builtin,
  make_union,
)
from apimeta.utils.ast_utils import get_full_name, literal_value, string_value, subscript_args

TYPING_MODULES = {"typing", "typing_extensions", "collections.abc", "collections"}
ENUM_MODULE = "enum"
ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag", "ReprEnum"}

BUILTIN_TYPES = {
  "str",
  "int",
  "float",
  "bool",
  "bytes",
  "bytearray",
  "complex",
  "object",
  "dict",
  "list",
  "set",
  "frozenset",
  "tuple",
  "type",
}

ARRAY_FORMS = {
  "list",
  "List",
  "Sequence",
  "MutableSequence",
  "Iterable",
  "Collection",
  "set",
  "Set",
  "MutableSet",
  "AbstractSet",
  "frozenset",
  "FrozenSet",
  "deque",
  "Deque",
}
MAPPING_FORMS = {
  "dict",
  "Dict",
  "Mapping",
  "MutableMapping",
  "DefaultDict",
  "defaultdict",
  "OrderedDict",
  "Counter",
  "TypedDict",
}
TUPLE_FORMS = {"tuple", "Tuple"}
WRAPPER_FORMS = {"Annotated", "NotRequired", "Required", "ReadOnly", "Final", "ClassVar"}

_Seen = FrozenSet[Tuple[str, str]]


class TypeOracle(Protocol):
  """
  Interface of the type-resolution service consulted by the metadata pass.
  """

  host_module: str
  """Dotted name of the module being processed."""

  def type_of(self, annotation: cst.BaseExpression) -> Optional[OracleType]:
    """Resolves an annotation expression, or None when it cannot be represented."""
    ...

  def special_form(self, node: cst.BaseExpression) -> Optional[str]:
    """Names the typing/builtin special form an expression denotes (e.g. "Optional")."""
    ...


def _strip_locals(t: Optional[OracleType]) -> Optional[OracleType]:
  """Drops host-relative expression text from a type found in another module."""
  if isinstance(t, NamedType):
    return t if t.is_builtin else replace(t, local=None)
  if isinstance(t, ArrayType):
    element = _strip_locals(t.element)
    return ArrayType(element) if element is not None else None
  if isinstance(t, EnumMemberType):
    return EnumMemberType(enum=_strip_locals(t.enum), member=t.member)
  if isinstance(t, UnionType):
    return UnionType(tuple(_strip_locals(m) for m in t.members))
  return t


class SourceTypeOracle:
  """
  Syntactic TypeOracle over one module's symbol table.

  Attributes:
      symbols (ModuleSymbols): Table of the host module.
      project (Optional[ProjectIndex]): Tables of the other modules of the source tree.
  """

  def __init__(self, symbols: ModuleSymbols, project: Optional[ProjectIndex] = None):
    self.symbols = symbols
    self.project = project

  @property
  def host_module(self) -> str:
    return self.symbols.module_name

  def type_of(self, annotation: cst.BaseExpression) -> Optional[OracleType]:
    return self._resolve(annotation, self.symbols, frozenset())

  def special_form(self, node: cst.BaseExpression) -> Optional[str]:
    return self._special_name(node, self.symbols)

  # --- Special forms ---

  def _special_name(self, node: cst.BaseExpression, symbols: ModuleSymbols) -> Optional[str]:
    full = get_full_name(node)
    if not full:
      return None
    head, *rest = full.split(".")
    binding = symbols.imports.get(head)

    if not rest:
      if binding is not None:
        if binding.name is not None and binding.module in TYPING_MODULES:
          return binding.name
        return None
      if head in symbols.classes or head in symbols.aliases:
        return None
      if head in BUILTIN_TYPES:
        return head
      return None

    if binding is None:
      return None
    if binding.name is None:
      module = ".".join([binding.module, *rest[:-1]])
    else:
      module = ".".join([binding.module, binding.name, *rest[:-1]])
    if module in TYPING_MODULES:
      return rest[-1]
    return None

  # --- Resolution ---

  def _resolve(self, node: cst.BaseExpression, symbols: ModuleSymbols, seen: _Seen) -> Optional[OracleType]:
    if isinstance(node, cst.Name) and node.value == "None":
      return NoneType()

    forward = string_value(node)
    if forward is not None:
      try:
        parsed = cst.parse_expression(forward.strip())
      except cst.ParserSyntaxError:
        return None
      return self._resolve(parsed, symbols, seen)

    if isinstance(node, cst.BinaryOperation) and isinstance(node.operator, cst.BitOr):
      left = self._resolve(node.left, symbols, seen)
      right = self._resolve(node.right, symbols, seen)
      if left is None or right is None:
        return None
      return make_union([left, right])

    if isinstance(node, cst.Subscript):
      return self._resolve_subscript(node, symbols, seen)

    if isinstance(node, (cst.Name, cst.Attribute)):
      special = self._special_name(node, symbols)
      if special is not None:
        return self._resolve_bare_special(special)
      return self._resolve_name(get_full_name(node), symbols, seen)

    if isinstance(node, cst.Call):
      special = self._special_name(node.func, symbols)
      if special == "type" and len(node.args) == 1:
        inner = node.args[0].value
        if isinstance(inner, cst.Name) and inner.value == "None":
          return NoneType()
      if special == "TypedDict":
        return builtin("dict")
      return None

    if isinstance(node, cst.Dict):
      return builtin("dict")

    return None

  def _resolve_bare_special(self, special: str) -> Optional[OracleType]:
    if special in ("Any", "object"):
      return builtin("object")
    if special in MAPPING_FORMS:
      return builtin("dict")
    if special in ARRAY_FORMS or special in TUPLE_FORMS:
      return builtin("list")
    if special in BUILTIN_TYPES:
      return builtin(special)
    return None

  def _resolve_subscript(self, node: cst.Subscript, symbols: ModuleSymbols, seen: _Seen) -> Optional[OracleType]:
    special = self._special_name(node.value, symbols)
    args = subscript_args(node)
    if special is None:
      # User generic such as `Page[User]`: the origin names the type.
      return self._resolve(node.value, symbols, seen)
    if not args:
      return None

    if special in WRAPPER_FORMS:
      return self._resolve(args[0], symbols, seen)
    if special in ARRAY_FORMS:
      element = self._resolve(args[0], symbols, seen)
      return ArrayType(element) if element is not None else None
    if special in TUPLE_FORMS:
      if len(args) == 2 and isinstance(args[1], cst.Ellipsis):
        element = self._resolve(args[0], symbols, seen)
        return ArrayType(element) if element is not None else None
      return None
    if special in MAPPING_FORMS:
      return builtin("dict")
    if special == "Optional":
      inner = self._resolve(args[0], symbols, seen)
      return make_union([inner, NoneType()]) if inner is not None else None
    if special == "Union":
      members = [self._resolve(arg, symbols, seen) for arg in args]
      if any(m is None for m in members):
        return None
      return make_union(members)
    if special == "Literal":
      return self._resolve_literal(args, symbols, seen)
    if special in ("type", "Type"):
      return builtin("type")
    return None

  def _resolve_literal(
    self, args: List[cst.BaseExpression], symbols: ModuleSymbols, seen: _Seen
  ) -> Optional[OracleType]:
    members: List[OracleType] = []
    for arg in args:
      if isinstance(arg, cst.Name) and arg.value == "None":
        members.append(NoneType())
        continue
      ok, value = literal_value(arg)
      if ok:
        members.append(LiteralType(value=value, base=builtin(type(value).__name__)))
        continue
      full = get_full_name(arg)
      if "." not in full:
        return None
      owner, member = full.rsplit(".", 1)
      enum_type = self._resolve_name(owner, symbols, seen)
      if not isinstance(enum_type, NamedType) or enum_type.kind != TypeKind.ENUM:
        return None
      members.append(EnumMemberType(enum=enum_type, member=member))
    return make_union(members) if members else None

  def _resolve_name(self, dotted: str, symbols: ModuleSymbols, seen: _Seen) -> Optional[OracleType]:
    if not dotted:
      return None
    head, *rest = dotted.split(".")

    if head in symbols.classes:
      if rest:
        return NamedType(name=dotted, module=symbols.module_name, local=dotted)
      return self._class_type(symbols, head, local=head, seen=seen)

    if head in symbols.aliases and not rest:
      key = (symbols.module_name, head)
      if key in seen:
        return None
      return self._resolve(symbols.aliases[head], symbols, seen | {key})

    binding = symbols.imports.get(head)
    if binding is not None:
      # Names imported under `if TYPE_CHECKING:` are unbound at runtime.
      local = None if binding.type_only else dotted
      if binding.name is None:
        if not rest:
          return None
        # `import a.b` binds `a`; `import a.b as m` binds `m` to `a.b`.
        full = ".".join([binding.module, *rest])
        module, name = full.rsplit(".", 1)
        return self._resolve_external(module, name, local, seen)
      if rest:
        module = ".".join([binding.module, binding.name, *rest[:-1]])
        return self._resolve_external(module, rest[-1], local, seen)
      return self._resolve_external(binding.module, binding.name, local, seen)

    if not rest and head in BUILTIN_TYPES:
      return builtin(head)
    return None

  def _resolve_external(self, module: str, name: str, local: Optional[str], seen: _Seen) -> Optional[OracleType]:
    if module in TYPING_MODULES:
      return self._resolve_bare_special(name)
    if module == "builtins":
      return builtin(name) if name in BUILTIN_TYPES else None
    if module == ENUM_MODULE and name in ENUM_BASES:
      return NamedType(name=name, module=module, local=local, kind=TypeKind.ENUM)

    key = (module, name)
    external = self.project.get(module) if self.project is not None else None
    if external is None or key in seen:
      return NamedType(name=name, module=module, local=local)

    if name in external.classes:
      return self._class_type(external, name, local=local, seen=seen | {key})
    if name in external.aliases:
      return _strip_locals(self._resolve(external.aliases[name], external, seen | {key}))
    if name in external.imports:
      resolved = self._resolve_name(name, external, seen | {key})
      if isinstance(resolved, NamedType):
        return replace(resolved, local=local) if not resolved.is_builtin else resolved
      return _strip_locals(resolved)
    return NamedType(name=name, module=module, local=local)

  def _class_type(self, symbols: ModuleSymbols, name: str, local: Optional[str], seen: _Seen) -> NamedType:
    cls = symbols.classes[name]
    is_enum = self._is_enum_class(symbols, name, seen)
    return NamedType(
      name=name,
      module=symbols.module_name,
      local=local,
      kind=TypeKind.ENUM if is_enum else TypeKind.CLASS,
      members=cls.members if is_enum else (),
    )

  def _is_enum_class(self, symbols: ModuleSymbols, name: str, seen: _Seen) -> bool:
    key = (symbols.module_name, f"class:{name}")
    if key in seen:
      return False
    seen = seen | {key}
    for base in symbols.classes[name].bases:
      if isinstance(base, cst.Subscript):
        base = base.value
      resolved = self._resolve_name(get_full_name(base), symbols, seen)
      if isinstance(resolved, NamedType) and resolved.kind == TypeKind.ENUM:
        return True
    return False
