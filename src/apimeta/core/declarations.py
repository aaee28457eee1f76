"""
Property Declarations.

A `PropertyDeclaration` is the unit the descriptor pipeline works on. It is built
either from an annotated assignment in a class body (`name: T = value`) or from a
member of an inline shape (`TypedDict("N", {"name": T})`, `{"name": T}`).

`unwrap_annotation` peels the typing wrappers that carry property-level meaning
off an annotation:

* `Annotated[T, m1, m2]` contributes its metadata entries as markers.
* `NotRequired[T]` / `Required[T]` set the optionality marker.
* `ClassVar[T]` flags a static member.
* `Final[T]` / `ReadOnly[T]` are dropped.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import libcst as cst

from apimeta.analysis.oracle import TypeOracle
from apimeta.utils.ast_utils import last_segment, string_value, subscript_args


@dataclass
class PropertyDeclaration:
  """
  A property as declared in source.

  Attributes:
      name: The identifier, or None for computed targets (`self.x: int`, `x[0]: int`).
      annotation: The raw annotation expression.
      value: The assigned default, if any.
      docstring: Attribute docstring following the declaration.
      comments: Text of `#:` comment lines directly above the declaration.
      optional_by_default: True for members of a `total=False` shape.
  """

  name: Optional[str]
  annotation: cst.BaseExpression
  value: Optional[cst.BaseExpression] = None
  docstring: Optional[str] = None
  comments: List[str] = field(default_factory=list)
  optional_by_default: bool = False

  @classmethod
  def from_ann_assign(
    cls,
    node: cst.AnnAssign,
    docstring: Optional[str] = None,
    comments: Sequence[str] = (),
  ) -> "PropertyDeclaration":
    name = node.target.value if isinstance(node.target, cst.Name) else None
    return cls(
      name=name,
      annotation=node.annotation.annotation,
      value=node.value,
      docstring=docstring,
      comments=list(comments),
    )


@dataclass
class UnwrappedAnnotation:
  """
  An annotation with its property-level wrappers removed.

  Attributes:
      type_node: The remaining type expression.
      markers: `Annotated` metadata entries, outermost first.
      optional: True/False when `NotRequired`/`Required` was present, else None.
      class_var: True when the annotation is a `ClassVar`.
  """

  type_node: cst.BaseExpression
  markers: List[cst.BaseExpression] = field(default_factory=list)
  optional: Optional[bool] = None
  class_var: bool = False

  def is_required(self, optional_by_default: bool = False) -> bool:
    if self.optional is None:
      return not optional_by_default
    return not self.optional


def _wrapper_name(node: cst.BaseExpression, oracle: TypeOracle) -> Optional[str]:
  return oracle.special_form(node) or last_segment(node) or None


def unwrap_annotation(annotation: cst.BaseExpression, oracle: TypeOracle) -> UnwrappedAnnotation:
  """
  Strips `Annotated`, `NotRequired`, `Required`, `ClassVar`, `Final` and `ReadOnly`.

  String annotations are parsed first, so `x: "NotRequired[int]"` behaves like the
  unquoted form.

  Args:
      annotation: The declared annotation.
      oracle: Oracle of the host module, used to identify the wrappers.

  Returns:
      UnwrappedAnnotation: The inner type and the collected markers and flags.
  """
  result = UnwrappedAnnotation(type_node=annotation)
  node = annotation
  while True:
    forward = string_value(node)
    if forward is not None:
      try:
        node = cst.parse_expression(forward.strip())
      except cst.ParserSyntaxError:
        break
      continue

    if not isinstance(node, cst.Subscript):
      if _wrapper_name(node, oracle) == "ClassVar":
        result.class_var = True
      break

    args = subscript_args(node)
    if not args:
      break
    wrapper = _wrapper_name(node.value, oracle)
    if wrapper == "Annotated":
      result.markers.extend(args[1:])
    elif wrapper == "NotRequired":
      if result.optional is None:
        result.optional = True
    elif wrapper == "Required":
      if result.optional is None:
        result.optional = False
    elif wrapper == "ClassVar":
      result.class_var = True
    elif wrapper not in ("Final", "ReadOnly"):
      break
    node = args[0]

  result.type_node = node
  return result


def get_marker_or_none(markers: Sequence[cst.BaseExpression], names: Sequence[str]) -> Optional[cst.BaseExpression]:
  """
  Finds the first marker whose (last dotted) name is one of `names`.

  Both called (`Min(3)`) and bare (`IsPositive`) markers match.
  """
  for marker in markers:
    if last_segment(marker) in names:
      return marker
  return None


def marker_arguments(marker: cst.BaseExpression) -> List[cst.BaseExpression]:
  """Positional arguments of a called marker; empty for a bare one."""
  if not isinstance(marker, cst.Call):
    return []
  return [arg.value for arg in marker.args if arg.keyword is None and not arg.star]


def marker_keywords(marker: cst.BaseExpression) -> List[Tuple[str, cst.BaseExpression]]:
  """Keyword arguments of a called marker, in source order."""
  if not isinstance(marker, cst.Call):
    return []
  return [(arg.keyword.value, arg.value) for arg in marker.args if arg.keyword is not None]


def unwrap_default(value: Optional[cst.BaseExpression], oracle: TypeOracle) -> Optional[cst.BaseExpression]:
  """
  Finds the default a declaration's assigned value stands for.

  * `cast(T, v)` -> `v`
  * `field(default=v)`, `Field(v)`, `Field(default=v)` -> `v`
  * `Field(...)`, `field()` and factories -> None

  Args:
      value: The assigned expression.
      oracle: Oracle of the host module.

  Returns:
      The default expression, or None when there is none.
  """
  if not isinstance(value, cst.Call):
    return value
  name = oracle.special_form(value.func) or last_segment(value.func)
  if name == "cast":
    positional = marker_arguments(value)
    return positional[1] if len(positional) == 2 else value
  if name in ("field", "Field"):
    for keyword, expr in marker_keywords(value):
      if keyword == "default":
        return None if isinstance(expr, cst.Ellipsis) else expr
    positional = marker_arguments(value)
    if positional and not isinstance(positional[0], cst.Ellipsis):
      return positional[0]
    return None
  return value
