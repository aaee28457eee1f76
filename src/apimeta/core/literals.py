"""
Literal and Expression Classification.

Decides whether an expression found in a model (a default value, a validation
marker argument) can be copied into a metadata map, and builds literal nodes from
plain Python values.

What "referenceable" means depends on where the copied expression is evaluated:

* In augmentation mode the expression runs inside a static method of the same
  module, so every module-level name is visible. Names bound in the class body
  are not, and expressions reading them are rejected.
* In collection mode the expression runs in a separate artifact module, so only
  self-contained values (primitive literals, `None` and containers of those)
  are accepted.
"""

import json
from typing import Any, Iterable, Optional

import libcst as cst

from apimeta.config import PluginOptions
from apimeta.utils.ast_utils import literal_value


def primitive_type_name(node: cst.CSTNode) -> Optional[str]:
  """
  Classifies a primitive literal.

  Args:
      node: Any expression node.

  Returns:
      "boolean", "number" or "string", or None for anything else.
  """
  ok, value = literal_value(node)
  if not ok:
    return None
  if isinstance(value, bool):
    return "boolean"
  if isinstance(value, (int, float)):
    return "number"
  return "string"


def create_string_literal(value: str) -> cst.SimpleString:
  return cst.SimpleString(json.dumps(value, ensure_ascii=False))


def create_boolean_literal(value: bool) -> cst.Name:
  return cst.Name("True" if value else "False")


def create_primitive_literal(value: Any) -> cst.BaseExpression:
  """
  Builds the literal node of a bool, int, float or str value.

  Raises:
      TypeError: If the value is not a primitive.
  """
  if isinstance(value, bool):
    return create_boolean_literal(value)
  if isinstance(value, (int, float)):
    node: cst.BaseExpression = cst.Integer(str(abs(value))) if isinstance(value, int) else cst.Float(repr(abs(value)))
    if value < 0:
      return cst.UnaryOperation(operator=cst.Minus(), expression=node)
    return node
  if isinstance(value, str):
    return create_string_literal(value)
  raise TypeError(f"Not a primitive literal: {value!r}")


def create_literal_from_any_value(value: Any) -> cst.BaseExpression:
  """
  Builds a literal expression for a plain Python value.

  Supports primitives, None, lists/tuples (emitted as lists) and dicts with
  primitive keys. Other objects are emitted as their string form.

  Args:
      value: The value to express.

  Returns:
      cst.BaseExpression: An equivalent literal node.
  """
  if value is None:
    return cst.Name("None")
  if isinstance(value, (bool, int, float, str)):
    return create_primitive_literal(value)
  if isinstance(value, (list, tuple)):
    return cst.List([cst.Element(create_literal_from_any_value(item)) for item in value])
  if isinstance(value, dict):
    return cst.Dict(
      [
        cst.DictElement(create_literal_from_any_value(key), create_literal_from_any_value(item))
        for key, item in value.items()
      ]
    )
  return create_string_literal(str(value))


def clone_primitive_literal(node: cst.CSTNode) -> Optional[cst.BaseExpression]:
  """
  Re-creates a primitive literal in canonical form (e.g. `'a'` -> `"a"`, `0x10` -> `16`).

  Returns:
      The new node, or None when `node` is not a primitive literal.
  """
  ok, value = literal_value(node)
  if not ok:
    return None
  return create_primitive_literal(value)


class _NameReader(cst.CSTVisitor):
  """Collects identifiers an expression reads (attribute names and keywords excluded)."""

  def __init__(self) -> None:
    self.names = set()

  def visit_Name(self, node: cst.Name) -> None:
    self.names.add(node.value)

  def visit_Attribute(self, node: cst.Attribute) -> bool:
    node.value.visit(self)
    return False

  def visit_Arg(self, node: cst.Arg) -> bool:
    node.value.visit(self)
    return False

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    node.body.visit(self)
    return False


def _is_static_value(node: cst.CSTNode) -> bool:
  if literal_value(node)[0]:
    return True
  if isinstance(node, cst.Name) and node.value == "None":
    return True
  if isinstance(node, (cst.List, cst.Tuple, cst.Set)):
    return all(isinstance(el, cst.Element) and _is_static_value(el.value) for el in node.elements)
  if isinstance(node, cst.Dict):
    return all(
      isinstance(el, cst.DictElement) and _is_static_value(el.key) and _is_static_value(el.value)
      for el in node.elements
    )
  return False


def can_reference_node(
  node: Optional[cst.CSTNode],
  options: PluginOptions,
  class_scope_names: Iterable[str] = (),
) -> bool:
  """
  Checks that an expression stays valid once copied into the metadata map.

  Args:
      node: The candidate expression.
      options: Active options; `readonly` selects the collection-mode rules.
      class_scope_names: Names bound in the body of the class being described.

  Returns:
      bool: True if the expression can be emitted.
  """
  if node is None:
    return False
  if options.readonly:
    return _is_static_value(node)

  reader = _NameReader()
  node.visit(reader)
  return not (reader.names & set(class_scope_names))


def create_property_assignment(key: str, value: cst.BaseExpression) -> cst.DictElement:
  """Builds one `"key": value` entry of a metadata map."""
  return cst.DictElement(key=create_string_literal(key), value=value)


def property_key(element: cst.BaseDictElement) -> Optional[str]:
  """Key of a metadata map entry, or None for `**spread` and non-string keys."""
  if not isinstance(element, cst.DictElement):
    return None
  ok, value = literal_value(element.key)
  return value if ok and isinstance(value, str) else None
