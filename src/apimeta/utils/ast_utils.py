"""
ast_utils, small helpers for reading and building LibCST nodes.
"""

from typing import Any, List, Optional, Tuple, Union

import libcst as cst

_EMPTY_MODULE = cst.Module(body=[])


def get_full_name(node: cst.CSTNode) -> str:
  """
  Recursively resolves a CST Name or Attribute chain to a dot-separated string.

  Args:
    node: The CST node representing the identifier.

  Returns:
    str: The dotted representation (e.g., "typing.Optional").
    Returns an empty string if the node is not a Name/Attribute chain.

  Example:
    >>> get_full_name(cst.Attribute(value=cst.Name("typing"), attr=cst.Name("List")))
    'typing.List'
  """
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    base = get_full_name(node.value)
    return f"{base}.{node.attr.value}" if base else ""
  return ""


def last_segment(node: cst.CSTNode) -> str:
  """
  Returns the final identifier of a dotted name, unwrapping calls.

  `Min(3)`, `v.Min(3)` and `Min` all yield "Min".
  """
  if isinstance(node, cst.Call):
    node = node.func
  full = get_full_name(node)
  return full.rsplit(".", 1)[-1] if full else ""


def create_dotted_name(name_str: str) -> Union[cst.Name, cst.Attribute]:
  """
  Creates a CST node structure for a dotted path string.

  Args:
      name_str (str): Dot-separated path (e.g. "models.User").

  Returns:
      Union[cst.Name, cst.Attribute]: The constructed node.
  """
  parts = name_str.split(".")
  node: Union[cst.Name, cst.Attribute] = cst.Name(parts[0])
  for part in parts[1:]:
    node = cst.Attribute(value=node, attr=cst.Name(part))
  return node


def code_for(node: cst.CSTNode) -> str:
  """Renders a single node back to source text."""
  return _EMPTY_MODULE.code_for_node(node)


def string_value(node: cst.CSTNode) -> Optional[str]:
  """
  Evaluates a plain (non f-string) string literal.

  Args:
      node: Any expression node.

  Returns:
      The string value, or None if the node is not a plain string literal.
  """
  if isinstance(node, (cst.SimpleString, cst.ConcatenatedString)):
    value = node.evaluated_value
    if isinstance(value, bytes):
      return None
    return value
  return None


def literal_value(node: cst.CSTNode) -> Tuple[bool, Any]:
  """
  Evaluates a primitive literal: plain strings, numbers (optionally negated) and booleans.

  Args:
      node: Any expression node.

  Returns:
      Tuple[bool, Any]: (True, value) for a primitive literal, else (False, None).
  """
  value = string_value(node)
  if value is not None:
    return True, value
  if isinstance(node, (cst.Integer, cst.Float)):
    return True, node.evaluated_value
  if isinstance(node, cst.UnaryOperation) and isinstance(node.operator, cst.Minus):
    ok, inner = literal_value(node.expression)
    if ok and isinstance(inner, (int, float)) and not isinstance(inner, bool):
      return True, -inner
  if isinstance(node, cst.Name) and node.value in ("True", "False"):
    return True, node.value == "True"
  return False, None


def subscript_args(node: cst.Subscript) -> List[cst.BaseExpression]:
  """Plain index arguments of a subscript (`Dict[str, int]` -> [str, int]); slices are ignored."""
  args = []
  for element in node.slice:
    if isinstance(element.slice, cst.Index):
      args.append(element.slice.value)
  return args
