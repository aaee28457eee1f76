"""
Tests for literal construction and the referenceability check.
"""

import libcst as cst
import pytest

from apimeta.config import PluginOptions
from apimeta.core.literals import (
  can_reference_node,
  clone_primitive_literal,
  create_literal_from_any_value,
  create_primitive_literal,
  create_property_assignment,
  create_string_literal,
  primitive_type_name,
  property_key,
)
from apimeta.utils.ast_utils import code_for

AUGMENT = PluginOptions()
COLLECT = PluginOptions(readonly=True, path_to_source=".")


@pytest.mark.parametrize(
  "source, expected",
  [
    ("'a'", "string"),
    ("3", "number"),
    ("-2.5", "number"),
    ("True", "boolean"),
    ("None", None),
    ("x", None),
    ("f'{x}'", None),
  ],
)
def test_primitive_type_name(source, expected):
  assert primitive_type_name(cst.parse_expression(source)) == expected


def test_string_literal_escapes():
  assert create_string_literal('say "hi"').value == '"say \\"hi\\""'
  assert create_string_literal("é").value == '"é"'


@pytest.mark.parametrize(
  "value, expected",
  [(True, "True"), (False, "False"), (42, "42"), (-1, "-1"), (0.5, "0.5"), ("x", '"x"')],
)
def test_create_primitive_literal(value, expected):
  assert code_for(create_primitive_literal(value)) == expected


def test_create_primitive_literal_rejects_objects():
  with pytest.raises(TypeError):
    create_primitive_literal(object())


def test_create_literal_from_any_value():
  node = create_literal_from_any_value({"a": [1, None, ("b", False)]})
  assert code_for(node) == '{"a": [1, None, ["b", False]]}'


def test_clone_normalizes_spelling():
  """
  Scenario: Literals in alternative spellings and a bare name.
  Expectation: Literals are re-emitted canonically; names are not literals.
  """
  assert code_for(clone_primitive_literal(cst.parse_expression("'a'"))) == '"a"'
  assert code_for(clone_primitive_literal(cst.parse_expression("0x10"))) == "16"
  assert clone_primitive_literal(cst.parse_expression("LIMIT")) is None


@pytest.mark.parametrize(
  "source, augment_ok, collect_ok",
  [
    ("3", True, True),
    ("None", True, True),
    ('["a", 1, {"k": None}]', True, True),
    ("LIMIT", True, False),
    ("compute()", True, False),
    ("LOCAL", False, False),
    ("LOCAL + 1", False, False),
    ("helpers.LOCAL", True, False),
  ],
)
def test_can_reference_node(source, augment_ok, collect_ok):
  """
  Scenario: Expressions checked for both evaluation sites, with LOCAL in class scope.
  Expectation: Non-literal expressions only work when augmenting and free of class-scoped names; literals always work.
  """
  node = cst.parse_expression(source)
  assert can_reference_node(node, AUGMENT, ["LOCAL"]) is augment_ok
  assert can_reference_node(node, COLLECT, ["LOCAL"]) is collect_ok


def test_can_reference_missing_node():
  assert can_reference_node(None, AUGMENT) is False


def test_property_assignment_round_trip():
  element = create_property_assignment("minLength", create_primitive_literal(2))
  assert code_for(cst.Dict([element])) == '{"minLength": 2}'
  assert property_key(element) == "minLength"
  assert property_key(cst.StarredDictElement(cst.Name("extra"))) is None
