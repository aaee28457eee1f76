"""
Tests for the Type Descriptor Resolver.

Verifies:
1.  Annotation classification (inline shape, union, named).
2.  `type` thunks for builtins, classes, arrays and imported types.
3.  `nullable` for `None` branches and no type for multi-branch unions.
4.  Enumerations never get a `type` entry.
"""

import libcst as cst
import pytest

from apimeta.core.resolvers.type_descriptor import (
  InlineShapeAnnotation,
  NamedAnnotation,
  UnionAnnotation,
  classify_annotation,
  resolve_type_assignments,
)
from apimeta.utils.ast_utils import code_for

MODULE = """
import datetime
from enum import Enum
from typing import List, Optional, TypedDict, Union

from app.common import Money
from . import shared


class User:
    pass


class Color(Enum):
    RED = 1


UserList = list[User]
"""


@pytest.fixture
def assembler(assembler_for):
  return assembler_for(MODULE, module_name="app.models")


def _types(assembler, source):
  elements = resolve_type_assignments(assembler, cst.parse_expression(source), frozenset())
  return code_for(cst.Dict(elements))


def test_classify(assembler):
  oracle = assembler.oracle
  assert isinstance(classify_annotation(cst.parse_expression('{"a": int}'), oracle), InlineShapeAnnotation)
  shape = classify_annotation(cst.parse_expression('TypedDict("P", {"a": int}, total=False)'), oracle)
  assert isinstance(shape, InlineShapeAnnotation)
  assert shape.members[0].optional_by_default is True
  assert isinstance(classify_annotation(cst.parse_expression("int | None"), oracle), UnionAnnotation)
  assert isinstance(classify_annotation(cst.parse_expression("Optional[int]"), oracle), UnionAnnotation)
  assert isinstance(classify_annotation(cst.parse_expression("'Union[int, str]'"), oracle), UnionAnnotation)
  assert isinstance(classify_annotation(cst.parse_expression("List[int]"), oracle), NamedAnnotation)


@pytest.mark.parametrize(
  "source, expected",
  [
    ("str", '{"type": lambda: str}'),
    ("User", '{"type": lambda: User}'),
    ('"User"', '{"type": lambda: User}'),
    ("List[User]", '{"type": lambda: [User]}'),
    ("list[list[int]]", '{"type": lambda: [[int]]}'),
    ("UserList", '{"type": lambda: [User]}'),
    ("tuple[int, ...]", '{"type": lambda: [int]}'),
    ("dict[str, int]", '{"type": lambda: dict}'),
    ("datetime.date", '{"type": lambda: datetime.date}'),
    ("Money", '{"type": lambda: Money}'),
    ("shared.Thing", '{"type": lambda: shared.Thing}'),
    ("Optional[User]", '{"type": lambda: User, "nullable": True}'),
    ("None | str", '{"type": lambda: str, "nullable": True}'),
    ("Union[int, str]", "{}"),
    ("Color", "{}"),
    ("list[Color]", "{}"),
    ("tuple[int, str]", "{}"),
    ("Unknown", "{}"),
  ],
)
def test_type_entries(assembler, source, expected):
  assert _types(assembler, source) == expected


def test_seeded_type_is_kept(assembler):
  assert resolve_type_assignments(assembler, cst.parse_expression("str"), frozenset({"type"})) == []


def test_inline_shape_members(assembler):
  assert _types(assembler, '{"a": str, "b": "User"}') == (
    '{"type": lambda: {"a": {"required": True, "type": lambda: str}, '
    '"b": {"required": True, "type": lambda: User}}}'
  )


def test_cross_module_references_are_recorded(assembler):
  """
  Scenario: Augmentation mode with an imported class, a local class and a builtin.
  Expectation: Only the imported class is recorded as a type import.
  """
  _types(assembler, "Money")
  _types(assembler, "User")
  _types(assembler, "str")
  assert assembler.context.type_imports.as_dict() == {"app.common.Money": "app.common"}


def test_collection_mode_spelling(assembler_for):
  assembler = assembler_for(MODULE, module_name="app.models", readonly=True)
  assert _types(assembler, "List[User]") == '{"type": lambda: [t["app.models"].User]}'
  assert _types(assembler, "Money") == '{"type": lambda: t["app.common"].Money}'
  assert assembler.context.type_imports.as_dict() == {
    "app.models.User": "app.models",
    "app.common.Money": "app.common",
  }


@pytest.mark.parametrize(
  "source",
  [
    "Optional[Union[int, str]]",
    "Union[int, Optional[str]]",
    "int | str | None",
    "Optional[int | str]",
    "'Optional[Union[int, str]]'",
  ],
)
def test_nested_unions_with_two_branches_have_no_entries(assembler, source):
  """
  Scenario: A nullable union with two non-null branches, spelled in several ways.
  Expectation: Every spelling is flattened first, so none yields `type` or `nullable`.
  """
  assert _types(assembler, source) == "{}"


@pytest.mark.parametrize(
  "source",
  ["Optional[Union[User, None]]", "Union[Optional[User]]", "Optional[User | None]"],
)
def test_nested_unions_with_one_branch(assembler, source):
  """
  Scenario: Nested unions that reduce to a single non-null branch.
  Expectation: The branch gets a `type` thunk and the union is `nullable`.
  """
  assert _types(assembler, source) == '{"type": lambda: User, "nullable": True}'


def test_classify_flattens_nested_unions(assembler):
  shape = classify_annotation(cst.parse_expression("Optional[Union[int, str]]"), assembler.oracle)
  assert [code_for(b) for b in shape.branches] == ["int", "str", "None"]
