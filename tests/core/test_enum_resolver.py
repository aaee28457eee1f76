"""
Tests for the Enum Resolver.

Verifies:
1.  Enumeration classes are referenced by name (with `isArray` for arrays).
2.  Literal unions become value lists; single literals become one-item lists.
3.  Unions of members of one enumeration collapse to the enumeration.
4.  A single member is referenced as `Enum.MEMBER`.
5.  Non-enumerable types produce nothing.
"""

import libcst as cst
import pytest

from apimeta.core.resolvers.enums import resolve_enum_assignments
from apimeta.utils.ast_utils import code_for

MODULE = """
import enum
from typing import Literal, Optional

from app.enums import Size


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Shade(Color):
    pass


class Plain:
    pass
"""


@pytest.fixture
def assembler(assembler_for):
  return assembler_for(MODULE, module_name="app.models")


def _enum(assembler, source):
  elements = resolve_enum_assignments(assembler, cst.parse_expression(source), frozenset())
  return code_for(cst.Dict(elements))


@pytest.mark.parametrize(
  "source, expected",
  [
    ("Color", '{"enum": Color}'),
    ("Shade", '{"enum": Shade}'),
    ("Optional[Color]", '{"enum": Color}'),
    ("list[Color]", '{"enum": Color, "isArray": True}'),
    ('Literal["A", "B"]', '{"enum": ["A", "B"]}'),
    ('Literal["A", "B", None]', '{"enum": ["A", "B"]}'),
    ("Literal[1, -2]", '{"enum": [1, -2]}'),
    ('Literal["ONLY"]', '{"enum": ["ONLY"]}'),
    ('list[Literal["A", "B"]]', '{"enum": ["A", "B"], "isArray": True}'),
    ("Literal[Color.RED]", '{"enum": Color.RED}'),
    ("Literal[Color.RED, Color.GREEN]", '{"enum": Color}'),
    ("list[Literal[Color.RED, Color.GREEN]]", '{"enum": Color, "isArray": True}'),
    ("Plain", "{}"),
    ("str", "{}"),
    ("Size", "{}"),
    ("Literal[Plain.X]", "{}"),
  ],
)
def test_enum_entries(assembler, source, expected):
  assert _enum(assembler, source) == expected


def test_seeded_enum_is_kept(assembler):
  assert resolve_enum_assignments(assembler, cst.parse_expression("Color"), frozenset({"enum"})) == []


def test_collection_mode_spelling(assembler_for):
  """
  Scenario: Enum references produced in collection mode.
  Expectation: They are spelled through the artifact's module table and recorded.
  """
  assembler = assembler_for(MODULE, module_name="app.models", readonly=True)
  assert _enum(assembler, "Color") == '{"enum": t["app.models"].Color}'
  assert _enum(assembler, "Literal[Color.RED]") == '{"enum": t["app.models"].Color.RED}'
  assert "app.models.Color" in assembler.context.type_imports
