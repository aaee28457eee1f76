"""
Tests for the Validation-Marker Mapper.
"""

import libcst as cst
import pytest

from apimeta.core.resolvers.validation import _pattern_source, resolve_validation_assignments
from apimeta.utils.ast_utils import code_for


def _validation(assembler, *markers):
  nodes = [cst.parse_expression(m) for m in markers]
  return code_for(cst.Dict(resolve_validation_assignments(assembler, nodes)))


@pytest.mark.parametrize(
  "markers, expected",
  [
    (("Min(3)",), '{"minimum": 3}'),
    (("Ge(0)",), '{"minimum": 0}'),
    (("Max(9.5)",), '{"maximum": 9.5}'),
    (("MinLength(1)", "MaxLength(8)"), '{"minLength": 1, "maxLength": 8}'),
    (("IsPositive()",), '{"minimum": 1}'),
    (("IsNegative",), '{"maximum": -1}'),
    (("Length(2, 10)",), '{"minLength": 2, "maxLength": 10}'),
    (("Length(2)",), '{"minLength": 2}'),
    (("Matches(r'^[a-z]+$')",), '{"pattern": "^[a-z]+$"}'),
    (("Matches(re.compile('\\\\d+'))",), '{"pattern": "\\\\d+"}'),
    (('IsIn(["a", "b"])',), '{"enum": ["a", "b"]}'),
    (("Unrelated(1)",), "{}"),
    (("Min()",), "{}"),
  ],
)
def test_marker_entries(assembler_for, markers, expected):
  assert _validation(assembler_for(), *markers) == expected


def test_marker_table_order(assembler_for):
  """
  Scenario: Markers given in an order different from the mapping table.
  Expectation: Entries follow the table order, not the marker order.
  """
  result = _validation(assembler_for(), "Matches('x')", "Max(5)", "Min(1)", "IsIn([1])")
  assert result == '{"enum": [1], "minimum": 1, "maximum": 5, "pattern": "x"}'


def test_first_marker_of_a_kind_wins(assembler_for):
  assert _validation(assembler_for(), "Min(1)", "Min(2)") == '{"minimum": 1}'


def test_is_in_is_suppressed_when_collecting(assembler_for):
  assert _validation(assembler_for(readonly=True), "IsIn(['a'])", "Min(1)") == '{"minimum": 1}'


def test_non_literal_arguments(assembler_for):
  """
  Scenario: A marker argument that is a module-level name.
  Expectation: It is referenced when augmenting and dropped when collecting.
  """
  assert _validation(assembler_for(), "Min(LOWER)") == '{"minimum": LOWER}'
  assert _validation(assembler_for(readonly=True), "Min(LOWER)", "Max(3)") == '{"maximum": 3}'


def test_unreferenceable_argument_is_noted(assembler_for, caplog):
  caplog.set_level("DEBUG", logger="apimeta")
  assembler = assembler_for(readonly=True, debug=True)
  _validation(assembler, "Length(LOW, 4)")
  assert "Skipping validation argument" in caplog.text
  assert "LOW" in caplog.text


def test_length_keeps_min_when_max_unreferenceable(assembler_for):
  """
  Scenario: Length with a literal minimum and a name as maximum, in collection mode.
  Expectation: The minimum survives on its own.
  """
  assert _validation(assembler_for(readonly=True), "Length(2, HIGH)") == '{"minLength": 2}'


def test_pattern_source():
  assert _pattern_source(cst.parse_expression("'a+'")) == "a+"
  assert _pattern_source(cst.parse_expression("re.compile('b+', re.I)")) == "b+"
  assert _pattern_source(cst.parse_expression("PATTERN")) is None
  assert _pattern_source(None) is None
