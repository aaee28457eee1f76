"""
Tests for the Documentation Extractor.

Verifies:
1.  Docstring prose and reST field tags are split apart.
2.  One example becomes `example`, several become `examples`.
3.  `#:` comments are used when there is no docstring.
4.  Nothing is emitted unless comment introspection is enabled.
5.  The description key is configurable and seeded keys are respected.
"""

import libcst as cst

from apimeta.core.declarations import PropertyDeclaration
from apimeta.core.resolvers.docs import doc_text_of, parse_doc_comment, resolve_docs_assignments
from apimeta.utils.ast_utils import code_for

DOCSTRING = """
    The display name.

    Shown on the profile page.

    :example: "Ada"
    :example: 42
    :deprecated: use full_name
    :internal: ignored
"""


def _declaration(docstring=None, comments=()):
  return PropertyDeclaration(name="name", annotation=cst.Name("str"), docstring=docstring, comments=list(comments))


def _docs(assembler, declaration, existing=frozenset()):
  return code_for(cst.Dict(resolve_docs_assignments(assembler, declaration, existing)))


def test_parse_doc_comment():
  doc = parse_doc_comment(DOCSTRING)
  assert doc.description == "The display name.\n\nShown on the profile page."
  assert doc.examples == ["Ada", 42]
  assert doc.deprecated is True
  assert doc.deprecation_reason == "use full_name"


def test_parse_bare_example_text():
  """
  Scenario: An example tag whose text is not a Python literal.
  Expectation: The raw text is kept as the example value.
  """
  doc = parse_doc_comment(":example: not python")
  assert doc.description is None
  assert doc.examples == ["not python"]
  assert doc.deprecated is False


def test_parse_empty():
  doc = parse_doc_comment(None)
  assert doc.description is None
  assert doc.examples == []


def test_docstring_takes_precedence_over_comments():
  assert doc_text_of(_declaration(docstring="Doc", comments=["Comment"])) == "Doc"
  assert doc_text_of(_declaration(comments=["First", "Second"])) == "First\nSecond"
  assert doc_text_of(_declaration()) is None


def test_entries(assembler_for):
  assembler = assembler_for(introspect_comments=True)
  assert _docs(assembler, _declaration(DOCSTRING)) == (
    '{"description": "The display name.\\n\\nShown on the profile page.", '
    '"examples": ["Ada", 42], "deprecated": True}'
  )


def test_single_example(assembler_for):
  """
  Scenario: Comment lines with one example tag.
  Expectation: The singular example key is used.
  """
  assembler = assembler_for(introspect_comments=True)
  assert _docs(assembler, _declaration(comments=["Age.", ":example: 7"])) == '{"description": "Age.", "example": 7}'


def test_disabled_by_default(assembler_for):
  assert _docs(assembler_for(), _declaration(DOCSTRING)) == "{}"


def test_custom_description_key(assembler_for):
  assembler = assembler_for(introspect_comments=True, dto_key_of_comment="summary")
  assert _docs(assembler, _declaration("Short.")) == '{"summary": "Short."}'


def test_seeded_keys_are_respected(assembler_for):
  """
  Scenario: A seed already supplying description, example and deprecated.
  Expectation: No documentation entry is derived.
  """
  assembler = assembler_for(introspect_comments=True)
  result = _docs(assembler, _declaration(DOCSTRING), frozenset({"description", "example", "deprecated"}))
  assert result == "{}"
