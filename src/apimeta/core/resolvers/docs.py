"""
Documentation Extractor.

Reads the attribute docstring of a property (the string statement right after
it), or the `#:` comment lines above it when there is no docstring, and splits it
into prose and reST field tags:

.. code-block:: python

    class UserDto:
        name: str
        \"\"\"
        The display name.

        :example: "Ada"
        :deprecated: use `full_name`
        \"\"\"

Prose becomes the configured description key, `:example:` values become
`example` (one) or `examples` (several), `:deprecated:` becomes
`deprecated: True`. Nothing is extracted unless `introspect_comments` is set.
"""

import ast
import inspect
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Collection, List, Optional

import libcst as cst

from apimeta.core.declarations import PropertyDeclaration
from apimeta.core.literals import create_boolean_literal, create_literal_from_any_value, create_property_assignment

if TYPE_CHECKING:
  from apimeta.core.assembler import DescriptorAssembler

_FIELD_RE = re.compile(r"^:(?P<tag>[A-Za-z_][\w-]*):\s*(?P<value>.*)$")


@dataclass
class DocComment:
  """
  A parsed attribute docstring.

  Attributes:
      description: Prose part, or None when empty.
      examples: Values of the `:example:` fields, in order.
      deprecated: True when a `:deprecated:` field is present.
      deprecation_reason: Text following `:deprecated:`.
  """

  description: Optional[str] = None
  examples: List[Any] = field(default_factory=list)
  deprecated: bool = False
  deprecation_reason: Optional[str] = None


def _example_value(raw: str) -> Any:
  try:
    return ast.literal_eval(raw)
  except (ValueError, SyntaxError):
    return raw


def parse_doc_comment(text: Optional[str]) -> DocComment:
  """
  Splits docstring text into prose and tags.

  Args:
      text: Raw docstring or comment text.

  Returns:
      DocComment: The parsed parts. Unknown field tags are dropped.
  """
  doc = DocComment()
  if not text:
    return doc

  prose: List[str] = []
  for line in inspect.cleandoc(text).splitlines():
    match = _FIELD_RE.match(line.strip())
    if match is None:
      prose.append(line.rstrip())
      continue
    tag, value = match.group("tag"), match.group("value").strip()
    if tag == "example":
      doc.examples.append(_example_value(value))
    elif tag == "deprecated":
      doc.deprecated = True
      doc.deprecation_reason = value or None

  description = "\n".join(prose).strip()
  doc.description = description or None
  return doc


def doc_text_of(declaration: PropertyDeclaration) -> Optional[str]:
  if declaration.docstring:
    return declaration.docstring
  if declaration.comments:
    return "\n".join(declaration.comments)
  return None


def resolve_docs_assignments(
  assembler: "DescriptorAssembler",
  declaration: PropertyDeclaration,
  existing_keys: Collection[str],
) -> List[cst.DictElement]:
  """
  Builds description, example(s) and deprecation entries.

  Args:
      assembler: The assembler describing the property.
      declaration: The property.
      existing_keys: Keys already supplied by the seed.

  Returns:
      List[cst.DictElement]: Empty unless comment introspection is enabled.
  """
  options = assembler.options
  if not options.introspect_comments:
    return []

  doc = parse_doc_comment(doc_text_of(declaration))
  assignments = []

  key_of_comment = options.dto_key_of_comment
  if key_of_comment not in existing_keys and doc.description:
    assignments.append(create_property_assignment(key_of_comment, create_literal_from_any_value(doc.description)))

  has_example_key = "example" in existing_keys or "examples" in existing_keys
  if not has_example_key and doc.examples:
    if len(doc.examples) == 1:
      assignments.append(create_property_assignment("example", create_literal_from_any_value(doc.examples[0])))
    else:
      assignments.append(create_property_assignment("examples", create_literal_from_any_value(doc.examples)))

  if "deprecated" not in existing_keys and doc.deprecated:
    assignments.append(create_property_assignment("deprecated", create_boolean_literal(True)))

  return assignments
