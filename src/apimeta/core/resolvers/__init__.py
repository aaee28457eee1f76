"""
Resolvers producing the individual entries of a property descriptor.
"""

from apimeta.core.resolvers.docs import resolve_docs_assignments
from apimeta.core.resolvers.enums import resolve_enum_assignments
from apimeta.core.resolvers.type_descriptor import resolve_type_assignments
from apimeta.core.resolvers.validation import resolve_validation_assignments

__all__ = [
  "resolve_docs_assignments",
  "resolve_enum_assignments",
  "resolve_type_assignments",
  "resolve_validation_assignments",
]
