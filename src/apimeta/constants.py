"""
Names shared between the metadata pass and its consumers.
"""

METADATA_FACTORY_NAME = "_OPENAPI_METADATA_FACTORY"
"""Static method injected into augmented classes."""

TYPE_IMPORTS_BINDING = "t"
"""Name the collected artifact binds its module imports to."""

HIDE_PROPERTY_MARKER = "ApiHideProperty"
SEED_PROPERTY_MARKER = "ApiProperty"
