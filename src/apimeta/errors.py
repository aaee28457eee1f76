"""
Exception hierarchy for apimeta.

Only configuration problems surface to callers. `AnnotationError` is raised while
a single property is being described and is absorbed at the property boundary by
the class emitter.
"""


class ApiMetaError(Exception):
  """Base class for every error raised by apimeta."""


class AnnotationError(ApiMetaError):
  """A type annotation or marker has a shape that cannot be interpreted."""


class ConfigurationError(ApiMetaError):
  """The plugin options are invalid or could not be loaded."""
