"""
apimeta Package.

Synthesizes API metadata for model classes from their type annotations. Each
annotated property is described by a map (`required`, `type`, `nullable`, `enum`,
`default`, validation bounds, docs) that schema generators can consume without
hand-written decorators.

Usage
-----

.. code-block:: python

    import apimeta

    code = "class UserDto:\n    name: str\n"
    print(apimeta.augment(code))
    # class UserDto:
    #     name: str
    #
    #     @staticmethod
    #     def _OPENAPI_METADATA_FACTORY():
    #         return {"name": {"required": True, "type": lambda: str}}

Collection Mode (MetadataEngine)
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from apimeta import MetadataEngine, PluginOptions

    engine = MetadataEngine(PluginOptions(readonly=True, path_to_source="src"))
    engine.run(source, "src/app/models.py")
    print(engine.render_artifact())
"""

from typing import Any, Optional

from apimeta.config import PluginOptions
from apimeta.core.context import RunContext
from apimeta.core.engine import MetadataEngine, TransformResult

__version__ = "0.1.0"


def augment(code: str, file_path: str = "<string>", options: Optional[PluginOptions] = None, **overrides: Any) -> str:
  """
  Adds metadata factories to the classes of a source string.

  Args:
      code: Python source.
      file_path: Path the source is read from.
      options: Options to use; built from `overrides` when omitted.
      **overrides: PluginOptions fields (e.g. `introspect_comments=True`).

  Returns:
      str: The augmented source.

  Raises:
      ValueError: If the source cannot be parsed.
  """
  if options is None:
    options = PluginOptions(**overrides)
  result = MetadataEngine(options).run(code, file_path)
  if not result.success:
    raise ValueError(f"Augmentation failed: {result.errors}")
  return result.code


__all__ = [
  "MetadataEngine",
  "PluginOptions",
  "RunContext",
  "TransformResult",
  "augment",
  "__version__",
]
