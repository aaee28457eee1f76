"""
Enumerations for apimeta.
"""

from enum import Enum


class ClassEmission(str, Enum):
  """
  What the emitter does with one class.
  """

  SKIP = "skip"  # not exported in collection mode, or not a model
  AUGMENT = "augment"  # metadata factory appended to the class body
  COLLECT = "collect"  # metadata recorded in the registry, class untouched
