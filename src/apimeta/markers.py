"""
Property Markers.

Objects placed in `Annotated[...]` metadata to steer metadata synthesis. They are
read syntactically by the metadata pass; at runtime they only record their
arguments, so annotated models import and run normally.

.. code-block:: python

    from typing import Annotated

    from apimeta.markers import ApiHideProperty, ApiProperty, Length, Min


    class CreateUserDto:
        name: Annotated[str, Length(2, 40)]
        age: Annotated[int, Min(0)]
        role: Annotated[str, ApiProperty(description="Assigned by the server")]
        password: Annotated[str, ApiHideProperty()]
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Pattern, Sequence, Union


class ApiProperty:
  """
  Seeds descriptor entries; derived values never replace a seeded key.

  Example:
      ``ApiProperty(type=str, required=False)``
  """

  def __init__(self, **options: Any):
    self.options: Dict[str, Any] = options

  def __repr__(self) -> str:
    args = ", ".join(f"{k}={v!r}" for k, v in self.options.items())
    return f"ApiProperty({args})"


@dataclass(frozen=True)
class ApiHideProperty:
  """Excludes the property from the metadata map."""


@dataclass(frozen=True)
class Min:
  value: Any


@dataclass(frozen=True)
class Max:
  value: Any


@dataclass(frozen=True)
class MinLength:
  value: Any


@dataclass(frozen=True)
class MaxLength:
  value: Any


@dataclass(frozen=True)
class IsPositive:
  pass


@dataclass(frozen=True)
class IsNegative:
  pass


@dataclass(frozen=True)
class Length:
  min: Any
  max: Optional[Any] = None


@dataclass(frozen=True)
class Matches:
  pattern: Union[str, Pattern[str]]


@dataclass(frozen=True)
class IsIn:
  values: Sequence[Any]


__all__ = [
  "ApiHideProperty",
  "ApiProperty",
  "IsIn",
  "IsNegative",
  "IsPositive",
  "Length",
  "Matches",
  "Max",
  "MaxLength",
  "Min",
  "MinLength",
]
