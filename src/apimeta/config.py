"""
Plugin Options Store.

Options can be given programmatically (snake_case or the camelCase names used by
build tool integrations), read from a `[tool.apimeta]` table in the nearest
`pyproject.toml`, or passed as `key=value` flags on the command line.
"""

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from apimeta.errors import ConfigurationError
from apimeta.utils.console import log_warning


class PluginOptions(BaseModel):
  """
  Options controlling metadata synthesis.
  """

  model_config = ConfigDict(populate_by_name=True, extra="ignore")

  readonly: bool = Field(
    False,
    description="Collect metadata into a registry instead of augmenting classes in place.",
  )
  introspect_comments: bool = Field(
    False,
    alias="introspectComments",
    description="Extract descriptions, examples and deprecation notes from attribute docstrings.",
  )
  class_validator_shim: bool = Field(
    True,
    alias="classValidatorShim",
    description="Translate validation markers (Min, Length, Matches, ...) into descriptor fields.",
  )
  dto_key_of_comment: str = Field(
    "description",
    alias="dtoKeyOfComment",
    description="Descriptor key receiving the attribute docstring prose.",
  )
  path_to_source: Optional[Path] = Field(
    None,
    alias="pathToSource",
    description="Root used to normalize registry keys and module names.",
  )
  debug: bool = Field(False, description="Emit diagnostic notes for skipped classes and properties.")
  dto_file_name_suffix: List[str] = Field(
    default_factory=lambda: ["dto.py", "entity.py", "models.py"],
    alias="dtoFileNameSuffix",
    description="File name suffixes selected when a directory is processed.",
  )

  @field_validator("dto_key_of_comment")
  @classmethod
  def validate_comment_key(cls, v: str) -> str:
    v_clean = v.strip()
    if not v_clean:
      raise ValueError("dtoKeyOfComment must be a non-empty descriptor key")
    return v_clean

  @model_validator(mode="after")
  def validate_readonly_root(self) -> "PluginOptions":
    """
    Collection mode keys its registry by paths relative to `path_to_source`.

    Raises:
        ValueError: If `readonly` is set without `path_to_source`.
    """
    if self.readonly and self.path_to_source is None:
      raise ValueError('"pathToSource" must be set when "readonly" is enabled')
    return self

  @classmethod
  def load(cls, search_path: Optional[Path] = None, **overrides: Any) -> "PluginOptions":
    """
    Loads options from pyproject.toml and applies explicit overrides.

    Relative `path_to_source` values found in the TOML file are resolved against
    the directory holding that file.

    Args:
        search_path (Optional[Path]): Directory to start searching for TOML config.
        **overrides: Option values taking precedence over the file. `None` values are ignored.

    Returns:
        PluginOptions: The fully resolved options.

    Raises:
        ConfigurationError: If the merged values do not validate.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    raw_root = toml_config.get("path_to_source", toml_config.get("pathToSource"))
    if raw_root is not None and toml_dir is not None:
      resolved = (toml_dir / Path(raw_root)).resolve()
      toml_config.pop("pathToSource", None)
      toml_config["path_to_source"] = resolved

    merged = {**toml_config, **{k: v for k, v in overrides.items() if v is not None}}
    try:
      return cls.model_validate(merged)
    except ValidationError as e:
      raise ConfigurationError(f"Invalid apimeta options: {e}") from e


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches the start directory and its parents for 'pyproject.toml'.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The `[tool.apimeta]` table and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError) as e:
        log_warning(f"Ignoring unreadable {toml_path}: {e}")
        return {}, None

      tool_section = data.get("tool", {})
      return dict(tool_section.get("apimeta", {})), parent

  return {}, None


def parse_cli_key_values(items: Optional[List[str]]) -> Dict[str, Any]:
  """
  Parses a list of 'key=value' strings into a dictionary.

  Types are inferred (int, float, bool, or string).

  Args:
      items (Optional[List[str]]): List of raw CLI strings directly from argparse.

  Returns:
      Dict[str, Any]: Parsed dictionary.
  """
  if not items:
    return {}

  config = {}
  for item in items:
    if "=" not in item:
      log_warning(f"Ignoring invalid config format: '{item}'. Expected 'key=value'.")
      continue

    key, val_str = item.split("=", 1)
    key = key.strip()
    val_str = val_str.strip()

    final_val: Any = val_str

    if val_str.lower() == "true":
      final_val = True
    elif val_str.lower() == "false":
      final_val = False
    else:
      try:
        if "." in val_str or "e" in val_str:
          final_val = float(val_str)
        else:
          final_val = int(val_str)
      except ValueError:
        pass

    config[key] = final_val

  return config
