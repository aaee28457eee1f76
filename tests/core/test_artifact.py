"""
Tests for Collection Mode and the Artifact Module.

Verifies:
1.  Only exported, module-level model classes are collected.
2.  Named references are spelled `t["module"].Name` and recorded in the type-import table.
3.  The rendered artifact imports and evaluates to the collected metadata.
4.  Files outside the source root are not registered.
5.  Source code is returned unchanged in collection mode.
"""

import textwrap

import pytest

from apimeta.config import PluginOptions
from apimeta.core.artifact import ARTIFACT_HEADER, render_artifact
from apimeta.core.context import RunContext
from apimeta.core.engine import MetadataEngine
from apimeta.enums import ClassEmission

ENUMS_SRC = """
from enum import Enum


class Status(Enum):
    OPEN = "open"
    CLOSED = "closed"
"""

MODELS_SRC = """
from typing import Annotated, Optional

from apimeta.markers import IsIn, Length

from .enums import Status

__all__ = ["OrderDto"]


class OrderDto:
    code: Annotated[str, Length(3), IsIn(["a", "b"])]
    status: Status
    note: Optional[str] = "n/a"
    items: list["LineDto"]

    class Nested:
        hidden: int


class LineDto:
    qty: int = 1
"""


@pytest.fixture
def shop(tmp_path):
  """A source tree with an enum module and a models module."""
  package = tmp_path / "shop_artifact"
  package.mkdir()
  (package / "enums.py").write_text(textwrap.dedent(ENUMS_SRC), encoding="utf-8")
  (package / "models.py").write_text(textwrap.dedent(MODELS_SRC), encoding="utf-8")
  return tmp_path


def _collect(root, *files):
  engine = MetadataEngine(PluginOptions(readonly=True, path_to_source=root))
  results = [engine.run(f.read_text(encoding="utf-8"), str(f)) for f in files]
  return engine, results


def test_collection_leaves_source_untouched(shop):
  models = shop / "shop_artifact" / "models.py"
  _, [result] = _collect(shop, models)
  assert result.code == models.read_text(encoding="utf-8")


def test_only_exported_module_level_classes(shop):
  """
  Scenario: A module with __all__, a nested class and an unexported class.
  Expectation: Only the exported module-level class is collected; the others are reported as skipped.
  """
  engine, [result] = _collect(shop, shop / "shop_artifact" / "models.py")

  assert result.classes == [
    ("OrderDto.Nested", ClassEmission.SKIP),
    ("OrderDto", ClassEmission.COLLECT),
    ("LineDto", ClassEmission.SKIP),
  ]
  assert list(engine.context.registry) == ["./shop_artifact/models.py"]
  assert list(engine.context.registry.get("./shop_artifact/models.py")) == ["OrderDto"]


def test_type_imports_are_recorded(shop):
  """
  Scenario: Collecting the enums module and a models module referring to it.
  Expectation: Every named type is recorded against its defining module.
  """
  engine, _ = _collect(shop, shop / "shop_artifact" / "enums.py", shop / "shop_artifact" / "models.py")
  assert engine.context.type_imports.as_dict() == {
    "shop_artifact.enums.Status": "shop_artifact.enums",
    "shop_artifact.models.LineDto": "shop_artifact.models",
  }


def test_artifact_text(shop):
  engine, _ = _collect(shop, shop / "shop_artifact" / "models.py")
  text = engine.render_artifact()

  assert text.startswith(ARTIFACT_HEADER + "\n")
  assert "import importlib\n" in text
  assert 't = {"shop_artifact.enums": importlib.import_module("shop_artifact.enums")' in text
  assert '"enum": t["shop_artifact.enums"].Status' in text
  assert '"type": lambda: [t["shop_artifact.models"].LineDto]' in text
  assert 'lambda: importlib.import_module("shop_artifact.models")' in text
  # Values only valid inside the models module are not copied.
  assert '"enum": ["a", "b"]' not in text


def test_artifact_evaluates(shop, monkeypatch):
  """
  Scenario: The rendered artifact is executed with the source tree importable.
  Expectation: metadata() yields a module handle and maps whose thunks resolve to the real classes.
  """
  monkeypatch.syspath_prepend(str(shop))
  engine, _ = _collect(shop, shop / "shop_artifact" / "models.py")

  namespace = {}
  exec(compile(engine.render_artifact(), "<artifact>", "exec"), namespace)
  [[handle, classes]] = namespace["metadata"]()["models"]

  models = handle()
  order = classes["OrderDto"]
  assert models.__name__ == "shop_artifact.models"
  assert list(order) == ["code", "status", "note", "items"]
  assert order["code"] == {"required": True, "type": order["code"]["type"], "minLength": 3}
  assert order["code"]["type"]() is str
  assert order["status"]["enum"] is models.Status
  assert order["note"]["default"] == "n/a"
  assert order["note"]["nullable"] is True
  assert order["items"]["type"]() == [models.LineDto]


def test_files_outside_root_are_skipped(tmp_path):
  """
  Scenario: A model file that lies outside the configured source root.
  Expectation: The run succeeds but nothing is registered for the artifact.
  """
  root = tmp_path / "root"
  root.mkdir()
  outside = tmp_path / "elsewhere" / "item_models.py"
  outside.parent.mkdir()
  outside.write_text("class ItemDto:\n    name: str\n", encoding="utf-8")

  engine, [result] = _collect(root, outside)
  assert result.success
  assert len(engine.context.registry) == 0


def test_empty_artifact():
  context = RunContext(PluginOptions(readonly=True, path_to_source="."))
  namespace = {}
  exec(compile(render_artifact(context), "<artifact>", "exec"), namespace)
  assert namespace["metadata"]() == {"models": []}
