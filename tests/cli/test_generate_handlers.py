"""
Tests for the augment and collect command handlers.

Verifies:
1.  Single files are printed, written to `--out`, or rewritten in place.
2.  Directory runs select files by suffix and mirror the tree under `--out`.
3.  Failing files are reported in the summary table and fail the run.
4.  `collect` writes an artifact rooted at the source root.
"""

import pytest

from apimeta.cli import commands
from apimeta.constants import METADATA_FACTORY_NAME
from apimeta.utils.console import console

USER_DTO = "class UserDto:\n    name: str\n"


@pytest.fixture
def project(tmp_path):
  """A project root with an (empty) apimeta config and a few model files."""
  (tmp_path / "pyproject.toml").write_text("[tool.apimeta]\n", encoding="utf-8")
  src = tmp_path / "src"
  (src / "users").mkdir(parents=True)
  (src / "users" / "user_dto.py").write_text(USER_DTO, encoding="utf-8")
  (src / "users" / "helpers.py").write_text("class Helper:\n    x: int\n", encoding="utf-8")
  (src / "order_models.py").write_text("class OrderDto:\n    total: float\n", encoding="utf-8")
  return tmp_path


def test_augment_single_file_prints(project, capsys):
  target = project / "src" / "users" / "user_dto.py"
  assert commands.handle_augment(target, None, False, {}) == 0
  assert METADATA_FACTORY_NAME in capsys.readouterr().out
  assert target.read_text(encoding="utf-8") == USER_DTO


def test_augment_single_file_to_out(project):
  target = project / "src" / "users" / "user_dto.py"
  out = project / "build" / "user_dto.py"
  assert commands.handle_augment(target, out, False, {}) == 0
  assert METADATA_FACTORY_NAME in out.read_text(encoding="utf-8")


def test_augment_in_place(project):
  target = project / "src" / "users" / "user_dto.py"
  assert commands.handle_augment(target, None, True, {"classValidatorShim": False}) == 0
  assert '"name": {"required": True, "type": lambda: str}' in target.read_text(encoding="utf-8")


def test_augment_directory_requires_destination(project):
  assert commands.handle_augment(project / "src", None, False, {}) == 1


def test_augment_directory(project):
  out = project / "out"
  assert commands.handle_augment(project / "src", out, False, {}) == 0

  assert METADATA_FACTORY_NAME in (out / "users" / "user_dto.py").read_text(encoding="utf-8")
  assert METADATA_FACTORY_NAME in (out / "order_models.py").read_text(encoding="utf-8")
  assert not (out / "users" / "helpers.py").exists()


def test_augment_directory_reports_failures(project):
  (project / "src" / "broken_dto.py").write_text("class (:\n", encoding="utf-8")
  assert commands.handle_augment(project / "src", project / "out", False, {}) == 1

  report = console.export_text()
  assert "Metadata Report" in report
  assert "broken_dto.py" in report
  assert (project / "out" / "order_models.py").exists()


def test_missing_input(tmp_path):
  assert commands.handle_augment(tmp_path / "nope.py", None, False, {}) == 1
  assert commands.handle_collect(tmp_path / "nope", tmp_path / "meta.py", None, {}) == 1


def test_invalid_settings(project):
  assert commands.handle_augment(project / "src", project / "out", False, {"dtoKeyOfComment": ""}) == 1


def test_collect(project):
  artifact = project / "meta.py"
  assert commands.handle_collect(project / "src", artifact, None, {}) == 0

  text = artifact.read_text(encoding="utf-8")
  assert 'importlib.import_module("users.user_dto")' in text
  assert 'importlib.import_module("order_models")' in text
  assert '"UserDto": {"name": {"required": True, "type": lambda: str}}' in text
  assert "Helper" not in text
  assert (project / "src" / "users" / "user_dto.py").read_text(encoding="utf-8") == USER_DTO


def test_collect_with_source_root(project):
  artifact = project / "meta.py"
  assert commands.handle_collect(project / "src" / "users", artifact, project, {}) == 0
  assert 'importlib.import_module("src.users.user_dto")' in artifact.read_text(encoding="utf-8")


def test_select_files(project):
  files = commands._select_files(project / "src", ["dto.py", "models.py"])
  assert [f.name for f in files] == ["order_models.py", "user_dto.py"]
