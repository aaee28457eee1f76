"""
Collected Metadata Artifact.

Renders the result of a collection-mode run into a standalone Python module:

.. code-block:: python

    # Generated by apimeta. Do not edit.
    import importlib


    def metadata():
        t = {"app.enums": importlib.import_module("app.enums")}
        return {
            "models": [
                [lambda: importlib.import_module("app.models"), {"UserDto": {...}}],
            ]
        }

`t` binds every module named references point into (`t["app.enums"].Color`).
Files are listed in the order they were first collected.
"""

from typing import List

import libcst as cst

from apimeta.constants import TYPE_IMPORTS_BINDING
from apimeta.core.context import RunContext
from apimeta.core.literals import create_property_assignment, create_string_literal

ARTIFACT_HEADER = "# Generated by apimeta. Do not edit."
ARTIFACT_FUNCTION = "metadata"
MODELS_KEY = "models"


def _import_call(module: str) -> cst.Call:
  return cst.Call(
    func=cst.Attribute(value=cst.Name("importlib"), attr=cst.Name("import_module")),
    args=[cst.Arg(create_string_literal(module))],
  )


def _type_imports_binding(modules: List[str]) -> cst.SimpleStatementLine:
  table = cst.Dict([cst.DictElement(create_string_literal(m), _import_call(m)) for m in modules])
  return cst.SimpleStatementLine(
    body=[cst.Assign(targets=[cst.AssignTarget(cst.Name(TYPE_IMPORTS_BINDING))], value=table)]
  )


def _models(context: RunContext) -> cst.List:
  entries = []
  for handle, classes in context.registry.collected_metadata():
    class_map = cst.Dict([create_property_assignment(name, metadata) for name, metadata in classes.items()])
    entries.append(cst.Element(cst.List([cst.Element(handle), cst.Element(class_map)])))
  return cst.List(entries)


def build_artifact_module(context: RunContext) -> cst.Module:
  """
  Builds the artifact module tree.

  Args:
      context: A run context after every file was collected.

  Returns:
      cst.Module: The module defining `metadata()`.
  """
  result = cst.Dict([create_property_assignment(MODELS_KEY, _models(context))])
  function = cst.FunctionDef(
    name=cst.Name(ARTIFACT_FUNCTION),
    params=cst.Parameters(),
    body=cst.IndentedBlock(
      body=[
        _type_imports_binding(context.type_imports.modules()),
        cst.SimpleStatementLine(body=[cst.Return(value=result)]),
      ]
    ),
    leading_lines=[cst.EmptyLine(), cst.EmptyLine()],
  )
  return cst.Module(
    header=[cst.EmptyLine(comment=cst.Comment(ARTIFACT_HEADER))],
    body=[
      cst.SimpleStatementLine(body=[cst.Import(names=[cst.ImportAlias(name=cst.Name("importlib"))])]),
      function,
    ],
  )


def render_artifact(context: RunContext) -> str:
  """
  Renders the collected registry as Python source.

  Args:
      context: A run context after every file was collected.

  Returns:
      str: Source of the artifact module.
  """
  return build_artifact_module(context).code
