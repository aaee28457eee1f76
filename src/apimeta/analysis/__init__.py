"""
Static analysis of model modules: symbol tables and the Type Oracle.
"""

from apimeta.analysis.oracle import SourceTypeOracle, TypeOracle
from apimeta.analysis.symbol_table import ModuleSymbols, ProjectIndex, collect_symbols, module_name_for

__all__ = [
  "ModuleSymbols",
  "ProjectIndex",
  "SourceTypeOracle",
  "TypeOracle",
  "collect_symbols",
  "module_name_for",
]
