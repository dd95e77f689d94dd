"""Parsing module for the schema DSL and selection text."""

from typed_selections.parsing.schema_parser import SchemaParser
from typed_selections.parsing.selection_parser import SelectionParser

__all__ = [
    "SchemaParser",
    "SelectionParser",
]
