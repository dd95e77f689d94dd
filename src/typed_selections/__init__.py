"""Typed Selections - Result types for client-chosen selections over an entity graph."""

from typed_selections.config import SelectionLimits
from typed_selections.errors import (
    AmbiguousOrInvalidPagination,
    DuplicateField,
    InvalidCalculationArgs,
    InvalidFieldSelection,
    InvalidSelectionFormat,
    InvalidUnionVariant,
    MissingCalculationArgs,
    RecursionDepthExceeded,
    RequiresFieldSelection,
    SchemaError,
    SelectionError,
    UnknownComplexField,
    UnknownPrimitiveField,
)
from typed_selections.pagination import ReadAction, resolve_page_shape
from typed_selections.parsing import SchemaParser, SelectionParser
from typed_selections.projector import describe_projection, project
from typed_selections.schema import Schema
from typed_selections.shapes import render_shape
from typed_selections.types import (
    ArgDefinition,
    ArgSpec,
    Calculation,
    EntityRegistry,
    NestedMap,
    PrimitiveField,
    Relationship,
    Resource,
    ScalarType,
    TypedEntity,
    TypedMap,
    Union,
    UnionField,
)
from typed_selections.validator import check_selection, validate

__all__ = [
    # Main API
    "Schema",
    "SchemaParser",
    "SelectionParser",
    "SelectionLimits",
    "validate",
    "check_selection",
    "project",
    "describe_projection",
    "render_shape",
    "resolve_page_shape",
    "ReadAction",
    # Entity model
    "TypedEntity",
    "Resource",
    "TypedMap",
    "Union",
    "ScalarType",
    "PrimitiveField",
    "Relationship",
    "Calculation",
    "NestedMap",
    "UnionField",
    "ArgSpec",
    "ArgDefinition",
    "EntityRegistry",
    # Errors
    "SchemaError",
    "SelectionError",
    "UnknownPrimitiveField",
    "UnknownComplexField",
    "InvalidUnionVariant",
    "MissingCalculationArgs",
    "InvalidCalculationArgs",
    "AmbiguousOrInvalidPagination",
    "RecursionDepthExceeded",
    "InvalidSelectionFormat",
    "RequiresFieldSelection",
    "InvalidFieldSelection",
    "DuplicateField",
]

__version__ = "0.1.0"
