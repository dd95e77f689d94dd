"""
Exception classes for typed_selections.

Selection errors are deterministic functions of the (entity, selection)
pair: each carries the path of the offending node so the request layer
can report it to the client. Schema errors are fatal at initialization.
"""

from __future__ import annotations

from typing import Any, Sequence


class SchemaError(ValueError):
    """Raised when the entity graph is malformed (duplicates, dangling references)."""


class SelectionError(Exception):
    """Base class for every rejected selection."""

    code = "invalid_selection"

    def __init__(self, path: Sequence[str], message: str) -> None:
        self.path: tuple[str, ...] = tuple(path)
        self.message = message
        super().__init__(f"{message} (at {self.location})")

    @property
    def location(self) -> str:
        """Dotted path of the offending node, ``<root>`` for the top level."""
        return ".".join(self.path) if self.path else "<root>"

    @property
    def fields(self) -> list[str]:
        """Names the client should look at, for error payloads."""
        return []

    def to_dict(self) -> dict[str, Any]:
        """Client-facing error payload."""
        return {
            "code": self.code,
            "message": self.message,
            "path": list(self.path),
            "fields": self.fields,
        }


class UnknownPrimitiveField(SelectionError):
    """A bare string names a primitive the entity does not declare."""

    code = "unknown_primitive_field"

    def __init__(self, path: Sequence[str], name: str, entity_name: str) -> None:
        self.name = name
        self.entity_name = entity_name
        super().__init__(path, f"Unknown field '{name}' on '{entity_name}'")

    @property
    def fields(self) -> list[str]:
        return [self.name]


class UnknownComplexField(SelectionError):
    """A selection object key names a complex field the entity does not declare."""

    code = "unknown_complex_field"

    def __init__(self, path: Sequence[str], name: str, entity_name: str) -> None:
        self.name = name
        self.entity_name = entity_name
        super().__init__(path, f"Unknown complex field '{name}' on '{entity_name}'")

    @property
    def fields(self) -> list[str]:
        return [self.name]


class InvalidUnionVariant(SelectionError):
    """A union selection references a tag the union does not declare."""

    code = "invalid_union_variant"

    def __init__(self, path: Sequence[str], tag: str, union_name: str) -> None:
        self.tag = tag
        self.union_name = union_name
        super().__init__(path, f"Unknown variant '{tag}' on union '{union_name}'")

    @property
    def fields(self) -> list[str]:
        return [self.tag]


class MissingCalculationArgs(SelectionError):
    """A calculation with required arguments was selected without ``args``."""

    code = "missing_calculation_args"

    def __init__(self, path: Sequence[str], required: Sequence[str]) -> None:
        self.required = list(required)
        super().__init__(path, f"Calculation requires arguments: {', '.join(self.required)}")

    @property
    def fields(self) -> list[str]:
        return list(self.required)


class InvalidCalculationArgs(SelectionError):
    """The ``args`` payload does not match the calculation's argument schema."""

    code = "invalid_calculation_args"

    def __init__(self, path: Sequence[str], reason: str, argument: str | None = None) -> None:
        self.reason = reason
        self.argument = argument
        super().__init__(path, f"Invalid calculation arguments: {reason}")

    @property
    def fields(self) -> list[str]:
        return [self.argument] if self.argument else []


class AmbiguousOrInvalidPagination(SelectionError):
    """A page parameter matches neither or both recognized descriptors."""

    code = "invalid_pagination"

    def __init__(self, path: Sequence[str], reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"Invalid page parameters: {reason}")


class RecursionDepthExceeded(SelectionError):
    """The selection tree nests deeper than the configured limit."""

    code = "selection_too_deep"

    def __init__(self, path: Sequence[str], max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(path, f"Selection exceeds maximum depth of {max_depth}")


class InvalidSelectionFormat(SelectionError):
    """A selection node has the wrong structure for its position."""

    code = "invalid_selection_format"

    def __init__(self, path: Sequence[str], reason: str) -> None:
        self.reason = reason
        super().__init__(path, reason)


class RequiresFieldSelection(SelectionError):
    """A complex field was selected without naming any of its fields."""

    code = "requires_field_selection"

    def __init__(self, path: Sequence[str], name: str | None = None) -> None:
        self.name = name
        if name is None:
            message = "Selection must name at least one field"
        else:
            message = f"Field '{name}' requires a nested field selection"
        super().__init__(path, message)

    @property
    def fields(self) -> list[str]:
        return [self.name] if self.name else []


class InvalidFieldSelection(SelectionError):
    """A nested selection was supplied for a field that returns a plain value."""

    code = "invalid_field_selection"

    def __init__(self, path: Sequence[str], name: str) -> None:
        self.name = name
        super().__init__(path, f"Field '{name}' does not accept a nested field selection")

    @property
    def fields(self) -> list[str]:
        return [self.name]


class DuplicateField(SelectionError):
    """A field that cannot be merged appears twice in one selection list."""

    code = "duplicate_field"

    def __init__(self, path: Sequence[str], name: str) -> None:
        self.name = name
        super().__init__(path, f"Field '{name}' is selected more than once")

    @property
    def fields(self) -> list[str]:
        return [self.name]
