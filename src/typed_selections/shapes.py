"""Shape descriptors: the computed output structure of a projection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from typed_selections.types import ScalarType


class ShapeConflictError(ValueError):
    """Raised when two shapes for the same key cannot be merged."""


@dataclass(frozen=True)
class Shape:
    """Base class for all shape descriptors."""

    def render(self) -> str:
        """Return the TypeScript-flavored text of this shape."""
        return render_shape(self)


@dataclass(frozen=True)
class ScalarShape(Shape):
    """A leaf value of a scalar type."""

    scalar: ScalarType


@dataclass(frozen=True)
class LiteralShape(Shape):
    """A union of string literals, e.g. a union's discriminant."""

    values: tuple[str, ...]


@dataclass(frozen=True)
class ObjectShape(Shape):
    """A record with named keys; keys in ``optional`` may be absent."""

    fields: dict[str, Shape] = field(default_factory=dict)
    optional: frozenset[str] = frozenset()

    def __getitem__(self, key: str) -> Shape:
        return self.fields[key]

    def __contains__(self, key: object) -> bool:
        return key in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def keys(self) -> list[str]:
        return list(self.fields)


@dataclass(frozen=True)
class ArrayShape(Shape):
    """A list of elements of one shape."""

    element: Shape


@dataclass(frozen=True)
class NullableShape(Shape):
    """A shape that may also be null."""

    inner: Shape


@dataclass(frozen=True)
class CalculationShape(Shape):
    """The result of a calculation, with the arguments it was selected with.

    ``arguments`` is the selection's ``args`` payload, unchanged;
    ``args_shape`` types it per the calculation's argument schema. The
    runtime value is ``result``.
    """

    result: Shape
    arguments: dict[str, Any] | None = None
    args_shape: ObjectShape | None = None


def scalar(scalar_type: ScalarType) -> ScalarShape:
    return ScalarShape(scalar_type)


def nullable(shape: Shape) -> Shape:
    """Wrap a shape as nullable, without stacking ``| null`` twice."""
    if isinstance(shape, NullableShape):
        return shape
    return NullableShape(shape)


def wrap(shape: Shape, array: bool = False, is_nullable: bool = False) -> Shape:
    """Apply a field's cardinality and nullability to its element shape."""
    if array:
        shape = ArrayShape(shape)
    if is_nullable:
        shape = nullable(shape)
    return shape


def merge_shapes(left: Shape, right: Shape) -> Shape:
    """Structurally merge two shapes (key-wise union for objects).

    Used for sibling selection elements and for several picks touching the
    same field. Raises ShapeConflictError for incompatible shapes.
    """
    if left == right:
        return left
    if isinstance(left, ObjectShape) and isinstance(right, ObjectShape):
        return _merge_objects(left, right)
    if isinstance(left, ArrayShape) and isinstance(right, ArrayShape):
        return ArrayShape(merge_shapes(left.element, right.element))
    if isinstance(left, NullableShape) and isinstance(right, NullableShape):
        return NullableShape(merge_shapes(left.inner, right.inner))
    if isinstance(left, CalculationShape) and isinstance(right, CalculationShape):
        if left.arguments != right.arguments:
            raise ShapeConflictError("Cannot merge calculations selected with different arguments")
        return CalculationShape(
            result=merge_shapes(left.result, right.result),
            arguments=left.arguments,
            args_shape=left.args_shape,
        )
    raise ShapeConflictError(f"Cannot merge {render_shape(left)} with {render_shape(right)}")


def _merge_objects(left: ObjectShape, right: ObjectShape) -> ObjectShape:
    merged: dict[str, Shape] = dict(left.fields)
    for key, shape in right.fields.items():
        if key in merged:
            merged[key] = merge_shapes(merged[key], shape)
        else:
            merged[key] = shape
    # a key stays optional only if no side requires it
    required = (set(left.fields) - left.optional) | (set(right.fields) - right.optional)
    optional = frozenset(key for key in merged if key not in required)
    return ObjectShape(merged, optional)


def merge_all(shapes: list[Shape]) -> ObjectShape:
    """Merge a list of object shapes, starting from the empty object."""
    result: Shape = ObjectShape()
    for shape in shapes:
        result = merge_shapes(result, shape)
    assert isinstance(result, ObjectShape)
    return result


def render_shape(shape: Shape) -> str:
    """Render a shape as TypeScript-flavored type text.

    >>> render_shape(ObjectShape({"id": ScalarShape(ScalarType.STRING)}))
    '{id: string}'
    """
    if isinstance(shape, ScalarShape):
        return shape.scalar.value
    if isinstance(shape, LiteralShape):
        return " | ".join(f'"{value}"' for value in shape.values)
    if isinstance(shape, ObjectShape):
        if not shape.fields:
            return "{}"
        parts = []
        for key, value in shape.fields.items():
            marker = "?" if key in shape.optional else ""
            parts.append(f"{key}{marker}: {render_shape(value)}")
        return "{" + ", ".join(parts) + "}"
    if isinstance(shape, ArrayShape):
        return f"Array<{render_shape(shape.element)}>"
    if isinstance(shape, NullableShape):
        return f"{render_shape(shape.inner)} | null"
    if isinstance(shape, CalculationShape):
        return render_shape(shape.result)
    raise TypeError(f"Unknown shape: {shape!r}")
