"""Projection of a validated selection onto an entity's output shape."""

from __future__ import annotations

from typing import Any

from typed_selections.config import SelectionLimits
from typed_selections.shapes import (
    ArrayShape,
    CalculationShape,
    LiteralShape,
    ObjectShape,
    ScalarShape,
    Shape,
    merge_all,
    nullable,
    wrap,
)
from typed_selections.types import (
    ArgSpec,
    Calculation,
    NestedMap,
    PrimitiveField,
    Relationship,
    Resource,
    ScalarType,
    TypedEntity,
    Union,
    UnionField,
)
from typed_selections.validator import check_selection


def primitive_shape(primitive: PrimitiveField) -> Shape:
    """Return the declared shape of a primitive field."""
    return wrap(ScalarShape(primitive.scalar), primitive.array, primitive.nullable)


def arguments_shape(args: ArgSpec) -> ObjectShape:
    """Type an argument schema as an object; optional arguments may be omitted."""
    fields: dict[str, Shape] = {}
    for arg in args.arguments:
        fields[arg.name] = wrap(ScalarShape(arg.scalar), arg.array, arg.nullable)
    optional = frozenset(arg.name for arg in args.arguments if not arg.required)
    return ObjectShape(fields, optional)


class Projector:
    """Computes the output shape of a validated (entity, selection) pair.

    Pure: no state is kept between calls. Recursion depth equals the depth
    of the selection tree, so cyclic schemas cannot loop.
    """

    def project(self, entity: TypedEntity, selection: list[Any]) -> ObjectShape:
        """Return the shape of one record of ``entity`` under ``selection``."""
        if isinstance(entity, Union):
            return self._project_union(entity, selection)
        assert isinstance(entity, Resource)

        # Base case: leaf entities and primitive-only selections never recurse
        if not entity.fields or all(isinstance(item, str) for item in selection):
            return self._project_primitives(entity, selection)

        return merge_all([self._project_element(entity, item) for item in selection])

    def _project_primitives(self, entity: Resource, names: list[str]) -> ObjectShape:
        fields: dict[str, Shape] = {}
        for name in names:
            fields[name] = primitive_shape(entity.primitives[name])
        return ObjectShape(fields)

    def _project_element(self, entity: Resource, item: Any) -> ObjectShape:
        if isinstance(item, str):
            return ObjectShape({item: primitive_shape(entity.primitives[item])})

        return merge_all(
            [ObjectShape({name: self._project_field(entity.fields[name], value)}) for name, value in item.items()]
        )

    def _project_field(self, spec: Any, value: Any) -> Shape:
        if isinstance(spec, Relationship):
            # to-many relationships are empty lists, never null
            return wrap(self.project(spec.target, value), spec.array, spec.nullable and not spec.array)
        if isinstance(spec, NestedMap):
            return wrap(self.project(spec.target, value), spec.array, spec.nullable)
        if isinstance(spec, UnionField):
            return wrap(self._project_union(spec.target, value), spec.array, spec.nullable)
        if isinstance(spec, Calculation):
            return self._project_calculation(spec, value)
        raise TypeError(f"Unsupported field spec: {spec!r}")

    def _project_calculation(self, calc: Calculation, value: Any) -> CalculationShape:
        arguments = calc.selected_arguments(value)
        if isinstance(value, dict):
            sub_selection = value.get("fields")
        else:
            sub_selection = value

        if isinstance(calc.return_type, TypedEntity):
            result = self.project(calc.return_type, sub_selection)
        else:
            result = ScalarShape(calc.return_type)

        return CalculationShape(
            result=wrap(result, calc.array, calc.nullable),
            arguments=arguments,
            args_shape=arguments_shape(calc.args) if calc.args is not None else None,
        )

    def _project_union(self, union: Union, selection: list[Any]) -> ObjectShape:
        """Merge every tag pick and variant pick into one object.

        Only one variant is populated at runtime, so every variant key is
        nullable; the discriminant itself never is. Unselected variants are
        absent from the shape.
        """
        contributions: list[ObjectShape] = []
        for item in selection:
            if isinstance(item, str):
                if item == union.tag_field:
                    contribution = ObjectShape({item: LiteralShape(union.tags)})
                else:
                    variant = union.variants[item]
                    assert isinstance(variant, ScalarType)
                    contribution = ObjectShape({item: nullable(ScalarShape(variant))})
            else:
                fields: dict[str, Shape] = {}
                for tag, sub_selection in item.items():
                    variant_shape = self.project(union.variants[tag], sub_selection)
                    fields[tag] = nullable(variant_shape)
                contribution = ObjectShape(fields)
            contributions.append(contribution)
        return merge_all(contributions)


_PROJECTOR = Projector()


def project(entity: TypedEntity, selection: list[Any]) -> ObjectShape:
    """Project an already validated selection onto ``entity``."""
    return _PROJECTOR.project(entity, selection)


def describe_projection(
    entity: TypedEntity, selection: Any, limits: SelectionLimits | None = None
) -> ObjectShape:
    """Validate ``selection`` and return its shape; raises SelectionError."""
    check_selection(entity, selection, limits)
    return _PROJECTOR.project(entity, selection)


def describe_collection(
    entity: TypedEntity, selection: Any, limits: SelectionLimits | None = None
) -> ArrayShape:
    """Shape of a list of records, the bare result of a read action."""
    return ArrayShape(describe_projection(entity, selection, limits))
