"""Validation of client selection trees against typed entities."""

from __future__ import annotations

import logging
from typing import Any

from typed_selections.config import DEFAULT_LIMITS, SelectionLimits
from typed_selections.errors import (
    DuplicateField,
    InvalidCalculationArgs,
    InvalidFieldSelection,
    InvalidSelectionFormat,
    InvalidUnionVariant,
    MissingCalculationArgs,
    RecursionDepthExceeded,
    RequiresFieldSelection,
    SelectionError,
    UnknownComplexField,
    UnknownPrimitiveField,
)
from typed_selections.types import (
    Calculation,
    NestedMap,
    Relationship,
    Resource,
    ScalarType,
    TypedEntity,
    Union,
    UnionField,
)

logger = logging.getLogger(__name__)

Path = tuple[str, ...]

# Keys allowed in the object form of a calculation selection
CALCULATION_KEYS = frozenset({"args", "fields"})


class SelectionValidator:
    """Walks a selection tree and raises on the first invalid node.

    Recursion follows the selection, never the schema, so cyclic entity
    graphs are fine.
    """

    def __init__(self, limits: SelectionLimits | None = None) -> None:
        self.limits = limits or DEFAULT_LIMITS

    def check(self, entity: TypedEntity, selection: Any) -> None:
        """Raise a SelectionError if ``selection`` is not valid for ``entity``."""
        self._check_list(entity, selection, (), 1)

    def _check_list(self, entity: TypedEntity, items: Any, path: Path, depth: int) -> None:
        if depth > self.limits.max_depth:
            raise RecursionDepthExceeded(path, self.limits.max_depth)
        if not isinstance(items, list):
            raise InvalidSelectionFormat(path, f"Expected a list of fields, got {type(items).__name__}")
        if not items:
            raise RequiresFieldSelection(path, path[-1] if path else None)

        if isinstance(entity, Union):
            for item in items:
                self._check_union_element(entity, item, path, depth)
            return

        assert isinstance(entity, Resource)
        calculation_args: dict[str, Any] = {}
        for item in items:
            if isinstance(item, str):
                self._check_primitive(entity, item, path)
            elif isinstance(item, dict):
                if not item:
                    raise InvalidSelectionFormat(path, "Empty selection object")
                for name, value in item.items():
                    self._check_complex(entity, name, value, path, depth, calculation_args)
            else:
                raise InvalidSelectionFormat(
                    path, f"Selection elements must be strings or objects, got {type(item).__name__}"
                )

    def _check_primitive(self, entity: Resource, name: str, path: Path) -> None:
        if name in entity.primitives:
            return
        if name in entity.fields:
            raise RequiresFieldSelection(path + (name,), name)
        raise UnknownPrimitiveField(path + (name,), name, entity.name)

    def _check_complex(
        self,
        entity: Resource,
        name: Any,
        value: Any,
        path: Path,
        depth: int,
        calculation_args: dict[str, Any],
    ) -> None:
        if not isinstance(name, str):
            raise InvalidSelectionFormat(path, f"Field names must be strings, got {name!r}")
        field_path = path + (name,)
        spec = entity.get_field(name)
        if spec is None:
            if name in entity.primitives:
                raise InvalidFieldSelection(field_path, name)
            raise UnknownComplexField(field_path, name, entity.name)

        if isinstance(spec, Calculation):
            self._check_calculation(spec, value, field_path, depth)
            # one output key per calculation, so repeats must agree on arguments
            arguments = spec.selected_arguments(value)
            if name in calculation_args and calculation_args[name] != arguments:
                raise DuplicateField(field_path, name)
            calculation_args[name] = arguments
        elif isinstance(spec, (Relationship, NestedMap, UnionField)):
            self._check_list(spec.target, value, field_path, depth + 1)
        else:
            raise TypeError(f"Unsupported field spec: {spec!r}")

    def _check_union_element(self, union: Union, item: Any, path: Path, depth: int) -> None:
        if isinstance(item, str):
            if item in union.primitive_field_names:
                return
            if item in union.variants:
                # entity-valued variants must say which of their fields to return
                raise RequiresFieldSelection(path + (item,), item)
            raise InvalidUnionVariant(path + (item,), item, union.name)

        if isinstance(item, dict):
            if not item:
                raise InvalidSelectionFormat(path, "Empty union selection object")
            for tag, sub_selection in item.items():
                if not isinstance(tag, str):
                    raise InvalidSelectionFormat(path, f"Variant tags must be strings, got {tag!r}")
                variant = union.get_variant(tag)
                if variant is None:
                    raise InvalidUnionVariant(path + (tag,), tag, union.name)
                if isinstance(variant, ScalarType):
                    raise InvalidFieldSelection(path + (tag,), tag)
                self._check_list(variant, sub_selection, path + (tag,), depth + 1)
            return

        raise InvalidSelectionFormat(
            path, f"Union selections must be tags or objects, got {type(item).__name__}"
        )

    def _check_calculation(self, calc: Calculation, value: Any, path: Path, depth: int) -> None:
        name = path[-1]
        if isinstance(value, list):
            # shorthand for argument-less calculations returning an entity
            if calc.args is not None and calc.args.has_required:
                raise MissingCalculationArgs(path, calc.args.required_names)
            if not calc.returns_entity:
                raise InvalidFieldSelection(path, name)
            self._check_list(calc.return_type, value, path, depth + 1)
            return

        if not isinstance(value, dict):
            raise InvalidSelectionFormat(
                path, f"Calculation '{name}' expects an object with args/fields"
            )
        unknown = set(value) - CALCULATION_KEYS
        if unknown:
            raise InvalidSelectionFormat(
                path, f"Unexpected keys in calculation selection: {sorted(map(str, unknown))}"
            )

        if "args" in value:
            self._check_arguments(calc, value["args"], path)
        elif calc.args is not None and calc.args.has_required:
            raise MissingCalculationArgs(path, calc.args.required_names)

        if calc.returns_entity:
            if "fields" not in value:
                raise RequiresFieldSelection(path, name)
            self._check_list(calc.return_type, value["fields"], path, depth + 1)
        elif "fields" in value:
            raise InvalidFieldSelection(path, name)

    def _check_arguments(self, calc: Calculation, args: Any, path: Path) -> None:
        if not isinstance(args, dict):
            raise InvalidCalculationArgs(path, f"expected an object, got {type(args).__name__}")
        if calc.args is None:
            if args:
                raise InvalidCalculationArgs(path, f"'{calc.name}' does not accept arguments")
            return

        for arg_name, arg_value in args.items():
            definition = calc.args.get(arg_name)
            if definition is None:
                raise InvalidCalculationArgs(path, f"unknown argument '{arg_name}'", arg_name)
            if not definition.accepts(arg_value):
                expected = definition.scalar.value + ("[]" if definition.array else "")
                raise InvalidCalculationArgs(
                    path, f"argument '{arg_name}' expects {expected}, got {arg_value!r}", arg_name
                )
        for required in calc.args.required_names:
            if required not in args:
                raise InvalidCalculationArgs(
                    path, f"missing required argument '{required}'", required
                )


def check_selection(
    entity: TypedEntity, selection: Any, limits: SelectionLimits | None = None
) -> None:
    """Raise the first SelectionError found in ``selection``."""
    try:
        SelectionValidator(limits).check(entity, selection)
    except SelectionError as exc:
        logger.debug("Rejected selection for %r: %s", entity.name, exc)
        raise


def validate(
    entity: TypedEntity, selection: Any, limits: SelectionLimits | None = None
) -> SelectionError | None:
    """Validate a selection, returning the first error or None when valid."""
    try:
        check_selection(entity, selection, limits)
    except SelectionError as exc:
        return exc
    return None
