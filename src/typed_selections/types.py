"""Entity schema model for the typed_selections library."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union as TypingUnion

from typed_selections.errors import SchemaError

logger = logging.getLogger(__name__)


class ScalarType(Enum):
    """Leaf value types a primitive field, argument or variant can carry."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"  # untyped maps, json blobs

    def accepts(self, value: Any) -> bool:
        """Return whether a runtime argument value fits this scalar."""
        if self is ScalarType.STRING:
            return isinstance(value, str)
        if self is ScalarType.NUMBER:
            # bool is an int subclass but never a number on the wire
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self is ScalarType.BOOLEAN:
            return isinstance(value, bool)
        return True


# Mapping from scalar name strings to ScalarType enum values
SCALAR_TYPE_NAMES: dict[str, ScalarType] = {st.value: st for st in ScalarType}


class EntityKind(Enum):
    """The three kinds of named schema node."""

    RESOURCE = "resource"
    TYPED_MAP = "map"
    UNION = "union"


@dataclass
class PrimitiveField:
    """A leaf field on a resource or typed map."""

    name: str
    scalar: ScalarType
    nullable: bool = False
    array: bool = False


@dataclass
class ArgDefinition:
    """A single declared calculation argument."""

    name: str
    scalar: ScalarType
    required: bool = True
    nullable: bool = False
    array: bool = False

    def accepts(self, value: Any) -> bool:
        """Check a supplied argument value against this definition."""
        if value is None:
            return self.nullable
        if self.array:
            if not isinstance(value, list):
                return False
            return all(self.scalar.accepts(item) for item in value)
        return self.scalar.accepts(value)


@dataclass
class ArgSpec:
    """Ordered argument schema of a parameterized calculation."""

    arguments: list[ArgDefinition] = field(default_factory=list)

    def get(self, name: str) -> ArgDefinition | None:
        """Get an argument by name."""
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None

    @property
    def names(self) -> list[str]:
        return [arg.name for arg in self.arguments]

    @property
    def required_names(self) -> list[str]:
        return [arg.name for arg in self.arguments if arg.required]

    @property
    def has_required(self) -> bool:
        return any(arg.required for arg in self.arguments)


@dataclass
class FieldSpec:
    """Base class for complex (non-primitive) fields."""

    name: str

    @property
    def category(self) -> str:
        """Return the field category name used in messages."""
        raise NotImplementedError

    def referenced_entities(self) -> list[TypedEntity]:
        """Return the entities this field points at."""
        return []


@dataclass
class Relationship(FieldSpec):
    """A link to another resource."""

    target: Resource
    array: bool = False
    nullable: bool = False

    @property
    def category(self) -> str:
        return "relationship"

    def referenced_entities(self) -> list[TypedEntity]:
        return [self.target]


@dataclass
class Calculation(FieldSpec):
    """A computed field, optionally parameterized, with a scalar or entity return."""

    return_type: TypingUnion[TypedEntity, ScalarType]
    args: ArgSpec | None = None
    array: bool = False
    nullable: bool = False

    @property
    def category(self) -> str:
        return "calculation"

    @property
    def returns_entity(self) -> bool:
        return isinstance(self.return_type, TypedEntity)

    @property
    def accepts_arguments(self) -> bool:
        return self.args is not None and bool(self.args.arguments)

    def selected_arguments(self, value: Any) -> dict[str, Any] | None:
        """Arguments a selection value passes to this calculation.

        Calculations without an argument schema take none. Otherwise an
        absent ``args`` key, or the list shorthand, passes ``{}``.
        """
        if self.args is None:
            return None
        if isinstance(value, dict):
            return value.get("args", {})
        return {}

    def referenced_entities(self) -> list[TypedEntity]:
        if isinstance(self.return_type, TypedEntity):
            return [self.return_type]
        return []


@dataclass
class NestedMap(FieldSpec):
    """An embedded typed map value."""

    target: TypedMap
    array: bool = False
    nullable: bool = False

    @property
    def category(self) -> str:
        return "nested map"

    @property
    def is_flat(self) -> bool:
        """A flat map has only primitive fields and is always a leaf projection."""
        return not self.target.complex_fields

    def referenced_entities(self) -> list[TypedEntity]:
        return [self.target]


@dataclass
class UnionField(FieldSpec):
    """A polymorphic value drawn from a union's variants."""

    target: Union
    array: bool = False
    nullable: bool = False

    @property
    def category(self) -> str:
        return "union"

    def referenced_entities(self) -> list[TypedEntity]:
        return [self.target]


@dataclass(eq=False)
class TypedEntity:
    """Base class for all named schema nodes.

    Entities compare by identity: the schema graph may be cyclic, so
    structural equality would never terminate.
    """

    name: str

    @property
    def kind(self) -> EntityKind:
        raise NotImplementedError

    @property
    def primitive_field_names(self) -> frozenset[str]:
        """Return the names selectable as bare strings."""
        raise NotImplementedError

    @property
    def complex_fields(self) -> dict[str, FieldSpec]:
        return {}

    @property
    def has_complex_fields(self) -> bool:
        return bool(self.complex_fields)

    @property
    def is_empty(self) -> bool:
        """Return whether the entity declares nothing (an unpopulated stub)."""
        raise NotImplementedError

    def referenced_entities(self) -> list[TypedEntity]:
        """Return every entity this one points at directly."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


@dataclass(eq=False, repr=False)
class Resource(TypedEntity):
    """A record type with primitive fields and complex fields."""

    primitives: dict[str, PrimitiveField] = field(default_factory=dict)
    fields: dict[str, FieldSpec] = field(default_factory=dict)

    @property
    def kind(self) -> EntityKind:
        return EntityKind.RESOURCE

    @property
    def primitive_field_names(self) -> frozenset[str]:
        return frozenset(self.primitives)

    @property
    def complex_fields(self) -> dict[str, FieldSpec]:
        return self.fields

    @property
    def is_empty(self) -> bool:
        return not self.primitives and not self.fields

    def get_primitive(self, name: str) -> PrimitiveField | None:
        return self.primitives.get(name)

    def get_field(self, name: str) -> FieldSpec | None:
        return self.fields.get(name)

    def add_primitive(self, primitive: PrimitiveField) -> None:
        self.primitives[primitive.name] = primitive

    def add_field(self, spec: FieldSpec) -> None:
        self.fields[spec.name] = spec

    def referenced_entities(self) -> list[TypedEntity]:
        refs: list[TypedEntity] = []
        for spec in self.fields.values():
            refs.extend(spec.referenced_entities())
        return refs


@dataclass(eq=False, repr=False)
class TypedMap(Resource):
    """An embedded structured value; same layout as a resource, no identity."""

    @property
    def kind(self) -> EntityKind:
        return EntityKind.TYPED_MAP


@dataclass(eq=False, repr=False)
class Union(TypedEntity):
    """A tagged polymorphic value.

    Each variant tag maps to an entity (selected with ``{tag: [...]}``) or a
    scalar (selected with the bare tag). When ``tag_field`` is set, selecting
    it yields the discriminant itself as a literal union of all tags.
    """

    variants: dict[str, TypingUnion[TypedEntity, ScalarType]] = field(default_factory=dict)
    tag_field: str | None = None

    @property
    def kind(self) -> EntityKind:
        return EntityKind.UNION

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self.variants)

    @property
    def primitive_field_names(self) -> frozenset[str]:
        names = {tag for tag, variant in self.variants.items() if isinstance(variant, ScalarType)}
        if self.tag_field is not None:
            names.add(self.tag_field)
        return frozenset(names)

    @property
    def has_complex_fields(self) -> bool:
        return any(isinstance(v, TypedEntity) for v in self.variants.values())

    @property
    def is_empty(self) -> bool:
        return not self.variants

    def get_variant(self, tag: str) -> TypingUnion[TypedEntity, ScalarType, None]:
        return self.variants.get(tag)

    def referenced_entities(self) -> list[TypedEntity]:
        return [v for v in self.variants.values() if isinstance(v, TypedEntity)]


_STUB_FACTORIES: dict[EntityKind, type[TypedEntity]] = {
    EntityKind.RESOURCE: Resource,
    EntityKind.TYPED_MAP: TypedMap,
    EntityKind.UNION: Union,
}


class EntityRegistry:
    """Registry of all defined entities.

    Written once during initialization, then frozen; read-only afterwards.
    """

    def __init__(self) -> None:
        self._entities: dict[str, TypedEntity] = {}
        self._stubs: set[str] = set()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, entity: TypedEntity) -> None:
        """Register an entity, or complete a previously registered stub."""
        self._ensure_writable(entity.name)
        existing = self._entities.get(entity.name)
        if existing is not None and not (entity.name in self._stubs and existing is entity):
            raise SchemaError(f"Entity '{entity.name}' is already defined")
        _check_entity_invariants(entity)
        self._entities[entity.name] = entity
        self._stubs.discard(entity.name)
        logger.debug("Registered %s %r", entity.kind.value, entity.name)

    def register_stub(self, name: str, kind: EntityKind) -> TypedEntity:
        """Pre-register an empty entity for forward/self-references.

        Idempotent: returns the existing stub if name is already a stub of the
        same kind. Raises SchemaError if name is registered otherwise.
        """
        self._ensure_writable(name)
        existing = self._entities.get(name)
        if existing is not None:
            if name in self._stubs and existing.kind is kind:
                return existing
            raise SchemaError(f"Entity '{name}' is already defined")
        stub = _STUB_FACTORIES[kind](name=name)
        self._entities[name] = stub
        self._stubs.add(name)
        return stub

    def is_stub(self, name: str) -> bool:
        """Check if an entity is registered as an unpopulated stub."""
        return name in self._stubs

    def get(self, name: str) -> TypedEntity | None:
        """Get an entity by name."""
        return self._entities.get(name)

    def resolve(self, name: str) -> TypedEntity:
        """Get an entity by name, raising if not found."""
        entity = self._entities.get(name)
        if entity is None:
            raise KeyError(f"Entity '{name}' not found")
        return entity

    def freeze(self) -> None:
        """Check the whole graph and make the registry read-only.

        Raises SchemaError for stubs that were never completed and for
        fields pointing at entities that are not registered here.
        """
        if self._frozen:
            return
        if self._stubs:
            raise SchemaError(f"Entities declared but never defined: {sorted(self._stubs)}")
        for entity in self._entities.values():
            for ref in entity.referenced_entities():
                if self._entities.get(ref.name) is not ref:
                    raise SchemaError(
                        f"Entity '{entity.name}' references unregistered entity '{ref.name}'"
                    )
        self._frozen = True
        logger.info("Entity registry frozen with %d entities", len(self._entities))

    def list_entities(self) -> list[str]:
        """List all registered entity names."""
        return list(self._entities.keys())

    def _ensure_writable(self, name: str) -> None:
        if self._frozen:
            raise SchemaError(f"Cannot register '{name}': registry is frozen")

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __len__(self) -> int:
        return len(self._entities)


def _check_entity_invariants(entity: TypedEntity) -> None:
    """Raise SchemaError if an entity breaks the model's structural rules."""
    if isinstance(entity, Resource):
        overlap = set(entity.primitives) & set(entity.fields)
        if overlap:
            raise SchemaError(
                f"Entity '{entity.name}' declares {sorted(overlap)} as both primitive and complex"
            )
        for name, spec in entity.fields.items():
            if spec.name != name:
                raise SchemaError(f"Field '{spec.name}' registered under key '{name}' on '{entity.name}'")
            _check_field_target(entity, spec)
        for name, primitive in entity.primitives.items():
            if primitive.name != name:
                raise SchemaError(
                    f"Field '{primitive.name}' registered under key '{name}' on '{entity.name}'"
                )
    elif isinstance(entity, Union):
        if entity.tag_field is not None and entity.tag_field in entity.variants:
            raise SchemaError(
                f"Union '{entity.name}' tag field '{entity.tag_field}' collides with a variant tag"
            )
        for tag, variant in entity.variants.items():
            if not isinstance(variant, (ScalarType, Resource)):
                raise SchemaError(
                    f"Union '{entity.name}' variant '{tag}' must be a scalar, resource or typed map"
                )


def _check_field_target(entity: Resource, spec: FieldSpec) -> None:
    expected: dict[type[FieldSpec], type[TypedEntity]] = {
        NestedMap: TypedMap,
        UnionField: Union,
    }
    if isinstance(spec, Relationship):
        if not isinstance(spec.target, Resource) or isinstance(spec.target, TypedMap):
            raise SchemaError(f"Relationship '{entity.name}.{spec.name}' must target a resource")
        return
    if isinstance(spec, Calculation):
        if not isinstance(spec.return_type, (TypedEntity, ScalarType)):
            raise SchemaError(f"Calculation '{entity.name}.{spec.name}' has no usable return type")
        return
    target_type = expected.get(type(spec))
    if target_type is not None and not isinstance(getattr(spec, "target", None), target_type):
        raise SchemaError(
            f"Field '{entity.name}.{spec.name}' must target a {target_type.__name__}"
        )
