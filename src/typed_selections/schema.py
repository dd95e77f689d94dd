"""Schema class tying an entity registry to validation and projection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from typed_selections.config import SelectionLimits
from typed_selections.errors import SelectionError
from typed_selections.pagination import ReadAction
from typed_selections.parsing import SchemaParser, SelectionParser
from typed_selections.projector import describe_projection
from typed_selections.shapes import Shape
from typed_selections.types import EntityRegistry, TypedEntity
from typed_selections.validator import validate

logger = logging.getLogger(__name__)


class Schema:
    """A frozen entity registry with selection validation and projection."""

    def __init__(self, registry: EntityRegistry, limits: SelectionLimits | None = None) -> None:
        """Initialize a schema.

        Args:
            registry: Registry with all entities. Frozen here if it is not already.
            limits: Selection limits, defaults to ``SelectionLimits()``.
        """
        registry.freeze()
        self.registry = registry
        self.limits = limits
        self._selection_parser: SelectionParser | None = None

    @classmethod
    def parse(cls, definitions: str, limits: SelectionLimits | None = None) -> Schema:
        """Parse schema DSL text and create a schema.

        Args:
            definitions: DSL string defining resources, maps and unions.
            limits: Selection limits for this schema.

        Returns:
            A new Schema instance.
        """
        parser = SchemaParser()
        registry = parser.parse(definitions)
        return cls(registry, limits)

    @classmethod
    def load(cls, path: Path | str, limits: SelectionLimits | None = None) -> Schema:
        """Read and parse a schema DSL file."""
        if isinstance(path, str):
            path = Path(path)
        logger.debug("Loading schema from %s", path)
        return cls.parse(path.read_text(), limits)

    def get_entity(self, name: str) -> TypedEntity:
        """Get an entity by name.

        Raises:
            KeyError: If the entity is not found.
        """
        return self.registry.resolve(name)

    def list_entities(self) -> list[str]:
        """List all registered entity names."""
        return self.registry.list_entities()

    def parse_selection(self, text: str) -> list[Any]:
        """Parse selection text such as ``id, author { name }``."""
        if self._selection_parser is None:
            self._selection_parser = SelectionParser()
        return self._selection_parser.parse(text)

    def validate(self, entity_name: str, selection: Any) -> SelectionError | None:
        """Validate a selection (tree or text), returning the first error or None."""
        return validate(self.get_entity(entity_name), self._coerce(selection), self.limits)

    def describe_projection(self, entity_name: str, selection: Any) -> Shape:
        """Validate a selection (tree or text) and return its output shape."""
        return describe_projection(self.get_entity(entity_name), self._coerce(selection), self.limits)

    def read_action(self, name: str, entity_name: str, **options: bool) -> ReadAction:
        """Declare a read action over one of this schema's entities.

        ``options`` are the ReadAction flags: get, offset, keyset, required.
        """
        return ReadAction(name, self.get_entity(entity_name), **options)

    def result_shape(
        self,
        action: ReadAction,
        selection: Any,
        page: dict[str, Any] | None = None,
    ) -> Shape:
        """Full result shape of a read action request."""
        return action.result_shape(self._coerce(selection), page, self.limits)

    def _coerce(self, selection: Any) -> Any:
        if isinstance(selection, str):
            return self.parse_selection(selection)
        return selection


# Process-wide default registry: written during initialization, then frozen
_default_registry = EntityRegistry()


def default_registry() -> EntityRegistry:
    """Return the process-wide entity registry."""
    return _default_registry


def register(entity: TypedEntity) -> None:
    """Register an entity in the process-wide registry."""
    _default_registry.register(entity)


def resolve(name: str) -> TypedEntity:
    """Resolve an entity from the process-wide registry; KeyError if missing."""
    return _default_registry.resolve(name)


def freeze() -> None:
    """Freeze the process-wide registry; later registration raises SchemaError."""
    _default_registry.freeze()


def reset_default_registry() -> EntityRegistry:
    """Replace the process-wide registry with an empty one (for tests)."""
    global _default_registry
    _default_registry = EntityRegistry()
    return _default_registry
