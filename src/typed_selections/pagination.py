"""Pagination envelopes for read-style actions.

A read action returns a bare list of records unless the client passes a
``page`` parameter, in which case the list is wrapped in an offset- or
keyset-style envelope. Actions supporting both flavors pick the envelope
from the keys of the page parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from typed_selections.config import SelectionLimits
from typed_selections.errors import AmbiguousOrInvalidPagination
from typed_selections.projector import describe_collection, describe_projection
from typed_selections.shapes import (
    LiteralShape,
    ObjectShape,
    ScalarShape,
    Shape,
    nullable,
)
from typed_selections.types import ScalarType, TypedEntity

logger = logging.getLogger(__name__)

Envelope = Callable[[Shape], Shape]

# ``limit`` belongs to the offset descriptor but may also size a keyset page
OFFSET_KEYS = frozenset({"limit", "offset", "count"})
KEYSET_KEYS = frozenset({"after", "before"})
PAGE_KEYS = OFFSET_KEYS | KEYSET_KEYS

PAGE_PATH = ("page",)

_STRING = ScalarShape(ScalarType.STRING)
_NUMBER = ScalarShape(ScalarType.NUMBER)
_BOOLEAN = ScalarShape(ScalarType.BOOLEAN)


def offset_envelope(base_shape: Shape) -> ObjectShape:
    """Wrap a collection shape in the offset pagination envelope."""
    return ObjectShape(
        {
            "results": base_shape,
            "hasMore": _BOOLEAN,
            "limit": _NUMBER,
            "offset": _NUMBER,
            "count": nullable(_NUMBER),
            "type": LiteralShape(("offset",)),
        },
        optional=frozenset({"count"}),
    )


def keyset_envelope(base_shape: Shape) -> ObjectShape:
    """Wrap a collection shape in the keyset pagination envelope."""
    return ObjectShape(
        {
            "results": base_shape,
            "hasMore": _BOOLEAN,
            "limit": _NUMBER,
            "after": nullable(_STRING),
            "before": nullable(_STRING),
            "previousPage": _STRING,
            "nextPage": _STRING,
            "count": nullable(_NUMBER),
            "type": LiteralShape(("keyset",)),
        },
        optional=frozenset({"count"}),
    )


def classify_page(page: Mapping[str, Any]) -> str | None:
    """Return ``"offset"``, ``"keyset"`` or None when the page matches neither.

    Any keyset cursor makes the page a keyset page, in which case ``limit``
    is its page size. Raises AmbiguousOrInvalidPagination for unknown keys
    or when the page carries both a cursor and ``offset``/``count``.
    """
    keys = set(page)
    unknown = keys - PAGE_KEYS
    if unknown:
        raise AmbiguousOrInvalidPagination(PAGE_PATH, f"unknown keys {sorted(unknown)}")
    is_keyset = bool(KEYSET_KEYS & keys)
    is_offset = bool(OFFSET_KEYS & keys)
    if is_keyset and keys & (OFFSET_KEYS - {"limit"}):
        raise AmbiguousOrInvalidPagination(
            PAGE_PATH, "offset and keyset parameters cannot be combined"
        )
    if is_keyset:
        return "keyset"
    if is_offset:
        return "offset"
    return None


def resolve_page_shape(
    page: Mapping[str, Any] | None,
    base_shape: Shape,
    offset: Envelope | None = offset_envelope,
    keyset: Envelope | None = keyset_envelope,
    *,
    required: bool = False,
) -> Shape:
    """Pick the result shape of a read action from its page parameter.

    Args:
        page: The client's page parameter, or None when absent.
        base_shape: The bare collection shape.
        offset: Envelope builder, or None if the action lacks offset paging.
        keyset: Envelope builder, or None if the action lacks keyset paging.
        required: Whether the action always paginates.

    Returns:
        ``base_shape`` or one of the envelopes applied to it.

    Raises:
        AmbiguousOrInvalidPagination: If the page cannot select an envelope.
    """
    flavors = {name: env for name, env in (("offset", offset), ("keyset", keyset)) if env}

    if page is None:
        if required and len(flavors) == 1:
            return next(iter(flavors.values()))(base_shape)
        if required:
            raise AmbiguousOrInvalidPagination(PAGE_PATH, "this action requires a page parameter")
        return base_shape

    if not isinstance(page, Mapping):
        raise AmbiguousOrInvalidPagination(
            PAGE_PATH, f"expected an object, got {type(page).__name__}"
        )
    if not flavors:
        raise AmbiguousOrInvalidPagination(PAGE_PATH, "this action does not paginate")

    if len(flavors) == 1:
        flavor, envelope = next(iter(flavors.items()))
        # still reject unknown keys so typos do not pass silently
        unknown = set(page) - PAGE_KEYS
        if unknown:
            raise AmbiguousOrInvalidPagination(PAGE_PATH, f"unknown keys {sorted(unknown)}")
        logger.debug("Single-flavor action, using %s envelope", flavor)
        return envelope(base_shape)

    flavor = classify_page(page)
    if flavor is None:
        raise AmbiguousOrInvalidPagination(
            PAGE_PATH, "pass limit/offset/count for offset paging or after/before for keyset paging"
        )
    logger.debug("Page parameters %s select the %s envelope", sorted(page), flavor)
    return flavors[flavor](base_shape)


@dataclass(frozen=True, eq=False)
class ReadAction:
    """A read action over one entity and the paging flavors it supports."""

    name: str
    entity: TypedEntity
    get: bool = False
    offset: bool = False
    keyset: bool = False
    required: bool = False

    @property
    def paginated(self) -> bool:
        return self.offset or self.keyset

    def record_shape(self, selection: Any, limits: SelectionLimits | None = None) -> Shape:
        """Shape of the action's records without any page envelope."""
        if self.get:
            return nullable(describe_projection(self.entity, selection, limits))
        return describe_collection(self.entity, selection, limits)

    def result_shape(
        self,
        selection: Any,
        page: Mapping[str, Any] | None = None,
        limits: SelectionLimits | None = None,
    ) -> Shape:
        """Full result shape for a request, including the page envelope."""
        base_shape = self.record_shape(selection, limits)
        if self.get:
            if page is not None:
                raise AmbiguousOrInvalidPagination(PAGE_PATH, f"'{self.name}' returns a single record")
            return base_shape
        return resolve_page_shape(
            page,
            base_shape,
            offset_envelope if self.offset else None,
            keyset_envelope if self.keyset else None,
            required=self.required,
        )
