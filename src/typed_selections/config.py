"""Limits applied while validating client selections."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True)
class SelectionLimits:
    """Guards against pathological client input.

    ``max_depth`` counts selection lists: ``["id"]`` has depth 1,
    ``[{"author": ["id"]}]`` has depth 2.
    """

    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")


DEFAULT_LIMITS = SelectionLimits()
