"""Depth tiers of an SRS item: the cross plus zero to three F2L pairs."""

from __future__ import annotations

from enum import IntEnum

from cross_trainer.srs.errors import InvalidInputError


class Depth(IntEnum):
    CROSS = 0
    CROSS_PLUS_1 = 1
    CROSS_PLUS_2 = 2
    CROSS_PLUS_3 = 3

    @property
    def label(self) -> str:
        if self is Depth.CROSS:
            return "Cross"
        return f"Cross + {int(self)}"


def parse_depth(value: object) -> Depth:
    """Return ``value`` as a :class:`Depth` or raise ``InvalidInputError``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Depth must be an integer between 0 and 3, got {value!r}.")
    try:
        return Depth(value)
    except ValueError as exc:
        raise InvalidInputError(f"Depth must be between 0 and 3, got {value}.") from exc
