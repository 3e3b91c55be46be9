"""In-memory mirror of the latest known device attribute values."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pymilllan.models import Attribute
from pymilllan.precision import same_value


if TYPE_CHECKING:
    from collections.abc import Mapping


__all__ = ["DeviceMirror"]


class DeviceMirror:
    """Latest known value per attribute.

    Every attribute is None until it has been polled successfully. Updates
    always overwrite the stored value, but only values that differ by more
    than the attribute's precision delta are reported as changed.

    The mirror is owned by one device and only mutated under its lock.
    """

    def __init__(self) -> None:
        """Initialize an empty mirror."""
        self._values: dict[Attribute, Any] = {}

    def get(self, attribute: Attribute) -> Any:
        """Get the stored value of an attribute, or None if unknown."""
        return self._values.get(attribute)

    def __contains__(self, attribute: object) -> bool:
        """Check if an attribute has a known value."""
        return self._values.get(attribute) is not None  # type: ignore[call-overload]

    def __len__(self) -> int:
        """Get the number of known attributes."""
        return sum(1 for value in self._values.values() if value is not None)

    def apply(self, updates: Mapping[Attribute, Any]) -> frozenset[Attribute]:
        """Store a batch of new values.

        Args:
            updates: New value per attribute. None marks the value unknown.

        Returns:
            Attributes whose value materially changed.
        """
        changed: set[Attribute] = set()
        for attribute, value in updates.items():
            if not same_value(attribute, self._values.get(attribute), value):
                changed.add(attribute)
            self._values[attribute] = value
        return frozenset(changed)

    def snapshot(self) -> Mapping[Attribute, Any]:
        """Get a read-only copy of all known values."""
        return MappingProxyType({key: value for key, value in self._values.items() if value is not None})
