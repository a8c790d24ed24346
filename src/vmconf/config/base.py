"""Configuration payload primitives for provisioner declarations.

A payload is the kind-specific configuration object owned by a
declaration. Payloads are built incrementally: every ``add_config`` call
creates a fresh instance, assigns options onto it and merges it over the
previous one. This module defines:

- ConfigPayload: the structural contract every payload satisfies
- ProvisionerConfig: pydantic-backed base class implementing the contract
- DummyConfig: no-op payload used when a kind ships no schema
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, PrivateAttr

logger = logging.getLogger(__name__)


@runtime_checkable
class ConfigPayload(Protocol):
    """Structural contract for kind-specific provisioner configuration."""

    def set_options(self, options: Mapping[str, Any]) -> None:
        ...

    def merge(self, other: "ConfigPayload") -> "ConfigPayload":
        ...

    def finalize(self) -> None:
        ...

    def clone(self) -> "ConfigPayload":
        ...

    def validate_config(self, root_path: Optional[Path] = None) -> list[str]:
        ...

    def to_dict(self) -> dict[str, Any]:
        ...


SchemaFactory = Callable[[], ConfigPayload]


class ProvisionerConfig(BaseModel):
    """Base class for provisioner payloads.

    Field values explicitly assigned (through ``set_options``, the
    constructor or attribute assignment) are tracked in
    ``model_fields_set``. During a merge those fields, plus any field a
    ``block`` changed in place, override the base. Unknown option keys are
    recorded and reported by ``validate_config`` instead of failing the
    assignment.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    _invalid_options: set[str] = PrivateAttr(default_factory=set)
    _finalized: bool = PrivateAttr(default=False)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def invalid_options(self) -> list[str]:
        return sorted(self._invalid_options)

    def set_options(self, options: Mapping[str, Any]) -> None:
        """Assign each option onto the payload as a field value."""
        fields = type(self).model_fields
        for key, value in options.items():
            name = str(key)
            if name not in fields:
                logger.debug("Unknown option '%s' for %s", name, type(self).__name__)
                self._invalid_options.add(name)
                continue
            setattr(self, name, copy.deepcopy(value))
            self.model_fields_set.add(name)

    def changed_fields(self) -> set[str]:
        """Fields assigned explicitly or modified in place away from their default."""
        changed = set(self.model_fields_set)
        for name, field in type(self).model_fields.items():
            if name in changed:
                continue
            if getattr(self, name) != field.get_default(call_default_factory=True):
                changed.add(name)
        return changed

    def merge(self, other: ConfigPayload) -> ConfigPayload:
        """Return a new payload with ``other``'s changed fields layered over ours."""
        if isinstance(other, DummyConfig):
            return self.clone()
        if not isinstance(other, type(self)):
            raise TypeError(
                f"Cannot merge {type(other).__name__} into {type(self).__name__}"
            )

        result = self.clone()
        for name in other.changed_fields():
            setattr(result, name, copy.deepcopy(getattr(other, name)))
            result.model_fields_set.add(name)
        result._invalid_options |= other._invalid_options
        result._finalized = False
        return result

    def finalize(self) -> None:
        """Apply kind-specific normalization; errors propagate to the caller."""
        self._finalize()
        self._finalized = True

    def clone(self) -> "ProvisionerConfig":
        return self.model_copy(deep=True)

    def validate_config(self, root_path: Optional[Path] = None) -> list[str]:
        errors: list[str] = []
        if self._invalid_options:
            errors.append(
                "The following settings shouldn't exist: "
                + ", ".join(self.invalid_options)
            )
        errors.extend(self._validate(root_path))
        return errors

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def _finalize(self) -> None:
        """Hook for subclasses. Must be safe to run more than once."""

    def _validate(self, root_path: Optional[Path]) -> list[str]:
        return []

    def _assign(self, name: str, value: Any) -> None:
        # Normalized values must not count as explicitly set for later merges.
        object.__setattr__(self, name, value)


class DummyConfig:
    """Payload for kinds that register no configuration schema.

    Every operation is a no-op so that callers never need a ``None`` check
    for the missing-schema case.
    """

    def set_options(self, options: Mapping[str, Any]) -> None:
        return None

    def merge(self, other: ConfigPayload) -> ConfigPayload:
        if isinstance(other, DummyConfig):
            return DummyConfig()
        return other.clone()

    def finalize(self) -> None:
        return None

    def clone(self) -> "DummyConfig":
        return DummyConfig()

    def validate_config(self, root_path: Optional[Path] = None) -> list[str]:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DummyConfig)

    def __hash__(self) -> int:
        return hash(DummyConfig)

    def __repr__(self) -> str:
        return "DummyConfig()"


__all__ = ["ConfigPayload", "DummyConfig", "ProvisionerConfig", "SchemaFactory"]
