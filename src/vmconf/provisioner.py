"""A single configured provisioner for a VM."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Literal, Mapping, Optional

from vmconf.config.base import ConfigPayload, DummyConfig, SchemaFactory
from vmconf.registry import TypeRegistry, get_registry

logger = logging.getLogger(__name__)

RunPolicy = Literal["once", "always", "never"]
RUN_POLICIES: tuple[str, ...] = ("once", "always", "never")

ConfigBlock = Callable[[ConfigPayload], None]


class ProvisionerDeclaration:
    """
    Named, typed provisioner entry awaiting execution.

    The kind is looked up in the type registry once, at construction. A
    kind with no registered executor marks the declaration invalid: it is
    still created, but ``add_config`` and ``finalize`` become no-ops so one
    bad entry never aborts the surrounding configuration pass.

    Attributes:
        config: Kind-specific payload, ``None`` until ``add_config`` runs
        run: When to run ("once", "always" or "never"); ``None`` when unset
        preserve_order: Keep this entry's slot when merged with a parent scope
        before: Name of a provisioner this one should run before
        after: Name of a provisioner this one should run after
    """

    def __init__(
        self,
        name: Optional[str],
        kind: str,
        *,
        registry: Optional[TypeRegistry] = None,
    ) -> None:
        logger.debug("Provisioner defined: %s", name)
        if registry is None:
            registry = get_registry()

        self._name = name or None
        self._id = name or str(uuid.uuid4())
        self._kind = kind
        self._invalid = False

        self.config: Optional[ConfigPayload] = None
        self.run: Optional[RunPolicy] = None
        self.preserve_order = False
        self.before: Optional[str] = None
        self.after: Optional[str] = None

        if not registry.has_executor(kind):
            logger.warning("Provisioner '%s' not found.", kind)
            self._invalid = True

        config_class = registry.schema_factory_for(kind)
        if config_class is None or config_class is DummyConfig:
            logger.info("Provisioner config for '%s' not found. Ignoring config.", kind)
            config_class = DummyConfig
        self._config_class: SchemaFactory = config_class

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def id(self) -> str:
        """Internal key: the name when given, otherwise a generated UUID."""
        return self._id

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def invalid(self) -> bool:
        return self._invalid

    @property
    def config_class(self) -> SchemaFactory:
        return self._config_class

    def is_invalid(self) -> bool:
        """Return whether the provisioner kind could not be found."""
        return self._invalid

    def add_config(
        self,
        options: Optional[Mapping[str, Any]] = None,
        block: Optional[ConfigBlock] = None,
        **kwargs: Any,
    ) -> None:
        """
        Accumulate configuration for this provisioner.

        A fresh payload is built from ``options`` (keyword arguments win over
        the mapping), handed to ``block`` for in-place customization, and
        then merged over the existing payload so that later calls override
        earlier ones field by field.
        """
        if self._invalid:
            return

        values: dict[str, Any] = dict(options or {})
        values.update(kwargs)

        current = self._config_class()
        if values:
            current.set_options(values)
        if block is not None:
            block(current)
        if self.config is not None:
            current = self.config.merge(current)
        self.config = current

    def finalize(self) -> None:
        if self._invalid:
            return

        if self.config is None:
            self.config = self._config_class()
        self.config.finalize()

    def clone(self) -> "ProvisionerDeclaration":
        """Return a copy that owns an independent deep copy of ``config``."""
        duplicate = self.__class__.__new__(self.__class__)
        duplicate.__dict__.update(self.__dict__)
        duplicate.config = self.config.clone() if self.config is not None else None
        return duplicate

    def __copy__(self) -> "ProvisionerDeclaration":
        return self.clone()

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "name": self._name,
            "type": self._kind,
            "run": self.run,
            "preserve_order": self.preserve_order,
            "before": self.before,
            "after": self.after,
            "invalid": self._invalid,
            "config": self.config.to_dict() if self.config is not None else None,
        }

    def __repr__(self) -> str:
        return (
            f"ProvisionerDeclaration(id={self._id!r}, kind={self._kind!r}, "
            f"invalid={self._invalid!r})"
        )


__all__ = ["RUN_POLICIES", "ConfigBlock", "ProvisionerDeclaration", "RunPolicy"]
