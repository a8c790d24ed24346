"""
Provisioner type registry.

Maps a provisioner kind (e.g. ``shell``) to the executor registered for it
and, optionally, to the configuration schema used to build its payloads.
Declarations consume the registry through the ``TypeRegistry`` protocol so
that any lookup service (or a test fake) can be injected.
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, MutableMapping, Optional, Protocol

import yaml
from pydantic import ValidationError

from vmconf.config.base import DummyConfig, SchemaFactory
from vmconf.config.file import FileConfig
from vmconf.config.shell import ShellConfig
from vmconf.settings import get_settings

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when plugin registration or manifest loading fails."""

    pass


class TypeRegistry(Protocol):
    """Lookup capability consumed by provisioner declarations."""

    def has_executor(self, kind: str) -> bool:
        ...

    def schema_factory_for(self, kind: str) -> SchemaFactory:
        """Return the schema factory for ``kind``, or ``DummyConfig`` if none."""
        ...


@dataclass(frozen=True)
class BuiltinExecutor:
    """Registration marker for provisioners executed by the guest-side layer."""

    kind: str
    summary: str


@dataclass(frozen=True)
class ProvisionerPlugin:
    """A registered provisioner kind."""

    kind: str
    executor: Any
    config_class: Optional[SchemaFactory] = None


class ProvisionerRegistry:
    """Thread-safe in-memory implementation of ``TypeRegistry``."""

    def __init__(self) -> None:
        self._plugins: MutableMapping[str, ProvisionerPlugin] = {}
        self._lock = threading.RLock()

    def register(
        self,
        kind: str,
        executor: Any,
        config_class: Optional[SchemaFactory] = None,
    ) -> ProvisionerPlugin:
        if not kind:
            raise RegistryError("Provisioner kind must be a non-empty string")
        if executor is None:
            raise RegistryError(f"Provisioner '{kind}' requires an executor")

        plugin = ProvisionerPlugin(kind=kind, executor=executor, config_class=config_class)
        with self._lock:
            if kind in self._plugins:
                logger.debug("Replacing provisioner registration: %s", kind)
            self._plugins[kind] = plugin
        return plugin

    def unregister(self, kind: str) -> None:
        with self._lock:
            self._plugins.pop(kind, None)

    def get(self, kind: str) -> Optional[ProvisionerPlugin]:
        with self._lock:
            return self._plugins.get(kind)

    def has_executor(self, kind: str) -> bool:
        return self.get(kind) is not None

    def schema_factory_for(self, kind: str) -> SchemaFactory:
        plugin = self.get(kind)
        if plugin is None or plugin.config_class is None:
            return DummyConfig
        return plugin.config_class

    def list_kinds(self) -> list[str]:
        with self._lock:
            return sorted(self._plugins.keys())

    def load_manifest(self, path: Path) -> list[str]:
        """
        Register plugins listed in a YAML manifest.

        The manifest holds a ``provisioners`` sequence whose entries name a
        ``kind``, an ``executor`` entrypoint and an optional ``config``
        entrypoint, both in ``package.module:attr`` form.

        Returns:
            Kinds registered from the manifest, in file order

        Raises:
            RegistryError: If the manifest is missing, malformed, or names
                an entrypoint that cannot be imported
        """
        if not path.exists():
            raise RegistryError(f"Plugin manifest not found at {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise RegistryError(f"Failed to parse plugin manifest {path}: {exc}") from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise RegistryError(f"Plugin manifest at {path} must be a mapping")

        entries = raw.get("provisioners", [])
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
            raise RegistryError(f"'provisioners' must be a sequence in {path}")

        resolved: list[tuple[str, Any, Optional[SchemaFactory]]] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                raise RegistryError(f"Plugin entries in {path} must be mappings")
            kind = entry.get("kind")
            executor_ref = entry.get("executor")
            if not isinstance(kind, str) or not kind or not isinstance(executor_ref, str):
                raise RegistryError(
                    f"Plugin entries in {path} require string 'kind' and 'executor'"
                )
            config_ref = entry.get("config")
            config_class = resolve_entrypoint(config_ref) if isinstance(config_ref, str) else None
            resolved.append((kind, resolve_entrypoint(executor_ref), config_class))

        # Nothing is registered unless every entry resolves.
        registered: list[str] = []
        for kind, executor, config_class in resolved:
            self.register(kind, executor, config_class)
            registered.append(kind)

        logger.info("Loaded %d provisioner plugin(s) from %s", len(registered), path)
        return registered


def resolve_entrypoint(entrypoint: str) -> Any:
    """
    Resolve an entrypoint string to the object it names.

    Args:
        entrypoint: Format "package.module:attribute"

    Raises:
        RegistryError: If the format is invalid or the target cannot be imported
    """
    if ":" not in entrypoint:
        raise RegistryError(
            f"Invalid entrypoint format: {entrypoint} (expected 'module:attribute')"
        )

    module_name, attr_name = entrypoint.rsplit(":", 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RegistryError(f"Cannot import module for entrypoint {entrypoint}") from exc

    if not hasattr(module, attr_name):
        raise RegistryError(f"Attribute '{attr_name}' not found in {module_name}")
    return getattr(module, attr_name)


def build_default_registry() -> ProvisionerRegistry:
    """Create a registry holding the built-in provisioner kinds."""
    registry = ProvisionerRegistry()
    registry.register(
        "shell",
        BuiltinExecutor("shell", "Run a shell script inside the guest"),
        ShellConfig,
    )
    registry.register(
        "file",
        BuiltinExecutor("file", "Upload a file or directory into the guest"),
        FileConfig,
    )
    return registry


# Singleton instance
_registry: Optional[ProvisionerRegistry] = None


def get_registry() -> ProvisionerRegistry:
    """Get or create the process-wide default registry.

    A plugin manifest that fails to load is logged and skipped; the
    built-in kinds stay available and the failure is not retried.
    """
    global _registry
    if _registry is None:
        registry = build_default_registry()
        try:
            plugins_file = get_settings().PLUGINS_FILE
        except ValidationError as exc:
            logger.warning("Ignoring plugin settings: %s", exc)
            plugins_file = None
        if plugins_file:
            try:
                registry.load_manifest(Path(plugins_file))
            except RegistryError as exc:
                logger.warning("Failed to load provisioner plugins: %s", exc)
        _registry = registry
    return _registry


def reset_registry() -> None:
    global _registry
    _registry = None


__all__ = [
    "BuiltinExecutor",
    "ProvisionerPlugin",
    "ProvisionerRegistry",
    "RegistryError",
    "TypeRegistry",
    "build_default_registry",
    "get_registry",
    "reset_registry",
    "resolve_entrypoint",
]
