"""Load provisioner declarations from YAML files.

Each file is one configuration scope::

    provisioners:
      - type: shell
        name: bootstrap
        run: once
        inline: echo hello

``type`` is required; ``name``, ``run``, ``preserve_order``, ``before`` and
``after`` describe the declaration; every other key is passed to the
provisioner's configuration schema.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import reduce
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from vmconf.collection import ProvisionerCollection
from vmconf.registry import TypeRegistry

DECLARATION_KEYS = ("type", "name", "run", "preserve_order", "before", "after")


class LoaderError(ValueError):
    """Raised when a declaration file is malformed."""

    pass


def _optional_str(entry: Mapping[str, Any], key: str) -> Optional[str]:
    value = entry.get(key)
    return None if value is None else str(value)


def collection_from_data(
    data: Any,
    registry: Optional[TypeRegistry] = None,
    *,
    source: str = "<data>",
) -> ProvisionerCollection:
    """Build a collection from already-parsed YAML data."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise LoaderError(f"Declarations in {source} must be a mapping")

    entries = data.get("provisioners", [])
    if entries is None:
        entries = []
    if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
        raise LoaderError(f"'provisioners' must be a sequence in {source}")

    collection = ProvisionerCollection(registry=registry)
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise LoaderError(f"Provisioner #{index} in {source} must be a mapping")

        kind = entry.get("type")
        if not isinstance(kind, str) or not kind.strip():
            raise LoaderError(f"Provisioner #{index} in {source} requires a 'type'")

        options = {
            str(key): value for key, value in entry.items() if key not in DECLARATION_KEYS
        }
        preserve_order = entry.get("preserve_order")
        declaration_args: dict[str, Any] = {
            "run": _optional_str(entry, "run"),
            "preserve_order": None if preserve_order is None else bool(preserve_order),
            "before": _optional_str(entry, "before"),
            "after": _optional_str(entry, "after"),
            "options": options,
        }

        name = _optional_str(entry, "name")
        if name:
            collection.provision(name, kind=kind.strip(), **declaration_args)
        else:
            collection.provision(kind.strip(), **declaration_args)
    return collection


def load_collection(
    path: Path, registry: Optional[TypeRegistry] = None
) -> ProvisionerCollection:
    """
    Load a single scope from a YAML file.

    Raises:
        LoaderError: If the file is missing, unparsable, or malformed
    """
    if not path.exists():
        raise LoaderError(f"Declaration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise LoaderError(f"Failed to parse {path}: {exc}") from exc

    return collection_from_data(raw, registry, source=str(path))


def load_layers(
    paths: Iterable[Path], registry: Optional[TypeRegistry] = None
) -> ProvisionerCollection:
    """Load each scope in order and merge later files over earlier ones."""
    collections = [load_collection(path, registry) for path in paths]
    if not collections:
        raise LoaderError("At least one declaration file is required")
    return reduce(lambda base, override: base.merge(override), collections)


__all__ = [
    "DECLARATION_KEYS",
    "LoaderError",
    "collection_from_data",
    "load_collection",
    "load_layers",
]
