"""Provisioner declarations for VM configuration."""

from __future__ import annotations

from .collection import ProvisionerCollection
from .provisioner import RUN_POLICIES, ProvisionerDeclaration, RunPolicy
from .registry import ProvisionerRegistry, RegistryError, TypeRegistry, get_registry

__all__ = [
    "RUN_POLICIES",
    "ProvisionerCollection",
    "ProvisionerDeclaration",
    "ProvisionerRegistry",
    "RegistryError",
    "RunPolicy",
    "TypeRegistry",
    "get_registry",
]
