"""Provisioner configuration payloads."""

from __future__ import annotations

from .base import ConfigPayload, DummyConfig, ProvisionerConfig, SchemaFactory
from .file import FileConfig
from .shell import ShellConfig

__all__ = [
    "ConfigPayload",
    "DummyConfig",
    "FileConfig",
    "ProvisionerConfig",
    "SchemaFactory",
    "ShellConfig",
]
