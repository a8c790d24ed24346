"""Pytest configuration helpers."""

from __future__ import annotations

from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    """Clear cached settings between tests."""
    from vmconf import settings

    settings.get_settings.cache_clear()
    try:
        yield
    finally:
        settings.get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_default_registry() -> Iterator[None]:
    from vmconf.registry import reset_registry

    reset_registry()
    try:
        yield
    finally:
        reset_registry()
