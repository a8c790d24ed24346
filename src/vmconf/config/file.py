"""Configuration schema for the ``file`` provisioner."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import Field

from vmconf.config.base import ProvisionerConfig


class FileConfig(ProvisionerConfig):
    """Upload a file or directory from the host into the guest."""

    source: Optional[str] = Field(default=None, description="Host path to upload")
    destination: Optional[str] = Field(default=None, description="Guest path to write")
    generated: bool = Field(
        default=False,
        description="Source is produced later in the run and may not exist yet",
    )

    def _finalize(self) -> None:
        if self.source:
            self._assign("source", os.path.expanduser(self.source))

    def _validate(self, root_path: Optional[Path]) -> list[str]:
        errors: list[str] = []
        if not self.source:
            errors.append("File provisioner source is required.")
        if not self.destination:
            errors.append("File provisioner destination is required.")

        if self.source and not self.generated:
            source = Path(self.source).expanduser()
            if not source.is_absolute():
                source = Path(root_path or Path.cwd()) / source
            if not source.exists():
                errors.append(f"File provisioner source file not found: {source}")
        return errors


__all__ = ["FileConfig"]
