"""Configuration schema for the ``shell`` provisioner."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from vmconf.config.base import ProvisionerConfig

DEFAULT_UPLOAD_PATH = "/tmp/vagrant-shell"


class ShellConfig(ProvisionerConfig):
    """Run an inline script or a script file inside the guest."""

    inline: Optional[str] = Field(default=None, description="Script body to execute")
    path: Optional[str] = Field(default=None, description="Path to a script on the host")
    args: Optional[Union[str, List[Union[str, int, float]]]] = Field(
        default=None,
        description="Arguments passed to the script (string or list)",
    )
    env: Dict[str, Any] = Field(
        default_factory=dict,
        description="Environment variables exported before the script runs",
    )
    upload_path: str = Field(
        default=DEFAULT_UPLOAD_PATH,
        description="Guest path the script is uploaded to",
    )
    privileged: bool = Field(default=True, description="Run the script with sudo")
    binary: bool = Field(default=False, description="Skip CRLF to LF conversion")
    keep_color: bool = Field(default=False, description="Preserve ANSI colour output")
    sensitive: bool = Field(default=False, description="Hide env values from logs")
    reset: bool = Field(default=False, description="Reset the guest connection afterwards")
    reboot: bool = Field(default=False, description="Reboot the guest afterwards")
    name: Optional[str] = Field(default=None, description="Label shown in output")

    def _finalize(self) -> None:
        if isinstance(self.args, list):
            self._assign("args", [str(item) for item in self.args])
        if self.env:
            self._assign("env", {str(key): str(value) for key, value in self.env.items()})

    def _validate(self, root_path: Optional[Path]) -> list[str]:
        errors: list[str] = []

        if self.inline is not None and self.path is not None:
            errors.append("Only one of `path` or `inline` may be set.")
        elif self.inline is None and self.path is None:
            errors.append("One of `path` or `inline` must be set.")

        if self.path is not None:
            script = Path(self.path).expanduser()
            if not script.is_absolute():
                script = Path(root_path or Path.cwd()) / script
            if not script.is_file():
                errors.append(f"Path for shell provisioner does not exist: {script}")

        if not self.upload_path.strip():
            errors.append("`upload_path` must be set for the shell provisioner.")

        return errors


__all__ = ["DEFAULT_UPLOAD_PATH", "ShellConfig"]
