"""Local filesystem backend implementing IConfigStore."""

from __future__ import annotations

from pathlib import Path

from nmwguard.core.exceptions import ConfigurationError


class FileConfigStore:
    """Production IConfigStore reading JSON resources from a directory.

    The version stamp is the file's modification time in nanoseconds, so an
    edited file is picked up on the next load.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self._directory / name

    def read(self, name: str) -> bytes:
        try:
            return self._path(name).read_bytes()
        except OSError as exc:
            raise ConfigurationError(name, f"read failed from {self._directory}: {exc}") from exc

    def version(self, name: str) -> str:
        try:
            return str(self._path(name).stat().st_mtime_ns)
        except OSError as exc:
            raise ConfigurationError(name, f"stat failed in {self._directory}: {exc}") from exc
