from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError, FileAccessError
from .tokens import MIN_TOKEN_LENGTH, generate_access_token

__all__ = [
    "BYTES_PER_MB",
    "ServedFile",
    "load_served_file",
    "format_size_mb",
    "display_name_for",
]

BYTES_PER_MB = 1_048_576


class ServedFile(BaseModel):
    """The one file this process shares, fixed at startup."""

    model_config = ConfigDict(frozen=True)

    absolute_path: Path
    display_name: str = Field(..., min_length=1)  # base name only, goes into headers
    size_bytes: int = Field(..., ge=0)
    access_token: str = Field(..., min_length=MIN_TOKEN_LENGTH, pattern=r"^[A-Za-z0-9]+$")

    @property
    def info_path(self) -> str:
        return f"/{self.access_token}"

    @property
    def download_path(self) -> str:
        return f"/download/{self.access_token}"

    def current_stat(self) -> os.stat_result:
        """Stat the file now, as seen by a request.

        Raises:
            FileAccessError: if the file was removed, replaced by a non-file,
                or can no longer be read.
        """
        try:
            st = self.absolute_path.stat()
        except OSError as e:
            raise FileAccessError(f"{self.display_name} is no longer available") from e
        if not self.absolute_path.is_file() or not os.access(self.absolute_path, os.R_OK):
            raise FileAccessError(f"{self.display_name} is no longer readable")
        return st


def display_name_for(path: str | os.PathLike[str]) -> str:
    """Return the base name of `path`, never a directory component."""
    name = os.path.basename(os.fspath(path).replace("\\", "/").rstrip("/"))
    if not name:
        raise ConfigError(f"cannot derive a file name from {os.fspath(path)!r}")
    # Strip anything that would break the quoted Content-Disposition value.
    return name.replace('"', "'").replace("\r", "").replace("\n", "")


def load_served_file(path: str | os.PathLike[str], *, token_length: int | None = None) -> ServedFile:
    """Validate `path` and build the ServedFile record with a fresh token.

    Raises:
        ConfigError: if the path is empty, missing, not a regular file or
            unreadable.
    """
    if not os.fspath(path):
        raise ConfigError("missing file path")

    p = Path(path).expanduser()
    try:
        resolved = p.resolve(strict=True)
        st = resolved.stat()
    except OSError as e:
        raise ConfigError(f"can't read file {os.fspath(path)}: {e.strerror or e}") from e

    if not resolved.is_file():
        raise ConfigError(f"{os.fspath(path)} is not a regular file")
    if not os.access(resolved, os.R_OK):
        raise ConfigError(f"{os.fspath(path)} is not readable")

    try:
        token = generate_access_token(token_length)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    return ServedFile(
        absolute_path=resolved,
        display_name=display_name_for(resolved),
        size_bytes=st.st_size,
        access_token=token,
    )


def format_size_mb(size_bytes: int) -> str:
    """Human-readable size: bytes / 1,048,576 with two decimals."""
    return f"{size_bytes / BYTES_PER_MB:.2f}"
