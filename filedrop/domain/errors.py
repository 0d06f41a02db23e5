from __future__ import annotations

__all__ = [
    "FiledropError",
    "ConfigError",
    "FileAccessError",
    "TunnelError",
    "TunnelUnavailable",
    "TunnelTimeout",
    "TunnelProcessExited",
]


class FiledropError(RuntimeError):
    """Base class for filedrop errors.

    The `code` attribute gives each failure a stable machine-readable name for
    log events and HTTP error bodies.
    """

    code: str = "filedrop_error"


class ConfigError(FiledropError):
    """Bad startup input: missing/unreadable file, invalid or busy port."""

    code = "config_error"


class FileAccessError(FiledropError):
    """The served file could not be read while answering a request."""

    code = "file_unavailable"


class TunnelError(FiledropError):
    code = "tunnel_error"


class TunnelUnavailable(TunnelError):
    """The tunnel executable is not installed or could not be launched."""

    code = "tunnel_unavailable"


class TunnelTimeout(TunnelError):
    code = "tunnel_timeout"

    def __init__(self, timeout: float):
        super().__init__(f"no tunnel URL within {timeout:g} seconds")
        self.timeout = timeout


class TunnelProcessExited(TunnelError):
    code = "tunnel_exited"

    def __init__(self, exit_code: int | None):
        super().__init__(f"tunnel process exited with code {exit_code} before printing a URL")
        self.exit_code = exit_code
