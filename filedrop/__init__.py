"""filedrop: share one local file over HTTP behind a random path.

The version resolves from the installed distribution metadata.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("filedrop")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
