"""shellwise - risk classification for shell commands."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("shellwise")
except PackageNotFoundError:
    __version__ = "0.0.0"
