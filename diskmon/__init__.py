"""Top-level package for the diskmon adaptive disk space monitor."""

from importlib import metadata

from .app.master import main

try:
    __version__ = metadata.version("diskmon")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = ["__version__", "main"]
