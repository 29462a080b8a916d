"""A small terminal text editor with syntax highlighting and incremental search."""

from .constants import KILO_VERSION as __version__

__all__ = ["__version__"]
