"""occlaude: minimal Claude chat client."""

from occlaude.version import __version__

__all__ = ["__version__"]
