"""prsync - pull request driven work item state sync."""

from prsync_core import __version__

__all__ = ["__version__"]
