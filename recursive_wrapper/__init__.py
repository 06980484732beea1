"""Recursive wrapper updates across composite builds."""

from recursive_wrapper.constants import VERSION as __version__

__all__ = ["__version__"]
