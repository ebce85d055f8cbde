"""Runtime primitives shared across synckit."""

from .errors import SynckitError

__all__ = ["SynckitError"]
