"""Common domain-specific exceptions for synckit."""

from __future__ import annotations


class SynckitError(Exception):
    """Base class for synckit domain errors."""

    pass
