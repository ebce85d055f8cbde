"""synckit: typed entity graphs over paginated HTTP backends."""

__version__ = "0.4.0"

__all__ = ["__version__"]
