"""Storage connector implementations."""

from .local import LocalStorage

__all__ = ["LocalStorage"]
