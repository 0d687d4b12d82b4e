"""Vault connector implementations."""

from .json_file import JSONFileVault

__all__ = ["JSONFileVault"]
