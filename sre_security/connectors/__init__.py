"""
Secure connector abstraction layer.

Storage, cache and vault surfaces share one enforcement path: every gated
operation checks the resource's ACL before touching the backend.
"""

from .cache import CacheConnector, CacheRequest
from .secure import SecureConnector, access_control
from .storage import StorageConnector, StorageData, StorageRequest
from .vault import VaultConnector, VaultRequest

__all__ = [
    # Base
    "SecureConnector",
    "access_control",
    # Storage
    "StorageConnector",
    "StorageRequest",
    "StorageData",
    # Cache
    "CacheConnector",
    "CacheRequest",
    # Vault
    "VaultConnector",
    "VaultRequest",
]
