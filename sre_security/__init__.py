"""
SRE Security

Access control core for agent runtimes.

Provides:
- ACL model with a compact, hashed wire format
- Access candidates, requests and audit tickets
- Secure connectors that enforce ACLs on storage, cache and vault operations
- Team membership resolution through account providers

Usage:

    >>> from sre_security import AccessCandidate, LocalStorage
    >>> storage = LocalStorage("/tmp/sre-storage")
    >>> await storage.start()
    >>> alice = storage.for_candidate(AccessCandidate.user("alice"))
    >>> await alice.write("docs/report.txt", b"quarterly numbers")
    >>> await alice.read("docs/report.txt")
    b'quarterly numbers'

Any other candidate is refused with AccessDeniedError until alice grants it
access through ``set_acl``.

Assembling everything from configuration:

    from sre_security import SecurityConfig, create_connectors

    async with create_connectors(SecurityConfig.from_environment()) as connectors:
        cache = connectors.cache.for_candidate(AccessCandidate.agent("agent-1"))
        await cache.set("session", {"step": 3}, ttl=300)
"""

# Access control core
from .access import (
    ACL,
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_TEAM_ID,
    HASH_ALGORITHMS,
    PUBLIC_OWNER_ID,
    AccessCandidate,
    AccessLevel,
    AccessRequest,
    AccessResult,
    AccessRole,
    AccessTicket,
)

# Account providers
from .accounts import AccountProvider, ConfigFileAccountProvider, StaticAccountProvider

# Concrete connectors
from .cache import RAMCache

# Configuration
from .config import SecurityConfig

# Connector abstraction
from .connectors import (
    CacheConnector,
    CacheRequest,
    SecureConnector,
    StorageConnector,
    StorageRequest,
    VaultConnector,
    VaultRequest,
    access_control,
)

# Exceptions
from .exceptions import (
    AccessDeniedError,
    ConfigurationError,
    InvalidAccessInputError,
    MalformedACLError,
    SecurityError,
    StorageIOError,
)

# Logging
from .logging_utils import configure_structured_logging
from .runtime import Connectors, create_connectors
from .storage import LocalStorage
from .vault import JSONFileVault

__version__ = "0.1.0"

__all__ = [
    # Access control core
    "ACL",
    "AccessCandidate",
    "AccessRequest",
    "AccessTicket",
    "AccessLevel",
    "AccessRole",
    "AccessResult",
    "DEFAULT_HASH_ALGORITHM",
    "HASH_ALGORITHMS",
    "DEFAULT_TEAM_ID",
    "PUBLIC_OWNER_ID",
    # Connectors
    "SecureConnector",
    "access_control",
    "StorageConnector",
    "StorageRequest",
    "CacheConnector",
    "CacheRequest",
    "VaultConnector",
    "VaultRequest",
    "LocalStorage",
    "RAMCache",
    "JSONFileVault",
    # Accounts
    "AccountProvider",
    "StaticAccountProvider",
    "ConfigFileAccountProvider",
    # Configuration
    "SecurityConfig",
    "Connectors",
    "create_connectors",
    "configure_structured_logging",
    # Exceptions
    "SecurityError",
    "InvalidAccessInputError",
    "MalformedACLError",
    "AccessDeniedError",
    "StorageIOError",
    "ConfigurationError",
]
