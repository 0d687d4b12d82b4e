"""Account providers used to resolve team membership."""

from .config_provider import ConfigFileAccountProvider
from .provider import AccountProvider
from .static import StaticAccountProvider

__all__ = [
    "AccountProvider",
    "StaticAccountProvider",
    "ConfigFileAccountProvider",
]
