"""
Connector assembly.

Builds the account provider and the storage, cache and vault connectors from
a SecurityConfig, sharing one account provider between them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

from .accounts import AccountProvider, ConfigFileAccountProvider, StaticAccountProvider
from .cache import RAMCache
from .config import SecurityConfig
from .logging_utils import configure_structured_logging
from .storage import LocalStorage
from .vault import JSONFileVault

logger = logging.getLogger(__name__)


@dataclass
class Connectors:
    """The connectors of one runtime, usable as an async context manager."""

    accounts: AccountProvider
    storage: LocalStorage
    cache: RAMCache
    vault: JSONFileVault

    async def start(self) -> None:
        for connector in (self.storage, self.cache, self.vault):
            await connector.start()

    async def stop(self) -> None:
        for connector in (self.vault, self.cache, self.storage):
            await connector.stop()

    async def __aenter__(self) -> Connectors:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


def create_connectors(config: SecurityConfig | None = None) -> Connectors:
    """Create connectors from configuration.

    Args:
        config: Configuration (default: from environment variables)

    Returns:
        Unstarted connectors; use ``async with`` or call ``start()``
    """
    config = config or SecurityConfig.from_environment()

    if config.structured_logging:
        configure_structured_logging(config.log_level)
    else:
        logging.getLogger("sre_security").setLevel(config.log_level)

    accounts: AccountProvider
    if config.accounts_file is not None:
        accounts = ConfigFileAccountProvider(config.accounts_file)
    else:
        accounts = StaticAccountProvider()

    shared = {
        "accounts": accounts,
        "strict_acl": config.strict_acl,
        "hash_algorithm": config.hash_algorithm,
    }
    connectors = Connectors(
        accounts=accounts,
        storage=LocalStorage(config.storage_path, **shared),
        cache=RAMCache(sweep_interval=config.cache_sweep_interval, **shared),
        vault=JSONFileVault(config.vault_file, file_key=config.vault_file_key, **shared),
    )
    logger.info(
        f"Connectors created (storage={config.storage_path}, vault={config.vault_file}, "
        f"hash={config.hash_algorithm}, strict_acl={config.strict_acl})"
    )
    return connectors
