"""
Config file account provider.

Reads team membership from a local YAML file for development and
offline-first usage.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import StorageIOError
from .static import StaticAccountProvider

logger = logging.getLogger(__name__)


class ConfigFileAccountProvider(StaticAccountProvider):
    """Account provider that reads teams from a YAML file.

    Configuration in ~/.smyth/accounts.yaml:

    ```yaml
    backend:
      users:
        alice: {}
      agents:
        support-bot:
          settings: {model: small}
      settings:
        region: eu
    ```

    A missing file means no teams are configured; every candidate then
    resolves to the default team.
    """

    def __init__(self, config_path: Path | str | None = None):
        """Initialize the config file provider.

        Args:
            config_path: Path to accounts.yaml. Defaults to ~/.smyth/accounts.yaml
        """
        self.config_path = Path(config_path) if config_path else Path.home() / ".smyth" / "accounts.yaml"
        super().__init__(self._load_config())

    def _load_config(self) -> dict[str, Any]:
        """Load account data from YAML file."""
        if not self.config_path.exists():
            logger.info(f"No account file at {self.config_path}, using default team only")
            return {}

        try:
            content = self.config_path.read_text()
            data = yaml.safe_load(content) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StorageIOError("load_accounts", str(self.config_path), e) from e

        if not isinstance(data, dict):
            raise StorageIOError(
                "load_accounts",
                str(self.config_path),
                ValueError("account file must contain a mapping of teams"),
            )
        return data

    def reload(self) -> None:
        """Re-read the account file."""
        self.data = StaticAccountProvider(self._load_config()).data
