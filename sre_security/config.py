"""
Configuration for the security layer.

Configuration can be provided directly, via environment variables or via a
YAML file.

Environment Variables:
    SRE_STORAGE_PATH: Local storage root (default: ~/.smyth/storage)
    SRE_VAULT_FILE: Vault secrets file (default: ~/.smyth/vault.json)
    SRE_VAULT_FILE_KEY: Fernet key file for an encrypted vault (default: none)
    SRE_ACCOUNTS_FILE: Account/team YAML file (default: none)
    SRE_ACL_HASH_ALGORITHM: Owner key hash algorithm (default: blake2b)
    SRE_STRICT_ACL: Raise on malformed stored ACLs (default: false)
    SRE_CACHE_SWEEP_INTERVAL: Seconds between cache sweeps (default: 60)
    SRE_LOG_LEVEL: Log level (default: INFO)
    SRE_STRUCTURED_LOGGING: Emit JSON logs (default: false)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .access.acl import DEFAULT_HASH_ALGORITHM, HASH_ALGORITHMS
from .exceptions import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _default_root() -> Path:
    return Path.home() / ".smyth"


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(key, f"expected a boolean, got {value!r}")


def _parse_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f"expected a number, got {value!r}") from None


@dataclass
class SecurityConfig:
    """Configuration for connectors and logging.

    Attributes:
        storage_path: Root folder for LocalStorage
        vault_file: Secrets file for JSONFileVault
        vault_file_key: Fernet key file, set when vault_file is encrypted
        accounts_file: YAML team membership file, None for default team only
        hash_algorithm: Owner key hash algorithm for new ACLs
        strict_acl: Raise MalformedACLError instead of denying on bad ACLs
        cache_sweep_interval: Seconds between RAMCache expiry sweeps
        log_level: Logging level name
        structured_logging: Emit single-line JSON logs
    """

    storage_path: Path = field(default_factory=lambda: _default_root() / "storage")
    vault_file: Path = field(default_factory=lambda: _default_root() / "vault.json")
    vault_file_key: Path | None = None
    accounts_file: Path | None = None
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    strict_acl: bool = False
    cache_sweep_interval: float = 60.0
    log_level: str = "INFO"
    structured_logging: bool = False

    # Additional options
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.storage_path = Path(self.storage_path).expanduser()
        self.vault_file = Path(self.vault_file).expanduser()
        if self.accounts_file is not None:
            self.accounts_file = Path(self.accounts_file).expanduser()
        if self.vault_file_key is not None:
            self.vault_file_key = Path(self.vault_file_key).expanduser()

        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ConfigurationError(
                "hash_algorithm",
                f"must be one of {sorted(HASH_ALGORITHMS)}, got {self.hash_algorithm!r}",
            )
        if self.cache_sweep_interval < 0:
            raise ConfigurationError("cache_sweep_interval", "must be >= 0")

        self.log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError("log_level", f"unknown level {self.log_level!r}")

    @classmethod
    def from_environment(cls) -> SecurityConfig:
        """Create configuration from environment variables.

        Returns:
            SecurityConfig populated from environment variables
        """
        env = os.environ
        kwargs: dict[str, Any] = {}
        if "SRE_STORAGE_PATH" in env:
            kwargs["storage_path"] = env["SRE_STORAGE_PATH"]
        if "SRE_VAULT_FILE" in env:
            kwargs["vault_file"] = env["SRE_VAULT_FILE"]
        if env.get("SRE_VAULT_FILE_KEY"):
            kwargs["vault_file_key"] = env["SRE_VAULT_FILE_KEY"]
        if env.get("SRE_ACCOUNTS_FILE"):
            kwargs["accounts_file"] = env["SRE_ACCOUNTS_FILE"]
        if "SRE_ACL_HASH_ALGORITHM" in env:
            kwargs["hash_algorithm"] = env["SRE_ACL_HASH_ALGORITHM"].lower()
        if "SRE_STRICT_ACL" in env:
            kwargs["strict_acl"] = _parse_bool("SRE_STRICT_ACL", env["SRE_STRICT_ACL"])
        if "SRE_CACHE_SWEEP_INTERVAL" in env:
            kwargs["cache_sweep_interval"] = _parse_float(
                "SRE_CACHE_SWEEP_INTERVAL", env["SRE_CACHE_SWEEP_INTERVAL"]
            )
        if "SRE_LOG_LEVEL" in env:
            kwargs["log_level"] = env["SRE_LOG_LEVEL"]
        if "SRE_STRUCTURED_LOGGING" in env:
            kwargs["structured_logging"] = _parse_bool(
                "SRE_STRUCTURED_LOGGING", env["SRE_STRUCTURED_LOGGING"]
            )
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path | str) -> SecurityConfig:
        """Create configuration from the ``security`` section of a YAML file.

        ```yaml
        security:
          storage_path: ~/.smyth/storage
          hash_algorithm: blake2b
          strict_acl: true
        ```

        Unknown keys are kept in ``options``.
        """
        path = Path(path).expanduser()
        try:
            content = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(str(path), f"cannot read configuration: {e}") from e

        section = content.get("security", {}) if isinstance(content, dict) else None
        if not isinstance(section, dict):
            raise ConfigurationError("security", "section must be a mapping")

        known = {f.name for f in fields(cls)} - {"options"}
        kwargs: dict[str, Any] = {k: v for k, v in section.items() if k in known}
        options = {k: v for k, v in section.items() if k not in known}

        if "strict_acl" in kwargs:
            kwargs["strict_acl"] = _parse_bool("strict_acl", kwargs["strict_acl"])
        if "structured_logging" in kwargs:
            kwargs["structured_logging"] = _parse_bool("structured_logging", kwargs["structured_logging"])
        if "cache_sweep_interval" in kwargs:
            kwargs["cache_sweep_interval"] = _parse_float(
                "cache_sweep_interval", kwargs["cache_sweep_interval"]
            )
        return cls(options=options, **kwargs)
