"""
JSON file vault connector.

Secrets file format:

```json
{
  "team-1": {"openai_key": "sk-...", "db_password": "..."},
  "default": {"shared_token": "..."}
}
```

Every secret is owned by the team it is stored under. Candidates reach a
secret through their team; keys that do not exist for the team are denied.

With a ``file_key`` the secrets file holds a Fernet token (base64 text)
instead of plain JSON. The key file holds the base64 Fernet key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from ..access.acl import ACL, DEFAULT_HASH_ALGORITHM
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..access.types import AccessLevel, AccessRole
from ..accounts.provider import AccountProvider
from ..connectors.vault import VaultConnector
from ..exceptions import StorageIOError
from ..storage.file_ops import file_exists, parse_json, read_bytes


class JSONFileVault(VaultConnector):
    """Read-only team-scoped secret vault backed by a JSON file."""

    name = "JSONFileVault"

    def __init__(
        self,
        file: Path | str | None = None,
        file_key: Path | str | None = None,
        accounts: AccountProvider | None = None,
        strict_acl: bool = False,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ):
        """Initialize the vault.

        Args:
            file: Secrets file. Defaults to ~/.smyth/vault.json
            file_key: Fernet key file. When set and present, the secrets
                file is decrypted with it before parsing
            accounts: Team membership provider
            strict_acl: Raise on malformed stored ACLs
            hash_algorithm: Owner key hash algorithm for derived ACLs
        """
        super().__init__(accounts=accounts, strict_acl=strict_acl, hash_algorithm=hash_algorithm)
        self.file = Path(file) if file else Path.home() / ".smyth" / "vault.json"
        self.file_key = Path(file_key) if file_key else None
        self._data: dict[str, dict[str, Any]] | None = None

    async def start(self) -> None:
        await super().start()
        await self.reload()

    async def reload(self) -> None:
        """Re-read the secrets file. A missing file is an empty vault."""
        data = parse_json(await self._read_file(), self.file)
        if data is None:
            self.log.warning(f"Vault file {self.file} not found, vault is empty")
            data = {}
        if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
            raise StorageIOError(
                "load_vault",
                str(self.file),
                ValueError("vault file must map team ids to secret mappings"),
            )
        self._data = data

    async def _read_file(self) -> bytes | None:
        content = await read_bytes(self.file)
        if content is None or self.file_key is None:
            return content

        if not await file_exists(self.file_key):
            self.log.warning(f"Vault key file {self.file_key} not found, reading {self.file} as plain JSON")
            return content

        key = await read_bytes(self.file_key) or b""
        try:
            return Fernet(key.strip()).decrypt(content.strip())
        except (InvalidToken, ValueError) as e:
            raise StorageIOError("decrypt_vault", str(self.file), e) from e

    async def _team_secrets(self, candidate: AccessCandidate) -> tuple[str | None, dict[str, Any]]:
        if self._data is None:
            await self.reload()
        team_id = await self.accounts.get_candidate_team(candidate)
        if not team_id:
            return None, {}
        return team_id, (self._data or {}).get(team_id, {})

    async def get_resource_acl(self, resource_id: str, candidate: AccessCandidate) -> ACL:
        team_id, secrets = await self._team_secrets(candidate)
        acl = self.new_acl()
        if team_id is None or not isinstance(secrets.get(resource_id), str):
            return acl
        return acl.add_access(
            AccessRole.TEAM,
            team_id,
            [AccessLevel.OWNER, AccessLevel.READ, AccessLevel.WRITE],
        )

    async def _get(self, request: AccessRequest, key_id: str) -> str | None:
        _, secrets = await self._team_secrets(request.candidate)
        return secrets.get(key_id)

    async def _exists(self, request: AccessRequest, key_id: str) -> bool:
        _, secrets = await self._team_secrets(request.candidate)
        return isinstance(secrets.get(key_id), str)

    async def _list_keys(self, request: AccessRequest) -> list[str]:
        _, secrets = await self._team_secrets(request.candidate)
        return sorted(key for key, value in secrets.items() if isinstance(value, str))
