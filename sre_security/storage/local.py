"""
Local file-based storage connector.

Stores each resource as a file, with its metadata and serialized ACL in a
JSON sidecar.

Directory structure:
{folder}/
  data/
    {resource_id}
  .metadata/
    {resource_id}.json      {"acl": "<serialized ACL>", "metadata": {...}}
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Any

from ..access.acl import ACL, DEFAULT_HASH_ALGORITHM
from ..access.candidate import AccessCandidate
from ..access.request import AccessRequest
from ..accounts.provider import AccountProvider
from ..connectors.secure import ACLValue
from ..connectors.storage import StorageConnector
from ..exceptions import InvalidAccessInputError
from .file_ops import (
    ensure_directory,
    file_exists,
    read_bytes,
    read_json,
    remove_file,
    write_bytes_atomic,
    write_json_atomic,
)

DATA_DIR = "data"
METADATA_DIR = ".metadata"
METADATA_README = "README_IMPORTANT.txt"


class LocalStorage(StorageConnector):
    """Local file-system storage with per-resource ACLs.

    Resource ids are relative POSIX paths (``team-1/docs/report.pdf``).
    The ACL sidecar is written before the data on create and removed after
    the data on delete, so data is never on disk without an owning ACL.
    """

    name = "LocalStorage"

    def __init__(
        self,
        folder: Path | str | None = None,
        accounts: AccountProvider | None = None,
        strict_acl: bool = False,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        """Initialize local storage.

        Args:
            folder: Storage root. Defaults to ~/.smyth/storage
            accounts: Team membership provider
            strict_acl: Raise on malformed stored ACLs
            hash_algorithm: Owner key hash algorithm for new ACLs
        """
        super().__init__(accounts=accounts, strict_acl=strict_acl, hash_algorithm=hash_algorithm)
        self.folder = Path(folder) if folder else Path.home() / ".smyth" / "storage"
        self.data_path = self.folder / DATA_DIR
        self.metadata_path = self.folder / METADATA_DIR
        self._initialized = False

    async def start(self) -> None:
        await super().start()
        await self.initialize()

    async def initialize(self) -> None:
        """Create the storage folders if missing."""
        if self._initialized:
            return
        await ensure_directory(self.data_path)
        await ensure_directory(self.metadata_path)
        readme = self.metadata_path / METADATA_README
        if not await file_exists(readme):
            await write_bytes_atomic(
                readme,
                b"This folder holds resource metadata and access control lists. "
                b"Deleting it makes every stored resource inaccessible.\n",
            )
        self._initialized = True

    def _relative(self, resource_id: str) -> PurePosixPath:
        relative = PurePosixPath(resource_id)
        if (
            not resource_id
            or relative.is_absolute()
            or ".." in relative.parts
            or not relative.parts
            or "\\" in resource_id
        ):
            raise InvalidAccessInputError(
                "resource id", "must be a relative path inside the storage folder", resource_id
            )
        return relative

    def _data_file(self, resource_id: str) -> Path:
        return self.data_path.joinpath(*self._relative(resource_id).parts)

    def _metadata_file(self, resource_id: str) -> Path:
        relative = self._relative(resource_id)
        return self.metadata_path.joinpath(*relative.parent.parts, f"{relative.name}.json")

    def lock_key(self, resource_id: str) -> str:
        return str(self._relative(resource_id))

    async def _read_record(self, resource_id: str) -> dict[str, Any] | None:
        return await read_json(self._metadata_file(resource_id))

    # ------------------------------------------------------------------
    # ACL lookup
    # ------------------------------------------------------------------

    async def get_resource_acl(self, resource_id: str, candidate: AccessCandidate) -> ACL:
        record = await self._read_record(resource_id)
        if record is None:
            # Resource does not exist yet: the candidate may create it
            return self.with_owner(None, candidate)
        return self.load_acl(record.get("acl"), resource_id)

    # ------------------------------------------------------------------
    # Backend operations
    # ------------------------------------------------------------------

    async def _read(self, request: AccessRequest, resource_id: str) -> bytes | None:
        return await read_bytes(self._data_file(resource_id))

    async def _write(
        self,
        request: AccessRequest,
        resource_id: str,
        value: bytes,
        acl: ACLValue,
        metadata: dict[str, Any],
    ) -> None:
        data_file = self._data_file(resource_id)
        metadata_file = self._metadata_file(resource_id)
        await self.initialize()
        record = await self._read_record(resource_id)

        if record is not None:
            if metadata:
                record["metadata"] = {**record.get("metadata", {}), **metadata}
                await write_json_atomic(metadata_file, record)
            await write_bytes_atomic(data_file, value)
            return

        record = {
            "acl": self.with_owner(acl, request.candidate).serialize(),
            "metadata": metadata,
        }
        await write_json_atomic(metadata_file, record)
        try:
            await write_bytes_atomic(data_file, value)
        except Exception:
            # Roll back the ACL so a failed create leaves nothing behind
            await remove_file(metadata_file)
            raise

        self.log.debug(f"Created {resource_id} owned by {request.candidate}")

    async def _delete(self, request: AccessRequest, resource_id: str) -> None:
        await remove_file(self._data_file(resource_id))
        await remove_file(self._metadata_file(resource_id))

    async def _exists(self, request: AccessRequest, resource_id: str) -> bool:
        return await file_exists(self._data_file(resource_id))

    async def _get_metadata(self, request: AccessRequest, resource_id: str) -> dict[str, Any] | None:
        record = await self._read_record(resource_id)
        if record is None:
            return None
        return dict(record.get("metadata") or {})

    async def _set_metadata(self, request: AccessRequest, resource_id: str, metadata: dict[str, Any]) -> None:
        await self.initialize()
        record = await self._read_record(resource_id)
        if record is None:
            record = {"acl": self.with_owner(None, request.candidate).serialize(), "metadata": {}}
        record["metadata"] = {**record.get("metadata", {}), **metadata}
        await write_json_atomic(self._metadata_file(resource_id), record)

    async def _get_acl(self, request: AccessRequest, resource_id: str) -> ACL | None:
        record = await self._read_record(resource_id)
        if record is None:
            return None
        return self.load_acl(record.get("acl"), resource_id)

    async def _set_acl(self, request: AccessRequest, resource_id: str, acl: ACL) -> None:
        await self.initialize()
        record = await self._read_record(resource_id) or {"metadata": {}}
        record["acl"] = acl.serialize()
        await write_json_atomic(self._metadata_file(resource_id), record)
