"""
Access Control List model.

An ACL maps each role to owner keys, and each owner key to the set of levels
granted to it. Owner keys are owner ids hashed with the ACL's hash algorithm,
so the serialized form never carries raw agent, user or team ids.

Wire format v1:

    v:1|h:<algorithm>[|m:1]|<role>:<key>/<levels>[,<key>/<levels>...][|...]

Roles and levels use the single-character codes from ``types``. Roles and
owner keys are emitted in a fixed order so equal ACLs serialize identically.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import xxhash

from ..exceptions import InvalidAccessInputError, MalformedACLError
from .types import (
    ACL_FORMAT_VERSION,
    LEVEL_MAP,
    LEVEL_ORDER,
    PUBLIC_OWNER_ID,
    REVERSE_LEVEL_MAP,
    REVERSE_ROLE_MAP,
    ROLE_MAP,
    ROLE_ORDER,
    AccessLevel,
    AccessRole,
    coerce_levels,
    coerce_role,
)


def _hash_none(owner_id: str) -> str:
    return owner_id


def _hash_blake2b(owner_id: str) -> str:
    return hashlib.blake2b(owner_id.encode("utf-8"), digest_size=8).hexdigest()


def _hash_sha256(owner_id: str) -> str:
    return hashlib.sha256(owner_id.encode("utf-8")).hexdigest()


def _hash_xxh3(owner_id: str) -> str:
    # 64-bit xxHash with seed 0, rendered as unpadded hex
    return format(xxhash.xxh64_intdigest(owner_id.encode("utf-8"), seed=0), "x")


HASH_ALGORITHMS: dict[str, Callable[[str], str]] = {
    "none": _hash_none,
    "blake2b": _hash_blake2b,
    "sha256": _hash_sha256,
    "xxh3": _hash_xxh3,
}

DEFAULT_HASH_ALGORITHM = "blake2b"

PART_SEPARATOR = "|"
ENTRY_SEPARATOR = ","
LEVEL_SEPARATOR = "/"
FIELD_SEPARATOR = ":"

# Owner keys may be raw ids when the algorithm is "none"
_KEY_ESCAPES = {
    "%": "%25",
    PART_SEPARATOR: "%7C",
    ENTRY_SEPARATOR: "%2C",
    LEVEL_SEPARATOR: "%2F",
    FIELD_SEPARATOR: "%3A",
}
_KEY_UNESCAPES = {code: char for char, code in _KEY_ESCAPES.items()}


def _escape_key(key: str) -> str:
    return "".join(_KEY_ESCAPES.get(char, char) for char in key)


def _unescape_key(key: str, serialized: str) -> str:
    if "%" not in key:
        return key
    chars: list[str] = []
    i = 0
    while i < len(key):
        if key[i] == "%":
            code = key[i : i + 3].upper()
            if code not in _KEY_UNESCAPES:
                raise MalformedACLError(f"invalid escape in owner key {key!r}", serialized)
            chars.append(_KEY_UNESCAPES[code])
            i += 3
        else:
            chars.append(key[i])
            i += 1
    return "".join(chars)


def _validate_algorithm(hash_algorithm: str) -> str:
    if hash_algorithm not in HASH_ALGORITHMS:
        raise InvalidAccessInputError("hash algorithm", "not supported", hash_algorithm)
    return hash_algorithm


class ACL:
    """Permission set for one resource.

    An empty ACL denies every request. Levels are additive and OWNER is an
    explicit marker: ``check_exact_access`` never treats OWNER as implying
    READ or WRITE. Connectors layer their own policy on top (see
    ``SecureConnector.has_access``).

    Example:
        >>> acl = (
        ...     ACL()
        ...     .add_access(AccessRole.AGENT, "a1", AccessLevel.WRITE)
        ...     .add_access(AccessRole.AGENT, "a1", AccessLevel.READ)
        ...     .add_access(AccessRole.TEAM, "t1", AccessLevel.READ)
        ... )
        >>> acl.check_exact_access(AccessCandidate.agent("a1").write_request("r1"))
        True
    """

    def __init__(self, hash_algorithm: str = DEFAULT_HASH_ALGORITHM, migrated: bool = False):
        self.hash_algorithm = _validate_algorithm(hash_algorithm)
        self.migrated = migrated
        self._entries: dict[AccessRole, dict[str, set[AccessLevel]]] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        value: ACL | Mapping[str, Any] | str | None = None,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> ACL:
        """Build an independent ACL from any supported representation.

        Args:
            value: None or "" (empty ACL), a serialized string, another ACL
                or a plain dict as produced by ``to_dict``.
            hash_algorithm: Algorithm for a new empty ACL. Ignored when value
                carries its own.

        Returns:
            A new ACL. Mutating it never affects value.
        """
        if value is None or value == "":
            return cls(hash_algorithm=hash_algorithm)
        if isinstance(value, str):
            return cls.deserialize(value)
        if isinstance(value, ACL):
            return value.copy()
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise InvalidAccessInputError("acl", "unsupported ACL representation", type(value).__name__)

    @classmethod
    def from_legacy(
        cls,
        legacy: Mapping[str, Mapping[str, Iterable[str]]],
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> ACL:
        """Convert the informal ``{role: {owner_id: [levels]}}`` format.

        Owner ids in the legacy format are raw; they are hashed here. The
        result is marked as migrated.
        """
        acl = cls(hash_algorithm=hash_algorithm, migrated=True)
        try:
            for role_name, owners in legacy.items():
                role = coerce_role(role_name)
                for owner_id, levels in (owners or {}).items():
                    if role is AccessRole.PUBLIC:
                        acl.add_public_access(list(levels))
                    else:
                        acl.add_access(role, owner_id, list(levels))
        except (InvalidAccessInputError, AttributeError, TypeError) as e:
            raise MalformedACLError(f"cannot migrate legacy ACL: {e}") from e
        return acl

    def copy(self) -> ACL:
        clone = ACL(hash_algorithm=self.hash_algorithm, migrated=self.migrated)
        clone._entries = {
            role: {key: set(levels) for key, levels in owners.items()}
            for role, owners in self._entries.items()
        }
        return clone

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _hash(self, owner_id: str) -> str:
        return HASH_ALGORITHMS[self.hash_algorithm](owner_id)

    def _add(self, role: AccessRole, owner_id: str, levels: tuple[AccessLevel, ...]) -> ACL:
        if not isinstance(owner_id, str) or not owner_id:
            raise InvalidAccessInputError("owner id", f"must be a non-empty string for {role.value}", owner_id)
        if not levels:
            return self
        key = self._hash(owner_id)
        self._entries.setdefault(role, {}).setdefault(key, set()).update(levels)
        return self

    def _remove(self, role: AccessRole, owner_id: str, levels: tuple[AccessLevel, ...]) -> ACL:
        owners = self._entries.get(role)
        if not owners or not owner_id:
            return self
        key = self._hash(owner_id)
        granted = owners.get(key)
        if granted is None:
            return self
        granted.difference_update(levels)
        # Never leave empty sets around
        if not granted:
            del owners[key]
        if not owners:
            del self._entries[role]
        return self

    def add_access(
        self,
        role: AccessRole | str,
        owner_id: str,
        level: AccessLevel | str | Iterable[AccessLevel | str],
    ) -> ACL:
        """Grant level(s) to (role, owner_id). Idempotent, returns self."""
        role = coerce_role(role)
        if role is AccessRole.PUBLIC:
            raise InvalidAccessInputError("role", "use add_public_access for public access", role.value)
        return self._add(role, owner_id, coerce_levels(level))

    def remove_access(
        self,
        role: AccessRole | str,
        owner_id: str,
        level: AccessLevel | str | Iterable[AccessLevel | str],
    ) -> ACL:
        """Revoke level(s) from (role, owner_id), pruning emptied entries."""
        return self._remove(coerce_role(role), owner_id, coerce_levels(level))

    def add_public_access(self, level: AccessLevel | str | Iterable[AccessLevel | str]) -> ACL:
        return self._add(AccessRole.PUBLIC, PUBLIC_OWNER_ID, coerce_levels(level))

    def remove_public_access(self, level: AccessLevel | str | Iterable[AccessLevel | str]) -> ACL:
        return self._remove(AccessRole.PUBLIC, PUBLIC_OWNER_ID, coerce_levels(level))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_exact_access(self, request: Any) -> bool:
        """Check that the candidate holds every requested level.

        Only the exact levels are checked: OWNER does not satisfy READ, and
        a team entry does not match an agent candidate with the same id.
        Missing or malformed input is a denial, never an exception.

        Args:
            request: An AccessRequest (anything exposing ``candidate`` and
                ``levels``).

        Returns:
            True if access is granted.
        """
        try:
            candidate = request.candidate
            levels = tuple(request.levels)
            owners = self._entries.get(candidate.role)
            if not owners or not levels or not candidate.id:
                return False
            granted = owners.get(self._hash(candidate.id))
        except (AttributeError, TypeError):
            return False
        if not granted:
            return False
        return all(level in granted for level in levels)

    def levels_for(self, role: AccessRole | str, owner_id: str) -> frozenset[AccessLevel]:
        owners = self._entries.get(coerce_role(role), {})
        return frozenset(owners.get(self._hash(owner_id), ()))

    def roles(self) -> tuple[AccessRole, ...]:
        return tuple(role for role in ROLE_ORDER if role in self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Produce the compact wire form."""
        parts = [f"v:{ACL_FORMAT_VERSION}", f"h:{self.hash_algorithm}"]
        if self.migrated:
            parts.append("m:1")

        for role in ROLE_ORDER:
            owners = self._entries.get(role)
            if not owners:
                continue
            entries = []
            for key in sorted(owners):
                levels = "".join(LEVEL_MAP[level] for level in LEVEL_ORDER if level in owners[key])
                if levels:
                    entries.append(f"{_escape_key(key)}{LEVEL_SEPARATOR}{levels}")
            if entries:
                parts.append(f"{ROLE_MAP[role]}{FIELD_SEPARATOR}{ENTRY_SEPARATOR.join(entries)}")

        return PART_SEPARATOR.join(parts)

    @property
    def serialized(self) -> str:
        return self.serialize()

    @classmethod
    def deserialize(cls, serialized: str | None) -> ACL:
        """Rebuild an ACL from its wire form.

        An empty or absent string yields an empty ACL. Strings without a
        version part are read as version 1; without a hash part, owner keys
        are taken as raw ids.

        Raises:
            MalformedACLError: If the string cannot be parsed.
        """
        if serialized is None or serialized == "":
            return cls()
        if not isinstance(serialized, str):
            raise MalformedACLError("serialized ACL must be a string")

        hash_algorithm = "none"
        migrated = False
        entries: dict[AccessRole, dict[str, set[AccessLevel]]] = {}

        for part in serialized.split(PART_SEPARATOR):
            prefix, sep, body = part.partition(FIELD_SEPARATOR)
            if not sep:
                raise MalformedACLError(f"missing field separator in {part!r}", serialized)

            if prefix == "v":
                if body != ACL_FORMAT_VERSION:
                    raise MalformedACLError(f"unsupported format version {body!r}", serialized)
            elif prefix == "h":
                if body not in HASH_ALGORITHMS:
                    raise MalformedACLError(f"unsupported hash algorithm {body!r}", serialized)
                hash_algorithm = body
            elif prefix == "m":
                if body not in ("0", "1"):
                    raise MalformedACLError(f"invalid migrated flag {body!r}", serialized)
                migrated = body == "1"
            elif prefix in REVERSE_ROLE_MAP:
                role = REVERSE_ROLE_MAP[prefix]
                if role in entries:
                    raise MalformedACLError(f"duplicate role block {prefix!r}", serialized)
                entries[role] = cls._parse_role_block(body, serialized)
            else:
                raise MalformedACLError(f"unknown part {prefix!r}", serialized)

        acl = cls(hash_algorithm=hash_algorithm, migrated=migrated)
        acl._entries = entries
        return acl

    @staticmethod
    def _parse_role_block(body: str, serialized: str) -> dict[str, set[AccessLevel]]:
        owners: dict[str, set[AccessLevel]] = {}
        for entry in body.split(ENTRY_SEPARATOR):
            fields = entry.split(LEVEL_SEPARATOR)
            if len(fields) != 2:
                raise MalformedACLError(f"invalid owner entry {entry!r}", serialized)
            raw_key, codes = fields
            if not raw_key:
                raise MalformedACLError("empty owner key", serialized)
            if not codes:
                raise MalformedACLError(f"no levels for owner key {raw_key!r}", serialized)
            key = _unescape_key(raw_key, serialized)
            if key in owners:
                raise MalformedACLError(f"duplicate owner key {raw_key!r}", serialized)
            levels = set()
            for code in codes:
                if code not in REVERSE_LEVEL_MAP:
                    raise MalformedACLError(f"unknown level code {code!r}", serialized)
                levels.add(REVERSE_LEVEL_MAP[code])
            owners[key] = levels
        return owners

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-able value of the ACL."""
        return {
            "hashAlgorithm": self.hash_algorithm,
            "entries": {
                role.value: {
                    key: [level.value for level in LEVEL_ORDER if level in self._entries[role][key]]
                    for key in sorted(self._entries[role])
                }
                for role in self.roles()
            },
            "migrated": self.migrated,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ACL:
        """Rebuild an ACL from ``to_dict`` output. Owner keys are taken as stored."""
        try:
            acl = cls(
                hash_algorithm=data.get("hashAlgorithm") or DEFAULT_HASH_ALGORITHM,
                migrated=bool(data.get("migrated", False)),
            )
            for role_name, owners in (data.get("entries") or {}).items():
                role = coerce_role(role_name)
                for key, levels in (owners or {}).items():
                    parsed = set(coerce_levels(list(levels)))
                    if key and parsed:
                        acl._entries.setdefault(role, {})[key] = parsed
        except (InvalidAccessInputError, AttributeError, TypeError) as e:
            raise MalformedACLError(f"invalid ACL value: {e}") from e
        return acl

    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ACL):
            return NotImplemented
        return (
            self.hash_algorithm == other.hash_algorithm
            and self.migrated == other.migrated
            and self._entries == other._entries
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ACL({self.serialize()!r})"
