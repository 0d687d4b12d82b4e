"""
Access control vocabulary.

Access levels, roles and the short codes used by the compact ACL wire format.
The code tables are version 1 of the format and must not change.
"""

from __future__ import annotations

from enum import Enum

from ..exceptions import InvalidAccessInputError


class AccessLevel(Enum):
    """Capability granted on a resource.

    NONE is an explicit negative marker, distinct from having no entry.
    OWNER is a separate flag; it is not a superset of READ or WRITE in the
    ACL itself.
    """

    NONE = "none"
    OWNER = "owner"
    READ = "read"
    WRITE = "write"


class AccessRole(Enum):
    """Category of principal holding rights on a resource."""

    AGENT = "agent"
    USER = "user"
    TEAM = "team"
    PUBLIC = "public"


class AccessResult(Enum):
    """Outcome of an access check."""

    GRANTED = "granted"
    DENIED = "denied"


# Wire format v1
ACL_FORMAT_VERSION = "1"

ROLE_MAP: dict[AccessRole, str] = {
    AccessRole.USER: "u",
    AccessRole.AGENT: "a",
    AccessRole.TEAM: "t",
    AccessRole.PUBLIC: "p",
}

LEVEL_MAP: dict[AccessLevel, str] = {
    AccessLevel.NONE: "n",
    AccessLevel.OWNER: "o",
    AccessLevel.READ: "r",
    AccessLevel.WRITE: "w",
}

REVERSE_ROLE_MAP: dict[str, AccessRole] = {code: role for role, code in ROLE_MAP.items()}
REVERSE_LEVEL_MAP: dict[str, AccessLevel] = {code: level for level, code in LEVEL_MAP.items()}

# Canonical emission order
ROLE_ORDER: tuple[AccessRole, ...] = tuple(ROLE_MAP)
LEVEL_ORDER: tuple[AccessLevel, ...] = tuple(LEVEL_MAP)

DEFAULT_TEAM_ID = "default"

# Public access has no specific candidate, the role name stands in as owner id
PUBLIC_OWNER_ID = AccessRole.PUBLIC.value


def coerce_role(value: AccessRole | str) -> AccessRole:
    """Return value as an AccessRole, raising InvalidAccessInputError if unknown."""
    if isinstance(value, AccessRole):
        return value
    try:
        return AccessRole(value)
    except ValueError:
        raise InvalidAccessInputError("role", "unknown access role", value) from None


def coerce_level(value: AccessLevel | str) -> AccessLevel:
    """Return value as an AccessLevel, raising InvalidAccessInputError if unknown."""
    if isinstance(value, AccessLevel):
        return value
    try:
        return AccessLevel(value)
    except ValueError:
        raise InvalidAccessInputError("level", "unknown access level", value) from None


def coerce_levels(
    value: AccessLevel | str | list[AccessLevel | str] | tuple[AccessLevel | str, ...] | None,
) -> tuple[AccessLevel, ...]:
    """Normalize a single level or a collection of levels into a tuple.

    Duplicates are dropped, first occurrence wins.
    """
    if value is None:
        return ()
    if isinstance(value, (AccessLevel, str)):
        return (coerce_level(value),)
    levels: list[AccessLevel] = []
    for item in value:
        level = coerce_level(item)
        if level not in levels:
            levels.append(level)
    return tuple(levels)
