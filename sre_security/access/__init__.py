"""Access control core: ACL model, candidates, requests and tickets."""

from .acl import ACL, DEFAULT_HASH_ALGORITHM, HASH_ALGORITHMS
from .candidate import AccessCandidate
from .request import AccessRequest, AccessTicket, new_request_id
from .types import (
    ACL_FORMAT_VERSION,
    DEFAULT_TEAM_ID,
    LEVEL_MAP,
    PUBLIC_OWNER_ID,
    REVERSE_LEVEL_MAP,
    REVERSE_ROLE_MAP,
    ROLE_MAP,
    AccessLevel,
    AccessResult,
    AccessRole,
    coerce_level,
    coerce_levels,
    coerce_role,
)

__all__ = [
    # Model
    "ACL",
    "DEFAULT_HASH_ALGORITHM",
    "HASH_ALGORITHMS",
    # Value objects
    "AccessCandidate",
    "AccessRequest",
    "AccessTicket",
    "new_request_id",
    # Vocabulary
    "AccessLevel",
    "AccessRole",
    "AccessResult",
    "ROLE_MAP",
    "LEVEL_MAP",
    "REVERSE_ROLE_MAP",
    "REVERSE_LEVEL_MAP",
    "ACL_FORMAT_VERSION",
    "DEFAULT_TEAM_ID",
    "PUBLIC_OWNER_ID",
    "coerce_role",
    "coerce_level",
    "coerce_levels",
]
