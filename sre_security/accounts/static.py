"""
In-memory account provider.

Account data format:

```yaml
team-1:
  users:
    user-1:
      settings: {theme: dark}
  agents:
    agent-1: {}
  settings:
    region: eu
```
"""

from __future__ import annotations

import logging
from typing import Any

from ..access.candidate import AccessCandidate
from ..access.types import DEFAULT_TEAM_ID, AccessRole
from .provider import AccountProvider

logger = logging.getLogger(__name__)


class StaticAccountProvider(AccountProvider):
    """Account provider backed by a dictionary.

    Every candidate is a member of the default team. Users and agents not
    listed under any team resolve to the default team.
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(data or {})
        if DEFAULT_TEAM_ID not in self.data:
            self.data[DEFAULT_TEAM_ID] = {"users": {}, "agents": {}, "settings": {}}

    def _members(self, team_id: str, role: AccessRole) -> dict[str, Any]:
        team = self.data.get(team_id) or {}
        if role is AccessRole.USER:
            return team.get("users") or {}
        if role is AccessRole.AGENT:
            return team.get("agents") or {}
        return {}

    async def is_team_member(self, team_id: str, candidate: AccessCandidate) -> bool:
        if team_id == DEFAULT_TEAM_ID:
            return True
        if candidate.role is AccessRole.TEAM:
            return team_id == candidate.id
        return candidate.id in self._members(team_id, candidate.role)

    async def get_candidate_team(self, candidate: AccessCandidate) -> str | None:
        if candidate.role is AccessRole.TEAM:
            return candidate.id
        if candidate.role is AccessRole.PUBLIC:
            return None

        for team_id in self.data:
            if candidate.id in self._members(team_id, candidate.role):
                return team_id

        logger.debug(f"No team configured for {candidate}, using {DEFAULT_TEAM_ID}")
        return DEFAULT_TEAM_ID

    def get_team_setting(self, team_id: str, key: str) -> Any:
        """Get a team-level setting, or None if unset."""
        team = self.data.get(team_id) or {}
        return (team.get("settings") or {}).get(key)
