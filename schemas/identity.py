"""Caller identity attached to each authenticated request."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

PRIVILEGED_ROLES = frozenset({"admin", "manager"})


class Caller(BaseModel):
    id: int
    role: str = "user"
    current_team_id: Optional[int] = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
