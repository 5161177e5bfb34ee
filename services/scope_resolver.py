"""Decide which opportunities a caller is allowed to query."""

from __future__ import annotations

from typing import Callable, Iterable

from schemas.identity import Caller
from services.predicates import MATCH_ALL, Equals, InSet, Predicate


def resolve_scope(caller: Caller, team_ids_for: Callable[[int], Iterable[int]]) -> Predicate:
    """Return the access predicate for ``caller``.

    A selected team always wins, even for admins. Otherwise admins and managers
    see everything, members see their teams, and everyone else sees only the
    opportunities they own. ``team_ids_for`` is only consulted in the last case.
    """
    if caller.current_team_id is not None:
        return Equals("team_id", caller.current_team_id)

    if caller.is_privileged:
        return MATCH_ALL

    team_ids = tuple(t for t in team_ids_for(caller.id) if t is not None)
    if team_ids:
        return InSet("team_id", team_ids)
    return Equals("owner_id", caller.id)
