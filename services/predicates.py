"""Composable filters over the opportunities table.

Scope resolution and plan filters are expressed as small predicate values and
only turned into SQL at the last moment, so neither depends on the query text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

# Columns a predicate may reference; anything else is a programming error.
FILTERABLE_COLUMNS = frozenset(
    {"status", "expected_amount", "created_at", "owner_id", "team_id"}
)


def _check_column(column: str) -> None:
    if column not in FILTERABLE_COLUMNS:
        raise ValueError(f"Column not filterable: {column}")


@dataclass(frozen=True)
class Equals:
    column: str
    value: Any


@dataclass(frozen=True)
class InSet:
    column: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Between:
    """Inclusive range; a None bound leaves that side open."""

    column: str
    low: Any = None
    high: Any = None


@dataclass(frozen=True)
class And:
    parts: Tuple["Predicate", ...] = ()


Predicate = Union[Equals, InSet, Between, And]

MATCH_ALL = And()


def all_of(*predicates: Optional[Predicate]) -> Predicate:
    """AND together the given predicates, skipping None and match-all parts."""
    parts: List[Predicate] = []
    for predicate in predicates:
        if predicate is None:
            continue
        if isinstance(predicate, And):
            parts.extend(predicate.parts)
        else:
            parts.append(predicate)
    if len(parts) == 1:
        return parts[0]
    return And(tuple(parts))


def to_sql(predicate: Predicate) -> Tuple[str, List[Any]]:
    """Render a predicate as a parameterized SQL boolean expression."""
    if isinstance(predicate, Equals):
        _check_column(predicate.column)
        return f"{predicate.column} = ?", [predicate.value]

    if isinstance(predicate, InSet):
        _check_column(predicate.column)
        if not predicate.values:
            return "0 = 1", []
        placeholders = ", ".join("?" for _ in predicate.values)
        return f"{predicate.column} IN ({placeholders})", list(predicate.values)

    if isinstance(predicate, Between):
        _check_column(predicate.column)
        if predicate.low is not None and predicate.high is not None:
            return f"{predicate.column} BETWEEN ? AND ?", [predicate.low, predicate.high]
        if predicate.low is not None:
            return f"{predicate.column} >= ?", [predicate.low]
        if predicate.high is not None:
            return f"{predicate.column} <= ?", [predicate.high]
        return "1 = 1", []

    if isinstance(predicate, And):
        if not predicate.parts:
            return "1 = 1", []
        clauses: List[str] = []
        params: List[Any] = []
        for part in predicate.parts:
            clause, part_params = to_sql(part)
            clauses.append(f"({clause})")
            params.extend(part_params)
        return " AND ".join(clauses), params

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def where_clause(predicate: Predicate) -> Tuple[str, List[Any]]:
    """WHERE clause and params, or ("", []) when the predicate matches everything."""
    if predicate == MATCH_ALL:
        return "", []
    clause, params = to_sql(predicate)
    return "WHERE " + clause, params
