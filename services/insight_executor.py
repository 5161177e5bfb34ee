"""Deterministic execution of an InsightPlan against the opportunities table."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from schemas.insight import InsightPlan, Timeframe
from services.predicates import Between, InSet, Predicate, all_of, where_clause

InsightResult = Union[Dict[str, Any], List[Dict[str, Any]]]

# created_at is stored as UTC text in this format, so string comparison is chronological.
_STORED_FORMAT = "%Y-%m-%d %H:%M:%S"


class UnsupportedIntent(Exception):
    """Raised when a plan carries an intent this executor cannot answer."""


def _to_stored(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(_STORED_FORMAT)


def _parse_bound(raw: str, end_of_day: bool = False) -> str:
    """Parse an ISO date/datetime bound; a date-only end bound covers the whole day.

    Raises ValueError for strings that are not ISO dates.
    """
    raw = raw.strip()
    parsed = datetime.fromisoformat(raw)
    if end_of_day and len(raw) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return _to_stored(parsed)


def timeframe_predicate(
    timeframe: Optional[Timeframe],
    now: Optional[datetime] = None,
) -> Optional[Predicate]:
    """Turn a plan timeframe into a created_at range, or None for no constraint.

    Incomplete timeframes (last_days without a positive day count, between
    without both bounds) are treated as all_time.
    """
    if timeframe is None or timeframe.scope == "all_time":
        return None

    if timeframe.scope == "last_days":
        if not timeframe.lastDays or timeframe.lastDays <= 0:
            return None
        now = now or datetime.now(timezone.utc)
        try:
            cutoff = now - timedelta(days=timeframe.lastDays)
        except OverflowError:
            # window reaches past datetime.min, so nothing is excluded
            return None
        return Between("created_at", low=_to_stored(cutoff))

    if timeframe.scope == "between":
        if not timeframe.startDate or not timeframe.endDate:
            return None
        return Between(
            "created_at",
            low=_parse_bound(timeframe.startDate),
            high=_parse_bound(timeframe.endDate, end_of_day=True),
        )

    return None


def build_predicate(
    scope: Predicate,
    plan: InsightPlan,
    now: Optional[datetime] = None,
) -> Predicate:
    """Scope AND status filter AND timeframe filter."""
    filters = plan.filters
    status_filter = None
    timeframe = None
    if filters is not None:
        if filters.status:
            status_filter = InSet("status", tuple(filters.status))
        timeframe = filters.timeframe
    return all_of(scope, status_filter, timeframe_predicate(timeframe, now))


def execute(
    conn: sqlite3.Connection,
    scope: Predicate,
    plan: InsightPlan,
    now: Optional[datetime] = None,
) -> InsightResult:
    """Run the single aggregate query the plan asks for."""
    where_sql, params = where_clause(build_predicate(scope, plan, now))

    if plan.intent == "count_opportunities":
        row = conn.execute(
            f"SELECT COUNT(*) FROM opportunities {where_sql}", params
        ).fetchone()
        return {"value": int(row[0] or 0)}

    if plan.intent == "sum_expected_amount":
        # expected_amount is stored as text with two decimals
        row = conn.execute(
            f"""
            SELECT COALESCE(SUM(CAST(expected_amount AS REAL)), 0)
            FROM opportunities
            {where_sql}
            """,
            params,
        ).fetchone()
        return {"value": round(float(row[0] or 0), 2)}

    if plan.intent == "status_breakdown":
        rows = conn.execute(
            f"""
            SELECT status, COUNT(*)
            FROM opportunities
            {where_sql}
            GROUP BY status
            """,
            params,
        ).fetchall()
        return [{"status": r[0], "count": int(r[1])} for r in rows]

    raise UnsupportedIntent(f"Unsupported intent type: {plan.intent}")
