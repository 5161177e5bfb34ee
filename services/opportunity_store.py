"""SQLite access for the opportunity store and team memberships.

Aggregate insight queries live in ``insight_executor``; this module keeps the
connection handling and the small lookups/writes the endpoints need.
"""

from __future__ import annotations

import sqlite3
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from config import DATABASE_PATH
from schemas.extraction import ExtractedOpportunity

# camelCase extraction field -> opportunities column
_OPPORTUNITY_COLUMNS = {
    "companyName": "company_name",
    "website": "website",
    "contactPerson": "contact_person",
    "contactPhone": "contact_phone",
    "contactWechat": "contact_wechat",
    "contactDepartment": "contact_department",
    "contactPosition": "contact_position",
    "companySize": "company_size",
    "region": "region",
    "industry": "industry",
    "status": "status",
    "priority": "priority",
    "expectedAmount": "expected_amount",
    "expectedCloseDate": "expected_close_date",
    "description": "description",
    "source": "source",
    "nextFollowUpAt": "next_follow_up_at",
    "nextFollowUpNote": "next_follow_up_note",
}


def get_db_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def team_ids_for_user(conn: sqlite3.Connection, user_id: int) -> List[int]:
    """Return the ids of every team the user belongs to."""
    cur = conn.execute(
        "SELECT team_id FROM team_members WHERE user_id = ? ORDER BY team_id",
        (user_id,),
    )
    return [row["team_id"] for row in cur.fetchall()]


def _normalize_amount(raw: Optional[str]) -> str:
    if raw is None:
        return "0"
    try:
        amount = Decimal(raw.replace(",", "").strip())
        if not amount.is_finite():
            return "0"
        return str(amount.quantize(Decimal("0.01")))
    except InvalidOperation:
        return "0"


def create_opportunity(
    conn: sqlite3.Connection,
    fields: ExtractedOpportunity,
    owner_id: int,
    team_id: Optional[int],
) -> Dict[str, Any]:
    """Insert an opportunity built from extracted fields and return the stored row."""
    values = fields.model_dump(exclude_none=True)
    if not values.get("companyName"):
        raise ValueError("companyName is required to create an opportunity")

    values["expectedAmount"] = _normalize_amount(values.get("expectedAmount"))
    if not values.get("status"):
        values.pop("status", None)
    if not values.get("priority"):
        values.pop("priority", None)

    columns = [_OPPORTUNITY_COLUMNS[key] for key in values]
    params: List[Any] = list(values.values())
    columns += ["owner_id", "team_id"]
    params += [owner_id, team_id]

    placeholders = ", ".join("?" for _ in columns)
    cur = conn.execute(
        f"INSERT INTO opportunities ({', '.join(columns)}) VALUES ({placeholders})",
        params,
    )
    conn.commit()

    row = conn.execute(
        "SELECT * FROM opportunities WHERE id = ?", (cur.lastrowid,)
    ).fetchone()
    return dict(row)
