"""Create the CRM SQLite database, seed demo users/teams and load opportunities.

Usage:
    python init_db.py

This will:
- Create the `users`, `teams`, `team_members` and `opportunities` tables
- Insert demo users, teams and memberships
- Load opportunities from the CSV file, if one exists
- Create indexes for the insight queries
"""

import csv
import datetime as dt
import logging
import sqlite3
from pathlib import Path

from config import DATABASE_PATH, LOG_LEVEL, OPPORTUNITY_CSV_PATH

logger = logging.getLogger(__name__)

DEMO_USERS = [
    # id, name, email, role
    (1, "Admin", "admin@example.com", "admin"),
    (2, "Zhang San", "zhangsan@example.com", "user"),
    (3, "Li Si", "lisi@example.com", "user"),
    (4, "Wang Wu", "wangwu@example.com", "user"),
    (5, "Zhao Liu", "zhaoliu@example.com", "manager"),
]

DEMO_TEAMS = [
    (1, "Sales East", "East China sales"),
    (2, "Sales South", "South China sales"),
]

DEMO_MEMBERSHIPS = [
    # team_id, user_id, role
    (1, 2, "owner"),
    (1, 3, "member"),
    (2, 5, "owner"),
]


def parse_created_at(raw: str) -> str:
    """Normalize a CSV timestamp into the stored 'YYYY-MM-DD HH:MM:SS' form.

    Accepts ISO dates ('2024-03-05'), ISO datetimes and 'YYYY/MM/DD HH:MM'.
    """
    raw = raw.strip()
    for fmt in ("%Y/%m/%d %H:%M", "%Y/%m/%d"):
        try:
            return dt.datetime.strptime(raw, fmt).strftime("%Y-%m-%d %H:%M:%S")
        except ValueError:
            continue
    parsed = dt.datetime.fromisoformat(raw)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def init_db(conn: sqlite3.Connection) -> None:
    """Create the CRM tables (dropping if they exist) and indexes."""
    cur = conn.cursor()

    for table in ("opportunities", "team_members", "teams", "users"):
        cur.execute(f"DROP TABLE IF EXISTS {table}")

    cur.execute(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT,
            email TEXT NOT NULL UNIQUE,
            role TEXT NOT NULL DEFAULT 'user',
            status TEXT NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE teams (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE team_members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            team_id INTEGER NOT NULL REFERENCES teams(id),
            user_id INTEGER NOT NULL REFERENCES users(id),
            role TEXT NOT NULL DEFAULT 'member',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (team_id, user_id)
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE opportunities (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_name TEXT NOT NULL,
            website TEXT,
            contact_person TEXT,
            contact_phone TEXT,
            contact_wechat TEXT,
            contact_department TEXT,
            contact_position TEXT,
            company_size TEXT,
            region TEXT,
            industry TEXT,
            progress TEXT NOT NULL DEFAULT 'initial',
            status TEXT NOT NULL DEFAULT 'new',
            priority TEXT NOT NULL DEFAULT 'normal',
            description TEXT,
            source TEXT,
            expected_amount TEXT NOT NULL DEFAULT '0',
            expected_close_date TEXT,
            next_follow_up_at TEXT,
            next_follow_up_note TEXT,
            owner_id INTEGER NOT NULL REFERENCES users(id),
            team_id INTEGER REFERENCES teams(id),
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    # Indexes backing the scope and timeframe filters
    cur.execute("CREATE INDEX idx_opportunities_owner ON opportunities(owner_id)")
    cur.execute("CREATE INDEX idx_opportunities_team ON opportunities(team_id)")
    cur.execute("CREATE INDEX idx_opportunities_status ON opportunities(status)")
    cur.execute("CREATE INDEX idx_opportunities_created ON opportunities(created_at)")
    cur.execute("CREATE INDEX idx_team_members_user ON team_members(user_id)")

    conn.commit()


def seed_demo(conn: sqlite3.Connection) -> None:
    """Insert demo users, teams and memberships."""
    cur = conn.cursor()
    cur.executemany(
        "INSERT INTO users (id, name, email, role) VALUES (?, ?, ?, ?)", DEMO_USERS
    )
    cur.executemany(
        "INSERT INTO teams (id, name, description) VALUES (?, ?, ?)", DEMO_TEAMS
    )
    cur.executemany(
        "INSERT INTO team_members (team_id, user_id, role) VALUES (?, ?, ?)",
        DEMO_MEMBERSHIPS,
    )
    conn.commit()
    logger.info(
        "Seeded %d users, %d teams, %d memberships",
        len(DEMO_USERS),
        len(DEMO_TEAMS),
        len(DEMO_MEMBERSHIPS),
    )


def load_opportunities_csv(conn: sqlite3.Connection, csv_path: Path) -> int:
    """Load all rows from the CSV into the opportunities table."""
    cur = conn.cursor()

    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        expected_fields = [
            "company_name",
            "status",
            "expected_amount",
            "owner_id",
            "team_id",
            "created_at",
        ]
        missing = [c for c in expected_fields if c not in (reader.fieldnames or [])]
        if missing:
            raise RuntimeError(
                f"CSV is missing expected columns: {', '.join(missing)}; "
                f"found: {reader.fieldnames}"
            )

        rows = []
        for row in reader:
            try:
                team_raw = (row["team_id"] or "").strip()
                rows.append(
                    (
                        row["company_name"].strip(),
                        row["status"].strip() or "new",
                        str(float(row["expected_amount"] or 0)),
                        int(row["owner_id"]),
                        int(team_raw) if team_raw else None,
                        parse_created_at(row["created_at"]),
                    )
                )
            except Exception as exc:  # noqa: BLE001
                raise RuntimeError(f"Failed to parse row: {row}") from exc

    cur.executemany(
        """
        INSERT INTO opportunities (
            company_name, status, expected_amount, owner_id, team_id, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    conn.commit()
    logger.info("Inserted %d opportunities from %s", len(rows), csv_path)
    return len(rows)


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")

    csv_path = Path(OPPORTUNITY_CSV_PATH)
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Creating SQLite DB at: %s", db_path)

    conn = sqlite3.connect(db_path)
    try:
        init_db(conn)
        seed_demo(conn)
        if csv_path.exists():
            load_opportunities_csv(conn, csv_path)
        else:
            logger.warning("No opportunity CSV at %s; database has no opportunities", csv_path)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
