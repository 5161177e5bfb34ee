"""Pytest fixtures: test CRM database and callers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from init_db import init_db

# company, status, expected_amount, owner_id, team_id, created_at
OPPORTUNITY_ROWS = [
    ("Acme", "new", "100.00", 7, None, "2024-01-10 09:00:00"),
    ("Beta", "closed_won", "250.50", 7, None, "2024-03-05 12:00:00"),
    ("Gamma", "closed_lost", "0", 8, 3, "2024-03-31 18:30:00"),
    ("Delta", "negotiation", "1000.00", 8, 3, "2024-06-01 10:00:00"),
    ("Epsilon", "closed_won", "500.00", 9, 4, "2024-06-15 10:00:00"),
]


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Create a temporary SQLite DB with the CRM schema and a few opportunities."""
    db_path = tmp_path / "test_crm.db"
    conn = sqlite3.connect(db_path)
    try:
        init_db(conn)
        cur = conn.cursor()
        cur.executemany(
            "INSERT INTO users (id, name, email, role) VALUES (?, ?, ?, ?)",
            [
                (1, "Admin", "admin@example.com", "admin"),
                (7, "Solo", "solo@example.com", "user"),
                (8, "Member", "member@example.com", "user"),
                (9, "Manager", "manager@example.com", "manager"),
            ],
        )
        cur.executemany(
            "INSERT INTO teams (id, name) VALUES (?, ?)",
            [(3, "Team Three"), (4, "Team Four")],
        )
        cur.executemany(
            "INSERT INTO team_members (team_id, user_id) VALUES (?, ?)",
            [(3, 8), (4, 9)],
        )
        cur.executemany(
            """
            INSERT INTO opportunities (
                company_name, status, expected_amount, owner_id, team_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            OPPORTUNITY_ROWS,
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def db_conn(test_db_path: Path):
    conn = sqlite3.connect(test_db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
