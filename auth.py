"""Bearer-token identity for the API.

Tokens are signed with ``itsdangerous`` and carry the user id and role. The
optional ``Teamid`` header selects the team the caller is currently working in.
"""

from __future__ import annotations

from typing import Optional

from flask import Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import ValidationError

from config import SECRET_KEY, TOKEN_MAX_AGE
from schemas.identity import Caller

_SALT = "crm-auth"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(SECRET_KEY, salt=_SALT)


def issue_token(user_id: int, role: str = "user") -> str:
    return _serializer().dumps({"id": user_id, "role": role})


def _parse_team_id(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        team_id = int(raw.strip())
    except ValueError:
        return None
    return team_id if team_id > 0 else None


def caller_from_request(req: Request) -> Optional[Caller]:
    """Return the authenticated caller, or None when the token is absent or invalid."""
    auth_header = req.headers.get("Authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    try:
        # SignatureExpired is a BadSignature subclass
        claims = _serializer().loads(parts[1], max_age=TOKEN_MAX_AGE)
    except BadSignature:
        return None

    if not isinstance(claims, dict):
        return None
    try:
        return Caller(
            id=claims.get("id"),
            role=claims.get("role") or "user",
            current_team_id=_parse_team_id(req.headers.get("Teamid")),
        )
    except ValidationError:
        return None
