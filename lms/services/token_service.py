"""Identity tokens: HS256 JWTs carrying the caller's tenant coordinates.

Claims:
    sub       user id (OrgUser or SuperAdmin)
    role      admin | subOrgAdmin | educator | learner | superadmin
    orgId     owning organization (omitted for super-admins)
    dbName    tenant database name (omitted for super-admins)
    subOrgId  sub-organization scope, when the user has one
    iss, aud, iat, exp, jti

Tenant resolution trusts ``dbName`` from a verified token, so the
signing secret is the whole boundary between tenants.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from lms.core.config import SETTINGS

ALGORITHM = "HS256"
ISSUER = "lms-api"
AUDIENCE = "lms-api"


def create_identity_token(
    *,
    user_id: str,
    role: str,
    org_id: str | None = None,
    db_name: str | None = None,
    sub_org_id: str | None = None,
    ttl_minutes: int | None = None,
) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes or SETTINGS.jwt_ttl_min),
        "jti": str(uuid.uuid4()),
    }
    if org_id is not None:
        payload["orgId"] = org_id
    if db_name is not None:
        payload["dbName"] = db_name
    if sub_org_id is not None:
        payload["subOrgId"] = sub_org_id
    return jwt.encode(payload, SETTINGS.jwt_secret, algorithm=ALGORITHM)


def decode_identity_token(token: str) -> dict[str, Any]:
    """Verify signature and registered claims, return the payload.

    The algorithm is pinned so a token cannot pick its own verifier.
    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        SETTINGS.jwt_secret,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "role", "exp", "iat", "jti"]},
    )
