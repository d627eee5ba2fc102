from __future__ import annotations

from uuid import uuid4

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from app.services import token_service
from tests.conftest import auth, mint_token


def _progress_url() -> str:
    return f"/v1/courses/{uuid4()}/progress"


# ---- invalid / missing token cases ----


def test_protected_endpoint_rejects_missing_token(client: TestClient) -> None:
    resp = client.get(_progress_url())
    assert resp.status_code == 401


def test_protected_endpoint_rejects_garbage_token(client: TestClient) -> None:
    resp = client.get(_progress_url(), headers=auth("total-garbage"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_protected_endpoint_rejects_expired_token(client: TestClient) -> None:
    expired = token_service.create_access_token(sub=str(uuid4()), ttl_minutes=-1)
    resp = client.get(_progress_url(), headers=auth(expired))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_protected_endpoint_rejects_foreign_signature(client: TestClient) -> None:
    foreign_key = ec.generate_private_key(ec.SECP256R1())
    forged = jwt.encode(
        {
            "sub": str(uuid4()),
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "exp": 4_000_000_000,
            "iat": 1_700_000_000,
            "jti": "x",
        },
        foreign_key,
        algorithm="ES256",
    )
    resp = client.get(_progress_url(), headers=auth(forged))
    assert resp.status_code == 401


def test_protected_endpoint_rejects_non_uuid_subject(client: TestClient) -> None:
    token = token_service.create_access_token(sub="tee")
    resp = client.get(_progress_url(), headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token subject"


def test_token_defaults_to_student_role() -> None:
    claims = token_service.decode_access_token(mint_token())
    assert claims["roles"] == ["student"]


# ---- role checks ----

_RBAC_CASES = [
    # (role, expected_status) for revoking an unknown certificate
    ("admin", 404),
    ("student", 403),
    ("instructor", 403),
    (None, 401),
]


@pytest.mark.parametrize(("role", "expected"), _RBAC_CASES)
def test_revoke_requires_admin(client: TestClient, role: str | None, expected: int) -> None:
    headers = auth(mint_token(roles=[role])) if role else {}
    resp = client.post("/v1/certificates/deadbeef/revoke", headers=headers)
    assert resp.status_code == expected
