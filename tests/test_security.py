import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core.security import get_principal, hash_password, require_roles, verify_password
from conftest import make_token


def test_password_hash_round_trip():
    h = hash_password("s3cret-pass")
    assert h != "s3cret-pass"
    assert verify_password("s3cret-pass", h)
    assert not verify_password("wrong", h)
    assert not verify_password("s3cret-pass", "not-a-hash")


def test_anonymous_principal_is_system():
    p = get_principal(None)
    assert p.username == "system"
    assert not p.is_authenticated


def test_token_claims_become_principal():
    creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials=make_token("manager", sub="u-7", email="m@x.io"))
    p = get_principal(creds)
    assert (p.user_id, p.username, p.role) == ("u-7", "m@x.io", "MANAGER")


def test_bad_token_is_401():
    with pytest.raises(HTTPException) as exc:
        get_principal(HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage"))
    assert exc.value.status_code == 401


def test_require_roles():
    dep = require_roles("ADMIN")
    creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials=make_token("OPERATOR"))
    with pytest.raises(HTTPException) as exc:
        dep(get_principal(creds))
    assert exc.value.status_code == 403
