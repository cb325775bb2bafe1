from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from guestpay.core.security import create_access_token, decode_access_token, get_current_operator


def credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_token_round_trip():
    operator = decode_access_token(create_access_token("op-1", "frontdesk", role="manager"))

    assert operator.id == "op-1"
    assert operator.username == "frontdesk"
    assert operator.role == "manager"
    assert not operator.is_admin()


def test_expired_token_rejected():
    token = create_access_token("op-1", "frontdesk", expires_delta=timedelta(minutes=-1))

    with pytest.raises(HTTPException) as excinfo:
        decode_access_token(token)

    assert excinfo.value.status_code == 401


def test_garbage_token_rejected():
    with pytest.raises(HTTPException) as excinfo:
        decode_access_token("not-a-jwt")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_non_operator_role_forbidden():
    token = create_access_token("guest-1", "guest", role="guest")

    with pytest.raises(HTTPException) as excinfo:
        await get_current_operator(credentials(token))

    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
async def test_operator_role_accepted():
    operator = await get_current_operator(credentials(create_access_token("op-2", "night", role="admin")))

    assert operator.is_admin()
