"""Bearer token helpers producing a verified operator principal."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from guestpay.core.config import get_settings
from guestpay.core.principal import Operator

security = HTTPBearer()

OPERATOR_ROLES = {"staff", "manager", "admin", "super_admin"}


def create_access_token(
    operator_id: str,
    username: str,
    role: str = "staff",
    expires_delta: Optional[timedelta] = None,
) -> str:
    settings = get_settings()
    expire_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": operator_id,
        "username": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + expire_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Operator:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials") from exc

    operator_id = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")
    if not all([operator_id, username, role]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return Operator(operator_id=operator_id, username=username, role=role)


async def get_current_operator(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Operator:
    operator = decode_access_token(credentials.credentials)
    if operator.role not in OPERATOR_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operator role required")
    return operator
