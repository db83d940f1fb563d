"""
Credentials and the bearer-token guard.

Passwords: bcrypt (cost 10) through passlib, run in the threadpool.
Tokens: HS256 via PyJWT, valid for exactly one hour, subject = user id.

The guard is a strict fork: evaluate_bearer returns either Forward (request
continues with the decoded claims) or Halt (response is 401/403), never both.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import jwt
from fastapi import Depends, Header, Request
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from planilla.config import Settings, get_settings
from planilla.exceptions import AuthError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


async def hash_password(password: str) -> str:
    return await run_in_threadpool(pwd_context.hash, password)


async def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return await run_in_threadpool(pwd_context.verify, password, password_hash)
    except ValueError:
        # Stored value is not a recognisable bcrypt hash
        logger.warning("stored password hash could not be parsed")
        return False


def issue_token(user_id: Any, secret: str, now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "id": user_id,
        "iat": issued_at,
        "exp": issued_at + TOKEN_TTL,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> Dict[str, Any]:
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


class GuardState(str, Enum):
    NO_TOKEN = "NO_TOKEN"
    TOKEN_PRESENT_UNVERIFIED = "TOKEN_PRESENT_UNVERIFIED"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class Forward:
    claims: Dict[str, Any]
    state: GuardState = field(default=GuardState.VERIFIED)


@dataclass(frozen=True)
class Halt:
    status_code: int
    message: str
    state: GuardState


GuardResult = Union[Forward, Halt]


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def evaluate_bearer(authorization: Optional[str], secret: str) -> GuardResult:
    token = _bearer_token(authorization)
    if token is None:
        return Halt(401, "Access denied, no token provided.", GuardState.NO_TOKEN)
    # TOKEN_PRESENT_UNVERIFIED: signature and expiry decide the outcome
    try:
        claims = decode_token(token, secret)
    except jwt.ExpiredSignatureError:
        return Halt(403, "Token expired.", GuardState.REJECTED)
    except jwt.InvalidTokenError:
        return Halt(403, "Invalid token.", GuardState.REJECTED)
    return Forward(claims)


async def require_token(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    result = evaluate_bearer(authorization, settings.jwt_secret)
    if isinstance(result, Halt):
        logger.info("guard halted %s %s: %s", request.method, request.url.path, result.state.value)
        raise AuthError(result.message, status_code=result.status_code)
    request.state.user = result.claims
    return result.claims
