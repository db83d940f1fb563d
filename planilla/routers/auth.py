"""Registration and login: bcrypt-hashed credentials, one-hour bearer token in return."""
import logging

from fastapi import APIRouter, Depends

from planilla import schemas
from planilla.config import Settings, get_settings
from planilla.database import Gateway, get_gateway
from planilla.exceptions import (
    DUPLICATE,
    UNIQUE_VIOLATION,
    AppError,
    ConflictError,
    GatewayError,
    UnexpectedError,
    ValidationError,
    translate_db_error,
)
from planilla.security import hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


@router.post("/register", response_model=schemas.TokenResponse)
async def register(
    body: schemas.RegisterRequest,
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Create the user through register_user and log them in straight away."""
    if not body.username or not body.email or not body.password:
        raise ValidationError("username, email and password are required")
    password_hash = await hash_password(body.password)
    try:
        user_id = await gateway.scalar("public.register_user", [body.username, body.email, password_hash])
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {
                DUPLICATE: ConflictError("A user with that email already exists"),
                UNIQUE_VIOLATION: ConflictError("A user with that email already exists"),
            },
            "Server error",
        )
    if user_id is None:
        logger.error("register_user returned no id for %s", body.email)
        raise UnexpectedError("Server error")
    logger.info("registered user %s", user_id)
    return schemas.TokenResponse(token=issue_token(user_id, settings.jwt_secret))


@router.post("/login", response_model=schemas.TokenResponse)
async def login(
    body: schemas.LoginRequest,
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Unknown email and wrong password give the same 400 so accounts cannot be enumerated."""
    if not body.email or not body.password:
        raise AppError(INVALID_CREDENTIALS, status_code=400)
    try:
        rows = await gateway.fetch("authenticate_user", [body.email])
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Server error")
    if not rows:
        raise AppError(INVALID_CREDENTIALS, status_code=400)
    row = rows[0]
    if not await verify_password(body.password, row.get("p_password_hash")):
        raise AppError(INVALID_CREDENTIALS, status_code=400)
    return schemas.TokenResponse(token=issue_token(row.get("p_user_id"), settings.jwt_secret))
