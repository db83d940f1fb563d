"""Fortnight (biweekly pay period) generation and the tax table lookup."""
import logging
from decimal import Decimal
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from planilla import schemas
from planilla.coercion import require_id, to_int, to_timestamp
from planilla.config import Settings, get_settings
from planilla.database import Gateway, get_gateway
from planilla.exceptions import (
    PRECONDITION_FAILED,
    GatewayError,
    PreconditionError,
    ValidationError,
    translate_db_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fortnight", tags=["fortnights"])


def _rejected(exc: GatewayError) -> dict:
    # RAISE EXCEPTION in the fortnight routines carries a user-facing reason
    return {PRECONDITION_FAILED: PreconditionError(exc.message)}


@router.post("", status_code=201, response_model=schemas.MessageResponse)
async def insert_fortnight(
    body: schemas.FortnightCreate,
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    timestamp = to_timestamp(body.timestamp, "timestamp", settings.invalid_timestamp_status)
    try:
        await gateway.call("insertquincena", [timestamp], ["TIMESTAMP"])
    except GatewayError as exc:
        raise translate_db_error(exc, _rejected(exc), "Error inserting fortnight")
    logger.info("fortnight inserted at %s", timestamp.isoformat())
    return {"message": "Fortnight inserted successfully"}


@router.put("", status_code=201, response_model=schemas.MessageResponse)
async def insert_n_fortnights(
    body: schemas.FortnightBatchCreate,
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Generate n consecutive fortnights starting at timestamp."""
    timestamp = to_timestamp(body.timestamp, "timestamp", settings.invalid_timestamp_status)
    n = require_id(to_int(body.n, "n"), "n (number of fortnights) is required", "n")
    if n < 1:
        raise ValidationError("n must be at least 1", kind=ValidationError.OUT_OF_RANGE, field="n")
    try:
        await gateway.call("insertnquincenas", [n, timestamp], ["INT", "TIMESTAMP"])
    except GatewayError as exc:
        raise translate_db_error(exc, _rejected(exc), "Error inserting fortnights")
    logger.info("%s fortnights inserted from %s", n, timestamp.isoformat())
    return {"message": "Fortnights inserted successfully"}


@router.get("/calculate")
async def calculate_tax(
    salary: Annotated[Optional[str], Query(description="Monthly salary")] = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Tax breakdown computed by calculate_tax for a whole-unit salary."""
    amount = to_int(salary, "salary")
    try:
        return await gateway.fetch(
            "calculate_tax",
            [Decimal(amount) if amount is not None else None],
            ["NUMERIC"],
        )
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error calculating tax")
