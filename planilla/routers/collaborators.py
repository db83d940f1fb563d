"""Collaborator (employee) lookup by card ID."""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from planilla.coercion import require_id, to_int
from planilla.database import Gateway, get_gateway
from planilla.exceptions import PRECONDITION_FAILED, GatewayError, PreconditionError, translate_db_error

router = APIRouter(prefix="/collaborator", tags=["collaborators"])

EMPLOYEE_NOT_FOUND = "The employee does not exist"


@router.get("")
async def get_collaborator_name(
    card_id: Annotated[Optional[str], Query(alias="cardID", description="Employee card ID (cédula)")] = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Unlike /department/employee/name, an unknown card ID answers 400, not 404."""
    card = require_id(to_int(card_id, "cardID"), "A card ID must be provided", "cardID")
    try:
        rows = await gateway.fetch("getempleadonombre", [card])
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {PRECONDITION_FAILED: PreconditionError(EMPLOYEE_NOT_FOUND)},
            "Error getting collaborator",
        )
    if not rows:
        raise PreconditionError(EMPLOYEE_NOT_FOUND)
    return rows[0]
