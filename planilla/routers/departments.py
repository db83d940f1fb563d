"""
Departments, membership and salary assignment.
Each handler validates its input, makes exactly one routine call and maps the
routine's vendor codes to a status; invalid input never reaches the database.
"""
from decimal import Decimal
from typing import Annotated, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from planilla import schemas
from planilla.coercion import require_id, to_decimal, to_id_list, to_int, to_whole
from planilla.database import Gateway, get_gateway
from planilla.exceptions import (
    ALREADY_MEMBER,
    DUPLICATE,
    PRECONDITION_FAILED,
    UNIQUE_VIOLATION,
    UNKNOWN_EMPLOYEE,
    ConflictError,
    GatewayError,
    NotFoundError,
    PreconditionError,
    ValidationError,
    translate_db_error,
)

router = APIRouter(prefix="/department", tags=["departments"])

CardIDQuery = Annotated[Optional[str], Query(alias="cardID", description="Employee card ID (cédula)")]
DepartmentIDQuery = Annotated[Optional[str], Query(alias="departmentID")]
IDCardQuery = Annotated[Optional[str], Query(alias="IDCard", description="Employee card ID (cédula)")]

CONTRIBUTION_MIN = Decimal("0")
CONTRIBUTION_MAX = Decimal("5")

SALARY_TYPES = ("SMALLINT", "INT", "SMALLINT", "BOOLEAN", "NUMERIC")
EMPLOYEE_SALARY_TYPES = ("INTEGER",) + SALARY_TYPES


def _salary_terms(body: schemas.SalaryAssignment) -> Tuple[int, Optional[int], Optional[int], Optional[bool], Optional[Decimal]]:
    """Validate the shared salary fields; returns the positional routine arguments."""
    department_id = require_id(
        to_int(body.department_id, "departmentID"), "Department ID is required", "departmentID"
    )
    salary = to_decimal(body.salary, "salary")
    children = to_int(body.children_quantity, "childrenQuantity")
    contribution = to_decimal(body.contribution_percentage, "contributionPercentage")
    if salary is not None and salary <= 0:
        raise ValidationError("Salary must be greater than 0", kind=ValidationError.OUT_OF_RANGE, field="salary")
    if contribution is not None and not (CONTRIBUTION_MIN <= contribution <= CONTRIBUTION_MAX):
        raise ValidationError(
            "Contribution percentage must be between 0 and 5",
            kind=ValidationError.OUT_OF_RANGE,
            field="contributionPercentage",
        )
    return department_id, to_whole(salary), children, body.has_spouse, contribution


@router.get("")
async def get_departments(
    card_id: CardIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """All departments, or only the ones the employee belongs to when cardID is given."""
    card = to_int(card_id, "cardID")
    try:
        if card:
            return await gateway.fetch("getdepartamentos", [card])
        return await gateway.fetch("getdepartamentos")
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting departments")


@router.post("", status_code=201, response_model=schemas.MessageResponse)
async def create_department(
    body: schemas.DepartmentCreate,
    gateway: Gateway = Depends(get_gateway),
):
    name = (body.department_name or "").strip()
    if not name:
        raise ValidationError("Department name is required", field="departmentName")
    try:
        await gateway.call("insertdepartamento", [name])
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {
                DUPLICATE: ConflictError("Department name already exists"),
                UNIQUE_VIOLATION: ConflictError("Department name already exists"),
            },
            "Error creating department",
        )
    return {"message": "Department created successfully"}


@router.patch("", response_model=schemas.MessageResponse)
async def set_department_salary(
    body: schemas.SalaryAssignment,
    gateway: Gateway = Depends(get_gateway),
):
    """Salary terms for every member of a department; contributionPercentage must lie in [0, 5]."""
    args = _salary_terms(body)
    try:
        await gateway.call("asignarsalariodepartamento", args, SALARY_TYPES)
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {PRECONDITION_FAILED: PreconditionError("Department does not exist")},
            "Error assigning salary to department",
        )
    return {"message": "Salary assigned to department successfully"}


@router.put("", response_model=schemas.MessageResponse)
async def insert_employees_into_department(
    body: schemas.DepartmentMembersInsert,
    gateway: Gateway = Depends(get_gateway),
):
    missing = "Department id or employee list is required"
    department_id = require_id(to_int(body.department_id, "departmentID"), missing, "departmentID")
    try:
        card_ids = to_id_list(body.card_ids, "cardIDs")
    except ValidationError as exc:
        if exc.kind != ValidationError.MISSING_REQUIRED:
            raise
        raise ValidationError(missing, field="cardIDs")
    try:
        await gateway.call("insertempleadosdepartamentos", [department_id, card_ids])
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {
                PRECONDITION_FAILED: PreconditionError("Department does not exist"),
                UNKNOWN_EMPLOYEE: PreconditionError("One or more employee IDs do not exist"),
                ALREADY_MEMBER: PreconditionError("One of the employees already belongs to the department"),
            },
            "Error inserting employees into department",
        )
    return {"message": "Employees inserted successfully"}


@router.get("/employee")
async def get_employee_salary(
    card_id: CardIDQuery = None,
    department_id: DepartmentIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Salary data of one employee within one department."""
    required = "cardID and departmentID are required"
    card = require_id(to_int(card_id, "cardID"), required, "cardID")
    department = require_id(to_int(department_id, "departmentID"), required, "departmentID")
    try:
        rows = await gateway.fetch("obtenerdatosalarialcolaborador", [card, department])
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting salary data")
    if not rows:
        raise NotFoundError("No salary data found for this employee and department")
    return rows[0]


@router.patch("/employee", response_model=schemas.MessageResponse)
async def set_employee_salary(
    body: schemas.SalaryAssignment,
    card_id: CardIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    card = require_id(to_int(card_id, "cardID"), "Employee card ID is required", "cardID")
    args = (card,) + _salary_terms(body)
    try:
        await gateway.call("asignarsalarioporcedula", args, EMPLOYEE_SALARY_TYPES)
    except GatewayError as exc:
        raise translate_db_error(
            exc,
            {
                PRECONDITION_FAILED: PreconditionError(
                    f"The employee with card ID {card} is not registered in the department"
                ),
            },
            "Error assigning salary to employee in department",
        )
    return {"message": "Salary assigned to employee in department successfully"}


@router.get("/employee/name")
async def get_employee_name(
    id_card: IDCardQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    card = require_id(to_int(id_card, "IDCard"), "IDCard is required", "IDCard")
    try:
        rows = await gateway.fetch("getempleadonombre", [card])
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting employee name")
    if not rows:
        raise NotFoundError("Employee not found")
    return rows[0]


@router.get("/totals")
async def get_department_totals(
    department_id: DepartmentIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """
    Payroll totals per department, optionally for a single department.

    gettotalesdepartamentos is an assumed routine name; check it against the deployed schema.
    """
    department = to_int(department_id, "departmentID")
    try:
        if department:
            return await gateway.fetch("gettotalesdepartamentos", [department], ["SMALLINT"])
        return await gateway.fetch("gettotalesdepartamentos")
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting department totals")


@router.get("/all-employees")
async def get_department_employees(
    department_id: DepartmentIDQuery = None,
    gateway: Gateway = Depends(get_gateway),
):
    """
    Every department membership, optionally for a single department.

    getempleadosdepartamentos is an assumed routine name; check it against the deployed schema.
    """
    department = to_int(department_id, "departmentID")
    try:
        if department:
            return await gateway.fetch("getempleadosdepartamentos", [department], ["SMALLINT"])
        return await gateway.fetch("getempleadosdepartamentos")
    except GatewayError as exc:
        raise translate_db_error(exc, {}, "Error getting department employees")
