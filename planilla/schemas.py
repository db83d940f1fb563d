"""Request bodies - Pydantic. Fields stay loosely typed; planilla.coercion turns them into typed values."""
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, StrictBool

# Numbers may arrive as JSON numbers or as strings ("12", "12.5")
RawNumber = Optional[Union[int, float, str]]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------- auth ----------
class RegisterRequest(_Body):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(_Body):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    token: str


# ---------- departments ----------
class DepartmentCreate(_Body):
    department_name: Optional[str] = Field(None, alias="departmentName")


class SalaryAssignment(_Body):
    """Salary terms shared by department-wide and per-employee assignment."""
    department_id: RawNumber = Field(None, alias="departmentID")
    salary: RawNumber = None
    children_quantity: RawNumber = Field(None, alias="childrenQuantity")
    # true/false only; "yes" or "1" is a 400, not a coerced boolean
    has_spouse: Optional[StrictBool] = Field(None, alias="hasSpouse")
    contribution_percentage: RawNumber = Field(None, alias="contributionPercentage")


class DepartmentMembersInsert(_Body):
    department_id: RawNumber = Field(None, alias="departmentID")
    # Validated in the handler so a missing/empty list is a 400 with the membership message
    card_ids: Optional[Any] = Field(None, alias="cardIDs")


# ---------- fortnights ----------
class FortnightCreate(_Body):
    timestamp: Optional[str] = None


class FortnightBatchCreate(_Body):
    timestamp: Optional[str] = None
    n: RawNumber = None


class MessageResponse(BaseModel):
    message: str
