"""
API request and response models for the Budget Tracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
budget/models.py, which own the internal domain representation. Route
handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

import re
from datetime import date
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import User
from budget.models import BudgetAuthority, Commitment, Expenditure, MTWReserve

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    admin = "admin"
    user = "user"
    readonly = "readonly"


class CommitmentTypeEnum(str, Enum):
    traditional_hap = "traditional_hap"
    public_housing = "public_housing"
    capital_fund = "capital_fund"
    local_non_traditional = "local_non_traditional"
    hcv_admin = "hcv_admin"
    other = "other"


class CommitmentStatusEnum(str, Enum):
    planned = "planned"
    committed = "committed"
    obligated = "obligated"
    partially_expended = "partially_expended"
    fully_expended = "fully_expended"
    cancelled = "cancelled"


class ExpenditureTypeEnum(str, Enum):
    traditional_hap = "traditional_hap"
    public_housing = "public_housing"
    capital_fund = "capital_fund"
    local_non_traditional = "local_non_traditional"
    hcv_admin = "hcv_admin"
    other_1 = "other_1"
    other_2 = "other_2"
    other_3 = "other_3"


# ---------------------------------------------------------------------------
# Shared field rules
# ---------------------------------------------------------------------------

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _check_password_strength(value: str) -> str:
    """Require at least one letter and one digit (length is checked by Field)."""
    if not re.search(r"[A-Za-z]", value):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    message: str = "Server is running"


# ---------------------------------------------------------------------------
# Auth and users
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password_strength(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1, max_length=100)


class UserResponse(BaseModel):
    """Public view of a user. The password hash never leaves the server."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class LoginResponse(BaseModel):
    """Response body for a successful POST /api/auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserCreate(RegisterRequest):
    """Request body for POST /api/users (admin only).

    Unlike self-registration, an admin may choose the new account's role.
    """

    role: RoleEnum = RoleEnum.user


class UserUpdate(BaseModel):
    """Request body for PUT /api/users/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    role: Optional[RoleEnum] = None
    is_active: Optional[bool] = None


class PasswordChange(BaseModel):
    """Request body for PUT /api/users/{id}/change-password.

    current_password is mandatory when users change their own password;
    admins resetting someone else's password may omit it.
    """

    current_password: Optional[str] = Field(default=None, max_length=100)
    new_password: str = Field(min_length=8, max_length=100)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password_strength(value)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------


class PartialUpdate(BaseModel):
    """Base for PUT bodies where every field is optional.

    Omitting a field leaves it unchanged. Sending null clears it, which is
    only allowed for nullable columns; fields listed in not_null reject an
    explicit null with a validation error (422).
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulled = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"Field(s) cannot be null: {', '.join(nulled)}")
        return self


# ---------------------------------------------------------------------------
# Budget authorities
# ---------------------------------------------------------------------------


class BudgetAuthorityCreate(BaseModel):
    """Request body for POST /api/budget/budget-authorities."""

    model_config = ConfigDict(str_strip_whitespace=True)

    total_budget_amount: float = Field(ge=0)
    fiscal_year: int = Field(ge=2000, le=2100)
    effective_date: date
    expiration_date: Optional[date] = None
    is_active: bool = False
    notes: Optional[str] = Field(default=None, max_length=255)


class BudgetAuthorityUpdate(PartialUpdate):
    """Request body for PUT /api/budget/budget-authorities/{id}."""

    not_null = ("total_budget_amount", "fiscal_year", "effective_date", "is_active")

    total_budget_amount: Optional[float] = Field(default=None, ge=0)
    fiscal_year: Optional[int] = Field(default=None, ge=2000, le=2100)
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=255)


class BudgetAuthorityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    total_budget_amount: float
    fiscal_year: int
    is_active: bool
    effective_date: str
    expiration_date: Optional[str]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, ba: BudgetAuthority) -> "BudgetAuthorityResponse":
        return cls(
            id=ba.id,
            total_budget_amount=ba.total_budget_amount,
            fiscal_year=ba.fiscal_year,
            is_active=ba.is_active,
            effective_date=ba.effective_date,
            expiration_date=ba.expiration_date,
            notes=ba.notes,
            created_at=ba.created_at,
            updated_at=ba.updated_at,
        )


# ---------------------------------------------------------------------------
# MTW reserves
# ---------------------------------------------------------------------------


class MTWReserveCreate(BaseModel):
    """Request body for POST /api/budget/mtw-reserves."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reserve_amount: float = Field(ge=0)
    as_of_date: date
    percentage_of_budget_authority: Optional[float] = Field(default=None, ge=0, le=100)
    minimum_reserve_level: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=255)


class MTWReserveUpdate(PartialUpdate):
    """Request body for PUT /api/budget/mtw-reserves/{id}."""

    not_null = ("reserve_amount", "as_of_date")

    reserve_amount: Optional[float] = Field(default=None, ge=0)
    as_of_date: Optional[date] = None
    percentage_of_budget_authority: Optional[float] = Field(default=None, ge=0, le=100)
    minimum_reserve_level: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=255)


class MTWReserveResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    reserve_amount: float
    as_of_date: str
    percentage_of_budget_authority: Optional[float]
    minimum_reserve_level: Optional[float]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, r: MTWReserve) -> "MTWReserveResponse":
        return cls(
            id=r.id,
            reserve_amount=r.reserve_amount,
            as_of_date=r.as_of_date,
            percentage_of_budget_authority=r.percentage_of_budget_authority,
            minimum_reserve_level=r.minimum_reserve_level,
            notes=r.notes,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


# ---------------------------------------------------------------------------
# Commitments
# ---------------------------------------------------------------------------


class CommitmentCreate(BaseModel):
    """Request body for POST /api/commitments."""

    model_config = ConfigDict(str_strip_whitespace=True)

    commitment_number: str = Field(min_length=1, max_length=100)
    activity_description: str = Field(min_length=1, max_length=255)
    commitment_type: CommitmentTypeEnum
    account_type: Optional[str] = Field(default=None, max_length=100)
    commitment_date: Optional[date] = None
    obligation_date: Optional[date] = None
    status: CommitmentStatusEnum = CommitmentStatusEnum.planned
    amount_committed: float = Field(ge=0)
    amount_obligated: float = Field(default=0, ge=0)
    amount_expended: float = Field(default=0, ge=0)
    projected_full_expenditure_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=255)


class CommitmentUpdate(PartialUpdate):
    """Request body for PUT /api/commitments/{id}."""

    not_null = (
        "commitment_number",
        "activity_description",
        "commitment_type",
        "status",
        "amount_committed",
        "amount_obligated",
        "amount_expended",
    )

    commitment_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    activity_description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    commitment_type: Optional[CommitmentTypeEnum] = None
    account_type: Optional[str] = Field(default=None, max_length=100)
    commitment_date: Optional[date] = None
    obligation_date: Optional[date] = None
    status: Optional[CommitmentStatusEnum] = None
    amount_committed: Optional[float] = Field(default=None, ge=0)
    amount_obligated: Optional[float] = Field(default=None, ge=0)
    amount_expended: Optional[float] = Field(default=None, ge=0)
    projected_full_expenditure_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=255)


class CommitmentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    commitment_number: str
    activity_description: str
    commitment_type: str
    account_type: Optional[str]
    commitment_date: Optional[str]
    obligation_date: Optional[str]
    status: str
    amount_committed: float
    amount_obligated: float
    amount_expended: float
    projected_full_expenditure_date: Optional[str]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, c: Commitment) -> "CommitmentResponse":
        return cls(
            id=c.id,
            commitment_number=c.commitment_number,
            activity_description=c.activity_description,
            commitment_type=c.commitment_type,
            account_type=c.account_type,
            commitment_date=c.commitment_date,
            obligation_date=c.obligation_date,
            status=c.status,
            amount_committed=c.amount_committed,
            amount_obligated=c.amount_obligated,
            amount_expended=c.amount_expended,
            projected_full_expenditure_date=c.projected_full_expenditure_date,
            notes=c.notes,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )


# ---------------------------------------------------------------------------
# Expenditures
# ---------------------------------------------------------------------------


class ExpenditureCreate(BaseModel):
    """Request body for POST /api/expenditures."""

    model_config = ConfigDict(str_strip_whitespace=True)

    expenditure_date: date
    expenditure_type: ExpenditureTypeEnum
    amount: float = Field(ge=0)
    description: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=255)


class ExpenditureUpdate(PartialUpdate):
    """Request body for PUT /api/expenditures/{id}."""

    not_null = ("expenditure_date", "expenditure_type", "amount")

    expenditure_date: Optional[date] = None
    expenditure_type: Optional[ExpenditureTypeEnum] = None
    amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=255)


class ExpenditureResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    expenditure_date: str
    expenditure_type: str
    amount: float
    description: Optional[str]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, e: Expenditure) -> "ExpenditureResponse":
        return cls(
            id=e.id,
            expenditure_date=e.expenditure_date,
            expenditure_type=e.expenditure_type,
            amount=e.amount,
            description=e.description,
            notes=e.notes,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )


class TypeTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: float
    count: int


class MonthTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: int
    total: float


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class DashboardBudgetAuthority(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    total_budget_amount: float
    fiscal_year: int
    effective_date: str
    expiration_date: Optional[str]


class DashboardReserve(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    amount: float
    as_of_date: str
    percentage: float


class DashboardCommitments(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: float
    obligated: float
    expended: float
    pending: float


class DashboardSummaryResponse(BaseModel):
    """Response for GET /api/budget/dashboard-summary."""

    model_config = ConfigDict(frozen=True)

    budget_authority: DashboardBudgetAuthority
    mtw_reserve: Optional[DashboardReserve]
    ytd_expenditures: float
    commitments: DashboardCommitments
    available_budget: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_store_fields(body: BaseModel) -> dict:
    """Return the fields the client actually sent, in store column form.

    Dates become ISO strings and enums their values; unset fields are
    dropped so PUT only touches what was provided.
    """
    fields = {}
    for name, value in body.model_dump(exclude_unset=True).items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        fields[name] = value
    return fields
