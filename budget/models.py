"""
budget/models.py -- Domain dataclasses for budget tracking.

These are pure data containers with zero logic. Aggregations (dashboard
summary, expenditure roll-ups) live in budget/store.py.

Money is carried as float: amounts are stored with two decimal places and
only summed for display, never used for ledger arithmetic.

Dates (effective_date, as_of_date, expenditure_date, ...) are ISO 8601
YYYY-MM-DD strings. created_at / updated_at are full ISO 8601 timestamps
set by the store. id is None before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional

COMMITMENT_TYPES = (
    "traditional_hap",
    "public_housing",
    "capital_fund",
    "local_non_traditional",
    "hcv_admin",
    "other",
)

COMMITMENT_STATUSES = (
    "planned",
    "committed",
    "obligated",
    "partially_expended",
    "fully_expended",
    "cancelled",
)

EXPENDITURE_TYPES = (
    "traditional_hap",
    "public_housing",
    "capital_fund",
    "local_non_traditional",
    "hcv_admin",
    "other_1",
    "other_2",
    "other_3",
)


@dataclass
class BudgetAuthority:
    """The total budget granted for a fiscal year.

    Only active authorities count towards the dashboard; when several are
    active the one with the latest fiscal_year wins.
    """

    total_budget_amount: float
    fiscal_year: int
    effective_date: str
    is_active: bool = False
    expiration_date: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class MTWReserve:
    """A point-in-time snapshot of the Moving-to-Work reserve balance."""

    reserve_amount: float
    as_of_date: str
    percentage_of_budget_authority: Optional[float] = None
    minimum_reserve_level: Optional[float] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Commitment:
    """Money earmarked against the budget authority for one activity.

    amount_committed is the earmarked total; amount_obligated and
    amount_expended track how much of it has been contractually bound and
    actually spent.
    """

    commitment_number: str
    activity_description: str
    commitment_type: str  # one of COMMITMENT_TYPES
    amount_committed: float
    status: str = "planned"  # one of COMMITMENT_STATUSES
    account_type: Optional[str] = None
    commitment_date: Optional[str] = None
    obligation_date: Optional[str] = None
    amount_obligated: float = 0.0
    amount_expended: float = 0.0
    projected_full_expenditure_date: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Expenditure:
    """A single housing assistance payment (HAP) expenditure."""

    expenditure_date: str
    expenditure_type: str  # one of EXPENDITURE_TYPES
    amount: float
    description: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
