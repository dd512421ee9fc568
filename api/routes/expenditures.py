"""
api/routes/expenditures.py -- HAP expenditure REST endpoints.

Routes:
  GET    /api/expenditures                              -- list (optional ?expenditure_type=)
  GET    /api/expenditures/type/{type}                  -- filter by type
  GET    /api/expenditures/date-range?start_date=&end_date=
  GET    /api/expenditures/summary/by-type?start_date=&end_date=
  GET    /api/expenditures/summary/monthly/{year}
  GET    /api/expenditures/{id}                         -- one
  POST   /api/expenditures                              -- create (writer)
  PUT    /api/expenditures/{id}                         -- update (writer)
  DELETE /api/expenditures/{id}                         -- delete (admin)
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response

from api.models import (
    ExpenditureCreate,
    ExpenditureResponse,
    ExpenditureTypeEnum,
    ExpenditureUpdate,
    MonthTotal,
    TypeTotal,
    to_store_fields,
)
from auth.dependencies import get_current_user, require_admin, require_writer
from auth.models import User
from budget.models import Expenditure
from budget.store import BudgetStore

logger = logging.getLogger("budgettracker.api.expenditures")

router = APIRouter(prefix="/expenditures", dependencies=[Depends(get_current_user)])


def _store(request: Request) -> BudgetStore:
    return request.app.state.budget_store


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Expenditure not found."})


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_range", "message": "start_date must not be after end_date."},
        )


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@router.get("", response_model=list[ExpenditureResponse])
def list_expenditures(
    request: Request,
    expenditure_type: Optional[ExpenditureTypeEnum] = None,
) -> list[ExpenditureResponse]:
    """List expenditures, most recent first."""
    rows = _store(request).list_expenditures(
        expenditure_type=expenditure_type.value if expenditure_type else None
    )
    return [ExpenditureResponse.from_domain(e) for e in rows]


@router.get("/type/{expenditure_type}", response_model=list[ExpenditureResponse])
def list_by_type(request: Request, expenditure_type: ExpenditureTypeEnum) -> list[ExpenditureResponse]:
    rows = _store(request).list_expenditures(expenditure_type=expenditure_type.value)
    return [ExpenditureResponse.from_domain(e) for e in rows]


@router.get("/date-range", response_model=list[ExpenditureResponse])
def list_by_date_range(request: Request, start_date: date, end_date: date) -> list[ExpenditureResponse]:
    """Expenditures dated between start_date and end_date, inclusive."""
    _check_range(start_date, end_date)
    rows = _store(request).list_expenditures(start=start_date.isoformat(), end=end_date.isoformat())
    return [ExpenditureResponse.from_domain(e) for e in rows]


@router.get("/summary/by-type", response_model=dict[str, TypeTotal])
def summary_by_type(
    request: Request,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict[str, TypeTotal]:
    """Totals and counts per expenditure type; both bounds are optional."""
    _check_range(start_date, end_date)
    summary = _store(request).expenditure_summary_by_type(_iso(start_date), _iso(end_date))
    return {kind: TypeTotal(**values) for kind, values in summary.items()}


@router.get("/summary/monthly/{year}", response_model=list[MonthTotal])
def summary_monthly(request: Request, year: int = Path(ge=2000, le=2100)) -> list[MonthTotal]:
    return [MonthTotal(**row) for row in _store(request).monthly_expenditure_summary(year)]


@router.get("/{expenditure_id}", response_model=ExpenditureResponse)
def get_expenditure(request: Request, expenditure_id: UUID) -> ExpenditureResponse:
    expenditure = _store(request).get_expenditure(str(expenditure_id))
    if expenditure is None:
        raise _not_found()
    return ExpenditureResponse.from_domain(expenditure)


@router.post("", response_model=ExpenditureResponse, status_code=201)
def create_expenditure(
    request: Request,
    body: ExpenditureCreate,
    current_user: User = Depends(require_writer),
) -> ExpenditureResponse:
    store = _store(request)
    expenditure_id = store.create_expenditure(Expenditure(**to_store_fields(body)))
    return ExpenditureResponse.from_domain(store.get_expenditure(expenditure_id))


@router.put("/{expenditure_id}", response_model=ExpenditureResponse)
def update_expenditure(
    request: Request,
    expenditure_id: UUID,
    body: ExpenditureUpdate,
    current_user: User = Depends(require_writer),
) -> ExpenditureResponse:
    store = _store(request)
    if not store.update_expenditure(str(expenditure_id), **to_store_fields(body)):
        raise _not_found()
    return ExpenditureResponse.from_domain(store.get_expenditure(str(expenditure_id)))


@router.delete("/{expenditure_id}", status_code=204)
def delete_expenditure(
    request: Request,
    expenditure_id: UUID,
    current_user: User = Depends(require_admin),
) -> Response:
    if not _store(request).delete_expenditure(str(expenditure_id)):
        raise _not_found()
    logger.info("%s deleted expenditure %s", current_user.email, expenditure_id)
    return Response(status_code=204)
