"""
api/routes/budget.py -- Budget authority, MTW reserve and dashboard endpoints.

Routes:
  GET    /api/budget/dashboard-summary            -- landing page roll-up
  GET    /api/budget/budget-authorities           -- list
  GET    /api/budget/budget-authorities/{id}      -- one
  POST   /api/budget/budget-authorities           -- create (writer)
  PUT    /api/budget/budget-authorities/{id}      -- update (writer)
  DELETE /api/budget/budget-authorities/{id}      -- delete (admin)
  GET    /api/budget/mtw-reserves                 -- list
  GET    /api/budget/mtw-reserves/{id}            -- one
  POST   /api/budget/mtw-reserves                 -- create (writer)
  PUT    /api/budget/mtw-reserves/{id}            -- update (writer)
  DELETE /api/budget/mtw-reserves/{id}            -- delete (admin)

Every route requires an authenticated user; readonly users may only read.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import (
    BudgetAuthorityCreate,
    BudgetAuthorityResponse,
    BudgetAuthorityUpdate,
    DashboardSummaryResponse,
    MTWReserveCreate,
    MTWReserveResponse,
    MTWReserveUpdate,
    to_store_fields,
)
from auth.dependencies import get_current_user, require_admin, require_writer
from auth.models import User
from budget.models import BudgetAuthority, MTWReserve
from budget.store import BudgetStore

logger = logging.getLogger("budgettracker.api.budget")

router = APIRouter(prefix="/budget", dependencies=[Depends(get_current_user)])


def _store(request: Request) -> BudgetStore:
    return request.app.state.budget_store


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": f"{what} not found."})


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/dashboard-summary", response_model=DashboardSummaryResponse)
def dashboard_summary(request: Request) -> DashboardSummaryResponse:
    summary = _store(request).dashboard_summary()
    if summary is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "No active budget authority found."},
        )
    return DashboardSummaryResponse(**summary)


# ---------------------------------------------------------------------------
# Budget authorities
# ---------------------------------------------------------------------------


@router.get("/budget-authorities", response_model=list[BudgetAuthorityResponse])
def list_budget_authorities(request: Request) -> list[BudgetAuthorityResponse]:
    """All budget authorities, newest fiscal year first."""
    return [BudgetAuthorityResponse.from_domain(ba) for ba in _store(request).list_budget_authorities()]


@router.get("/budget-authorities/{authority_id}", response_model=BudgetAuthorityResponse)
def get_budget_authority(request: Request, authority_id: UUID) -> BudgetAuthorityResponse:
    authority = _store(request).get_budget_authority(str(authority_id))
    if authority is None:
        raise _not_found("Budget authority")
    return BudgetAuthorityResponse.from_domain(authority)


@router.post("/budget-authorities", response_model=BudgetAuthorityResponse, status_code=201)
def create_budget_authority(
    request: Request,
    body: BudgetAuthorityCreate,
    current_user: User = Depends(require_writer),
) -> BudgetAuthorityResponse:
    store = _store(request)
    authority_id = store.create_budget_authority(BudgetAuthority(**to_store_fields(body)))
    logger.info("%s created budget authority for FY%d", current_user.email, body.fiscal_year)
    return BudgetAuthorityResponse.from_domain(store.get_budget_authority(authority_id))


@router.put("/budget-authorities/{authority_id}", response_model=BudgetAuthorityResponse)
def update_budget_authority(
    request: Request,
    authority_id: UUID,
    body: BudgetAuthorityUpdate,
    current_user: User = Depends(require_writer),
) -> BudgetAuthorityResponse:
    store = _store(request)
    if not store.update_budget_authority(str(authority_id), **to_store_fields(body)):
        raise _not_found("Budget authority")
    return BudgetAuthorityResponse.from_domain(store.get_budget_authority(str(authority_id)))


@router.delete("/budget-authorities/{authority_id}", status_code=204)
def delete_budget_authority(
    request: Request,
    authority_id: UUID,
    current_user: User = Depends(require_admin),
) -> Response:
    if not _store(request).delete_budget_authority(str(authority_id)):
        raise _not_found("Budget authority")
    logger.info("%s deleted budget authority %s", current_user.email, authority_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# MTW reserves
# ---------------------------------------------------------------------------


@router.get("/mtw-reserves", response_model=list[MTWReserveResponse])
def list_mtw_reserves(request: Request) -> list[MTWReserveResponse]:
    """All reserve snapshots, most recent first."""
    return [MTWReserveResponse.from_domain(r) for r in _store(request).list_mtw_reserves()]


@router.get("/mtw-reserves/{reserve_id}", response_model=MTWReserveResponse)
def get_mtw_reserve(request: Request, reserve_id: UUID) -> MTWReserveResponse:
    reserve = _store(request).get_mtw_reserve(str(reserve_id))
    if reserve is None:
        raise _not_found("MTW reserve")
    return MTWReserveResponse.from_domain(reserve)


@router.post("/mtw-reserves", response_model=MTWReserveResponse, status_code=201)
def create_mtw_reserve(
    request: Request,
    body: MTWReserveCreate,
    current_user: User = Depends(require_writer),
) -> MTWReserveResponse:
    store = _store(request)
    reserve_id = store.create_mtw_reserve(MTWReserve(**to_store_fields(body)))
    return MTWReserveResponse.from_domain(store.get_mtw_reserve(reserve_id))


@router.put("/mtw-reserves/{reserve_id}", response_model=MTWReserveResponse)
def update_mtw_reserve(
    request: Request,
    reserve_id: UUID,
    body: MTWReserveUpdate,
    current_user: User = Depends(require_writer),
) -> MTWReserveResponse:
    store = _store(request)
    if not store.update_mtw_reserve(str(reserve_id), **to_store_fields(body)):
        raise _not_found("MTW reserve")
    return MTWReserveResponse.from_domain(store.get_mtw_reserve(str(reserve_id)))


@router.delete("/mtw-reserves/{reserve_id}", status_code=204)
def delete_mtw_reserve(
    request: Request,
    reserve_id: UUID,
    current_user: User = Depends(require_admin),
) -> Response:
    if not _store(request).delete_mtw_reserve(str(reserve_id)):
        raise _not_found("MTW reserve")
    logger.info("%s deleted MTW reserve %s", current_user.email, reserve_id)
    return Response(status_code=204)
