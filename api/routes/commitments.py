"""
api/routes/commitments.py -- Commitment REST endpoints.

Routes:
  GET    /api/commitments                   -- list (optional ?commitment_type=&status=)
  GET    /api/commitments/type/{type}       -- filter by commitment type
  GET    /api/commitments/status/{status}   -- filter by status
  GET    /api/commitments/{id}              -- one
  POST   /api/commitments                   -- create (writer)
  PUT    /api/commitments/{id}              -- update (writer)
  DELETE /api/commitments/{id}              -- delete (admin)

Static paths are declared before /{commitment_id}; the UUID path type makes
the order harmless but keeps the intent obvious.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import (
    CommitmentCreate,
    CommitmentResponse,
    CommitmentStatusEnum,
    CommitmentTypeEnum,
    CommitmentUpdate,
    to_store_fields,
)
from auth.dependencies import get_current_user, require_admin, require_writer
from auth.models import User
from budget.models import Commitment
from budget.store import BudgetStore

logger = logging.getLogger("budgettracker.api.commitments")

router = APIRouter(prefix="/commitments", dependencies=[Depends(get_current_user)])


def _store(request: Request) -> BudgetStore:
    return request.app.state.budget_store


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Commitment not found."})


@router.get("", response_model=list[CommitmentResponse])
def list_commitments(
    request: Request,
    commitment_type: Optional[CommitmentTypeEnum] = None,
    status: Optional[CommitmentStatusEnum] = None,
) -> list[CommitmentResponse]:
    """List commitments, most recent commitment_date first."""
    rows = _store(request).list_commitments(
        commitment_type=commitment_type.value if commitment_type else None,
        status=status.value if status else None,
    )
    return [CommitmentResponse.from_domain(c) for c in rows]


@router.get("/type/{commitment_type}", response_model=list[CommitmentResponse])
def list_by_type(request: Request, commitment_type: CommitmentTypeEnum) -> list[CommitmentResponse]:
    rows = _store(request).list_commitments(commitment_type=commitment_type.value)
    return [CommitmentResponse.from_domain(c) for c in rows]


@router.get("/status/{status}", response_model=list[CommitmentResponse])
def list_by_status(request: Request, status: CommitmentStatusEnum) -> list[CommitmentResponse]:
    rows = _store(request).list_commitments(status=status.value)
    return [CommitmentResponse.from_domain(c) for c in rows]


@router.get("/{commitment_id}", response_model=CommitmentResponse)
def get_commitment(request: Request, commitment_id: UUID) -> CommitmentResponse:
    commitment = _store(request).get_commitment(str(commitment_id))
    if commitment is None:
        raise _not_found()
    return CommitmentResponse.from_domain(commitment)


@router.post("", response_model=CommitmentResponse, status_code=201)
def create_commitment(
    request: Request,
    body: CommitmentCreate,
    current_user: User = Depends(require_writer),
) -> CommitmentResponse:
    store = _store(request)
    commitment_id = store.create_commitment(Commitment(**to_store_fields(body)))
    logger.info("%s created commitment %s", current_user.email, body.commitment_number)
    return CommitmentResponse.from_domain(store.get_commitment(commitment_id))


@router.put("/{commitment_id}", response_model=CommitmentResponse)
def update_commitment(
    request: Request,
    commitment_id: UUID,
    body: CommitmentUpdate,
    current_user: User = Depends(require_writer),
) -> CommitmentResponse:
    store = _store(request)
    if not store.update_commitment(str(commitment_id), **to_store_fields(body)):
        raise _not_found()
    return CommitmentResponse.from_domain(store.get_commitment(str(commitment_id)))


@router.delete("/{commitment_id}", status_code=204)
def delete_commitment(
    request: Request,
    commitment_id: UUID,
    current_user: User = Depends(require_admin),
) -> Response:
    if not _store(request).delete_commitment(str(commitment_id)):
        raise _not_found()
    logger.info("%s deleted commitment %s", current_user.email, commitment_id)
    return Response(status_code=204)
