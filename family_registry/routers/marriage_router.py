from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from family_registry.core.marriage_service import MaritalStatus, MarriageService
from family_registry.core.services import get_marriage_service
from family_registry.database import get_db
from family_registry.models.person import Gender
from family_registry.schemas.common_schema import success_response
from family_registry.schemas.marriage_schema import (
    CancelDivorceRequest,
    CancelMarriageRequest,
    DivorceRequest,
    MaritalStatusOut,
    MarriageCreate,
    MarriageOut,
)

router = APIRouter(prefix="/marriage", tags=["Marriage"])


def _rows(relationships) -> list[MarriageOut]:
    return [MarriageOut.model_validate(r) for r in relationships]


# --------------------------------------------------
# MARRY
# --------------------------------------------------
@router.post("/marry", status_code=201)
def marry(
    payload: MarriageCreate,
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    rows = service.marry(
        db,
        str(payload.person_id1),
        str(payload.person_id2),
        payload.start_date,
    )
    return success_response(_rows(rows), message="Marriage created successfully")


# --------------------------------------------------
# DIVORCE
# --------------------------------------------------
@router.put("/divorce")
def divorce(
    payload: DivorceRequest,
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    rows = service.divorce(db, str(payload.person_id), payload.end_date)
    return success_response(_rows(rows), message="Marriage ended successfully")


# --------------------------------------------------
# CANCEL MARRIAGE (deletes the pair)
# --------------------------------------------------
@router.delete("/cancel")
def cancel_marriage(
    payload: CancelMarriageRequest,
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    rows = service.cancel_marriage(db, str(payload.person_id))
    return success_response(_rows(rows), message="Marriage cancelled successfully")


# --------------------------------------------------
# CANCEL DIVORCE (restores the pair)
# --------------------------------------------------
@router.put("/cancel-divorce")
def cancel_divorce(
    payload: CancelDivorceRequest,
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    rows = service.cancel_divorce(db, str(payload.person_id))
    return success_response(
        _rows(rows),
        message="Divorce cancelled successfully - marriage restored",
    )


# --------------------------------------------------
# LISTS / STATUS
# --------------------------------------------------
@router.get("/person/list")
def persons_by_status(
    status: MaritalStatus = Query(...),
    gender: Optional[Gender] = Query(None),
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    listing = service.persons_by_status(db, status, gender)
    return success_response(listing.items, message=listing.message)


@router.get("/status")
def marital_status(
    person_id: str = Query(..., alias="personId", min_length=1),
    db: Session = Depends(get_db),
    service: MarriageService = Depends(get_marriage_service),
):
    status = service.status_of(db, person_id)
    return success_response(MaritalStatusOut(person_id=person_id, status=status.value))
