from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from family_registry.core.errors import not_found
from family_registry.core.person_service import PersonService
from family_registry.core.services import get_person_service
from family_registry.database import get_db
from family_registry.models.person import Gender
from family_registry.schemas.common_schema import success_response
from family_registry.schemas.person_schema import (
    PersonCountOut,
    PersonCreate,
    PersonOut,
    PersonUpdate,
)

router = APIRouter(prefix="/persons", tags=["Persons"])


def _missing(person_id: str):
    return not_found(f"Person with ID {person_id} does not exist")


def _person_list(persons) -> dict:
    data = [PersonOut.model_validate(p) for p in persons]
    return success_response(data, count=len(data))


# --------------------------------------------------
# LISTS
# --------------------------------------------------
@router.get("/list")
def list_persons(
    gender: Optional[Gender] = Query(None),
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    return _person_list(service.list_persons(db, gender))


@router.get("/count")
def count_persons(
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    return success_response(PersonCountOut(count=service.count_persons(db)))


@router.get("/living/list")
def list_living_persons(
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    return _person_list(service.list_living(db))


@router.get("/deceased/list")
def list_deceased_persons(
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    return _person_list(service.list_deceased(db))


# --------------------------------------------------
# SINGLE PERSON
# --------------------------------------------------
@router.get("/one")
def get_person(
    id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    person = service.get_person(db, id)
    if not person:
        raise _missing(id)

    return success_response(PersonOut.model_validate(person))


@router.get("/by-name")
def get_person_by_name(
    name: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    person = service.get_person_by_name(db, name)
    if not person:
        raise not_found(f"Person named {name} does not exist")

    return success_response(PersonOut.model_validate(person))


@router.post("/one", status_code=201)
def create_person(
    payload: PersonCreate,
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    person = service.create_person(db, payload)
    return success_response(
        PersonOut.model_validate(person),
        message="Person created successfully",
    )


@router.put("/one")
def update_person(
    payload: PersonUpdate,
    id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    person = service.update_person(db, id, payload)
    if not person:
        raise _missing(id)

    return success_response(
        PersonOut.model_validate(person),
        message="Person updated successfully",
    )


@router.delete("/one")
def delete_person(
    id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    service: PersonService = Depends(get_person_service),
):
    if not service.delete_person(db, id):
        raise _missing(id)

    return success_response(
        message="Person deleted successfully",
        include_data=False,
    )
