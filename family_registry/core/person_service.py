"""
Person business rules on top of ``PersonStore``.

Shape checks (required fields, enum values, lengths, date parsing)
live in the pydantic schemas.  This module handles the rules that need
the stored record: the death date must fall strictly after the birth
date once a partial update is merged, and required columns cannot be
cleared with an explicit ``null``.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from family_registry.core.errors import conflict, validation_error
from family_registry.core.person_store import PersonStore
from family_registry.models.person import Gender, Person
from family_registry.schemas.person_schema import PersonCreate, PersonUpdate

logger = logging.getLogger(__name__)


# Column name -> field name in request bodies
REQUIRED_FIELDS = {
    "name": "name",
    "gender": "gender",
    "birth_date": "birthDate",
}


def check_lifespan(birth_date: date, death_date: Optional[date]) -> None:
    if death_date is not None and death_date <= birth_date:
        raise validation_error("deathDate must be after birthDate")


class PersonService:
    def __init__(self, store: PersonStore):
        self.store = store

    def create_person(self, db: Session, data: PersonCreate) -> Person:
        check_lifespan(data.birth_date, data.death_date)

        try:
            person = self.store.create(db, data.model_dump())
        except IntegrityError:
            raise conflict(f"Person {data.name} already exists")

        logger.info("Created person %s (%s)", person.id, person.name)
        return person

    def get_person(self, db: Session, person_id: str) -> Optional[Person]:
        return self.store.find_by_id(db, person_id)

    def get_person_by_name(self, db: Session, name: str) -> Optional[Person]:
        return self.store.find_by_name(db, name)

    def update_person(
        self,
        db: Session,
        person_id: str,
        data: PersonUpdate,
    ) -> Optional[Person]:
        changes = data.model_dump(exclude_unset=True)

        for field, label in REQUIRED_FIELDS.items():
            if field in changes and changes[field] is None:
                raise validation_error(f"{label} cannot be null")

        existing = self.store.find_by_id(db, person_id)
        if not existing:
            return None

        check_lifespan(
            changes.get("birth_date", existing.birth_date),
            changes.get("death_date", existing.death_date),
        )

        try:
            person = self.store.update(db, person_id, changes)
        except IntegrityError:
            raise conflict(f"Person {changes.get('name', existing.name)} already exists")

        if person:
            logger.info("Updated person %s: %s", person_id, ", ".join(sorted(changes)))
        return person

    def delete_person(self, db: Session, person_id: str) -> bool:
        deleted = self.store.delete(db, person_id)
        if deleted:
            logger.info("Deleted person %s", person_id)
        return deleted

    def count_persons(self, db: Session) -> int:
        return self.store.count(db)

    def list_persons(self, db: Session, gender: Optional[Gender] = None) -> list[Person]:
        if gender:
            return self.store.list_by_gender(db, gender)
        return self.store.list_all(db)

    def list_living(self, db: Session) -> list[Person]:
        return self.store.list_living(db)

    def list_deceased(self, db: Session) -> list[Person]:
        return self.store.list_deceased(db)
