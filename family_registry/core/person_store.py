import logging
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from family_registry.database import atomic
from family_registry.models.person import Gender, Person
from family_registry.models.relationship import Relationship

logger = logging.getLogger(__name__)


# Columns a partial update may touch
UPDATABLE_FIELDS = (
    "name",
    "gender",
    "birth_date",
    "death_date",
    "bio",
    "profile_picture_url",
)


class PersonStore:
    """
    Row-level access to ``persons``.
    Holds no state; every call receives the request's session.
    Missing rows on update/delete come back as None/False.
    """

    def create(self, db: Session, values: dict) -> Person:
        person = Person(**values)
        with atomic(db):
            db.add(person)
        db.refresh(person)
        return person

    def find_by_id(self, db: Session, person_id: str) -> Optional[Person]:
        return db.query(Person).filter(Person.id == person_id).first()

    def find_by_name(self, db: Session, name: str) -> Optional[Person]:
        return db.query(Person).filter(Person.name == name).first()

    def find_by_ids(self, db: Session, person_ids: Iterable[str]) -> list[Person]:
        ids = list(set(person_ids))
        if not ids:
            return []
        return db.query(Person).filter(Person.id.in_(ids)).all()

    def update(self, db: Session, person_id: str, changes: dict) -> Optional[Person]:
        person = self.find_by_id(db, person_id)
        if not person:
            return None

        with atomic(db):
            for field, value in changes.items():
                if field in UPDATABLE_FIELDS:
                    setattr(person, field, value)

        db.refresh(person)
        return person

    def delete(self, db: Session, person_id: str) -> bool:
        person = self.find_by_id(db, person_id)
        if not person:
            return False

        with atomic(db):
            # Drop both halves of every pair the person belongs to
            removed = (
                db.query(Relationship)
                .filter(
                    or_(
                        Relationship.person_id == person_id,
                        Relationship.related_person_id == person_id,
                    )
                )
                .delete(synchronize_session=False)
            )
            db.delete(person)

        if removed:
            logger.info("Deleted %s relationship rows with person %s", removed, person_id)
        return True

    def count(self, db: Session) -> int:
        return db.query(Person).count()

    def list_all(self, db: Session) -> list[Person]:
        return db.query(Person).order_by(Person.created_at.desc()).all()

    def list_by_gender(self, db: Session, gender: Gender) -> list[Person]:
        return (
            db.query(Person)
            .filter(Person.gender == gender)
            .order_by(Person.created_at.desc())
            .all()
        )

    def list_living(self, db: Session) -> list[Person]:
        return (
            db.query(Person)
            .filter(Person.death_date.is_(None))
            .order_by(Person.created_at.desc())
            .all()
        )

    def list_deceased(self, db: Session) -> list[Person]:
        return (
            db.query(Person)
            .filter(Person.death_date.isnot(None))
            .order_by(Person.created_at.desc())
            .all()
        )
