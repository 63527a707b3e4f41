"""
Marriage state machine.

A person's marital state is never stored; it is derived from their
SPOUSE rows:

* ``SINGLE``   no SPOUSE rows at all (never married, or cancelled)
* ``MARRIED``  one row with ``end_date`` NULL
* ``DIVORCED`` rows exist but all of them are ended

Transitions::

    SINGLE --marry--> MARRIED --divorce--> DIVORCED
    DIVORCED --cancel_divorce--> MARRIED
    MARRIED | DIVORCED --cancel_marriage--> SINGLE

Every failed precondition raises ``ServiceError`` with the matching
``ErrorKind``; routers turn that into the HTTP status.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from family_registry.core.errors import conflict, internal_error, not_found, validation_error
from family_registry.core.marriage_store import BrokenPairError, MarriageStore
from family_registry.core.person_store import PersonStore
from family_registry.models.person import Gender, Person
from family_registry.models.relationship import Relationship
from family_registry.schemas.marriage_schema import DivorcedCoupleOut, MarriedCoupleOut
from family_registry.schemas.person_schema import PersonOut

logger = logging.getLogger(__name__)


class MaritalStatus(str, enum.Enum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"


@dataclass
class StatusListing:
    status: MaritalStatus
    gender: Optional[Gender]
    items: list[Union[MarriedCoupleOut, DivorcedCoupleOut, PersonOut]]

    @property
    def message(self) -> str:
        gender_text = f" ({self.gender.value})" if self.gender else ""
        if self.status == MaritalStatus.SINGLE:
            noun = "single persons"
        else:
            noun = f"{self.status.value} couples"
        return f"Found {len(self.items)} {noun}{gender_text}"


def _today() -> date:
    return datetime.utcnow().date()


def _split_by_gender(row: Relationship) -> tuple[Person, Person]:
    # Pairs always hold one MAN and one WOMAN (marry rejects anything else)
    husband = row.person if row.person.gender == Gender.MAN else row.related_person
    wife = row.person if row.person.gender == Gender.WOMAN else row.related_person
    return husband, wife


def group_couples(rows: list[Relationship], ended: bool) -> list[Union[MarriedCoupleOut, DivorcedCoupleOut]]:
    """
    Collapse mirrored rows into one entry per couple.
    Once a row is used, both of its person ids are skipped for the rest
    of the walk, so each couple appears once whatever the row order.
    """
    couples = []
    processed: set[str] = set()

    for row in rows:
        if row.person_id in processed or row.related_person_id in processed:
            continue

        husband, wife = _split_by_gender(row)
        fields = {
            "husband": PersonOut.model_validate(husband),
            "wife": PersonOut.model_validate(wife),
            "start_date": row.start_date,
        }
        if ended:
            couples.append(DivorcedCoupleOut(end_date=row.end_date, **fields))
        else:
            couples.append(MarriedCoupleOut(**fields))

        processed.add(row.person_id)
        processed.add(row.related_person_id)

    return couples


class MarriageService:
    def __init__(self, persons: PersonStore, marriages: MarriageStore):
        self.persons = persons
        self.marriages = marriages

    def _require_person(self, db: Session, person_id: str) -> Person:
        person = self.persons.find_by_id(db, person_id)
        if not person:
            raise not_found("Person not found")
        return person

    # ------------------------------------------------
    # Transitions
    # ------------------------------------------------
    def marry(
        self,
        db: Session,
        person_id1: str,
        person_id2: str,
        start_date: Optional[date] = None,
    ) -> list[Relationship]:
        if person_id1 == person_id2:
            raise validation_error("Cannot marry a person to themselves")

        found = {p.id: p for p in self.persons.find_by_ids(db, [person_id1, person_id2])}
        person1 = found.get(person_id1)
        person2 = found.get(person_id2)
        if not person1 or not person2:
            raise not_found("One or both persons not found")

        if person1.gender == person2.gender:
            logger.warning(
                "Rejected marriage of %s and %s: same gender", person_id1, person_id2
            )
            raise conflict("Persons must have different genders")

        for person in (person1, person2):
            if self.marriages.find_active_marriage(db, person.id):
                logger.warning("Rejected marriage: %s is already married", person.id)
                raise conflict(f"person {person.name} is already married")

        try:
            rows = self.marriages.create_marriage_pair(
                db, person1, person2, start_date or _today()
            )
        except IntegrityError:
            # Lost a race with a concurrent marriage for one of the two
            logger.warning(
                "Active marriage index rejected %s and %s", person_id1, person_id2
            )
            raise conflict("One of the persons is already married")

        logger.info("Married %s and %s", person_id1, person_id2)
        return rows

    def divorce(
        self,
        db: Session,
        person_id: str,
        end_date: Optional[date] = None,
    ) -> list[Relationship]:
        self._require_person(db, person_id)

        try:
            rows = self.marriages.divorce(db, person_id, end_date or _today())
        except BrokenPairError as exc:
            raise internal_error(str(exc))
        if rows is None:
            raise conflict("Person is not currently married")

        logger.info("Divorced %s", person_id)
        return rows

    def cancel_marriage(self, db: Session, person_id: str) -> list[Relationship]:
        self._require_person(db, person_id)

        try:
            rows = self.marriages.cancel_marriage(db, person_id)
        except BrokenPairError as exc:
            raise internal_error(str(exc))
        if rows is None:
            raise conflict("Person has no marriage to cancel")

        logger.info("Cancelled marriage of %s", person_id)
        return rows

    def cancel_divorce(self, db: Session, person_id: str) -> list[Relationship]:
        self._require_person(db, person_id)

        ended = self.marriages.find_ended_marriage(db, person_id)
        if not ended:
            raise conflict("Person is not currently divorced")

        # Restoring must not give either spouse a second active marriage
        members = (
            (ended.person_id, ended.person_name),
            (ended.related_person_id, ended.related_person_name),
        )
        for member_id, member_name in members:
            if self.marriages.find_active_marriage(db, member_id):
                raise conflict(f"person {member_name} is already married")

        try:
            rows = self.marriages.cancel_divorce(db, person_id)
        except IntegrityError:
            raise conflict("One of the persons is already married")
        except BrokenPairError as exc:
            raise internal_error(str(exc))
        if rows is None:
            raise conflict("Person is not currently divorced")

        logger.info("Restored marriage of %s", person_id)
        return rows

    # ------------------------------------------------
    # Derived state
    # ------------------------------------------------
    def status_of(self, db: Session, person_id: str) -> MaritalStatus:
        self._require_person(db, person_id)

        if self.marriages.find_active_marriage(db, person_id):
            return MaritalStatus.MARRIED
        if self.marriages.find_any_marriage(db, person_id):
            return MaritalStatus.DIVORCED
        return MaritalStatus.SINGLE

    def persons_by_status(
        self,
        db: Session,
        status: Union[MaritalStatus, str],
        gender: Optional[Gender] = None,
    ) -> StatusListing:
        try:
            status = MaritalStatus(status)
        except ValueError:
            raise validation_error(
                "Invalid status. Must be one of: married, single, divorced"
            )

        if status == MaritalStatus.MARRIED:
            items = group_couples(self.marriages.list_married(db, gender), ended=False)
        elif status == MaritalStatus.DIVORCED:
            items = group_couples(self.marriages.list_divorced(db, gender), ended=True)
        else:
            items = [
                PersonOut.model_validate(p)
                for p in self.marriages.list_single(db, gender)
            ]

        return StatusListing(status=status, gender=gender, items=items)
