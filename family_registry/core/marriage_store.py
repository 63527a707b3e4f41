import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased, joinedload

from family_registry.database import atomic
from family_registry.models.person import Gender, Person
from family_registry.models.relationship import Relationship, RelationshipType

logger = logging.getLogger(__name__)


class BrokenPairError(Exception):
    """A SPOUSE row whose mirrored row is missing."""

    def __init__(self, person_id: str, spouse_id: str):
        super().__init__(
            f"Marriage between {person_id} and {spouse_id} is missing its mirrored row"
        )
        self.person_id = person_id
        self.spouse_id = spouse_id


class MarriageStore:
    """
    Row-level access to SPOUSE relationships.

    A marriage is two mirrored rows. Every mutation goes through
    ``_write_pair`` so both rows change in the same transaction.
    Mutations return None when there is no matching pair.
    """

    # ------------------------------------------------
    # Queries
    # ------------------------------------------------
    def _spouse_rows(self, db: Session):
        return db.query(Relationship).filter(
            Relationship.type == RelationshipType.SPOUSE
        )

    def find_active_marriage(self, db: Session, person_id: str) -> Optional[Relationship]:
        return (
            self._spouse_rows(db)
            .filter(
                Relationship.person_id == person_id,
                Relationship.end_date.is_(None),
            )
            .first()
        )

    def find_ended_marriage(self, db: Session, person_id: str) -> Optional[Relationship]:
        return (
            self._spouse_rows(db)
            .filter(
                Relationship.person_id == person_id,
                Relationship.end_date.isnot(None),
            )
            .order_by(Relationship.end_date.desc(), Relationship.start_date.desc())
            .first()
        )

    def find_any_marriage(self, db: Session, person_id: str) -> Optional[Relationship]:
        # Prefer the active marriage, then the most recent ended one
        return self.find_active_marriage(db, person_id) or self.find_ended_marriage(
            db, person_id
        )

    def find_mirror(self, db: Session, row: Relationship) -> Optional[Relationship]:
        """The other half of the marriage ``row`` belongs to."""
        if row.end_date is None:
            same_end = Relationship.end_date.is_(None)
        else:
            same_end = Relationship.end_date == row.end_date

        return (
            self._spouse_rows(db)
            .filter(
                Relationship.id != row.id,
                Relationship.person_id == row.related_person_id,
                Relationship.related_person_id == row.person_id,
                Relationship.start_date == row.start_date,
                same_end,
            )
            .first()
        )

    # ------------------------------------------------
    # Pair writes
    # ------------------------------------------------
    def _write_pair(
        self,
        db: Session,
        anchor: Relationship,
        apply: Callable[[Session, Relationship], None],
    ) -> list[Relationship]:
        """
        Apply ``apply`` to ``anchor`` and its mirror in one transaction.
        Only that marriage is touched, never earlier pairs of the same couple.
        Raises BrokenPairError (and rolls back) when the mirror is missing.
        """
        with atomic(db):
            mirror = self.find_mirror(db, anchor)
            if mirror is None:
                logger.error(
                    "SPOUSE row %s (%s -> %s) has no mirrored row",
                    anchor.id,
                    anchor.person_id,
                    anchor.related_person_id,
                )
                raise BrokenPairError(anchor.person_id, anchor.related_person_id)

            rows = [anchor, mirror]
            for row in rows:
                apply(db, row)

        return rows

    def create_marriage_pair(
        self,
        db: Session,
        person: Person,
        spouse: Person,
        start_date: date,
    ) -> list[Relationship]:
        rows = [
            Relationship(
                person_id=person.id,
                person_name=person.name,
                related_person_id=spouse.id,
                related_person_name=spouse.name,
                type=RelationshipType.SPOUSE,
                start_date=start_date,
                end_date=None,
            ),
            Relationship(
                person_id=spouse.id,
                person_name=spouse.name,
                related_person_id=person.id,
                related_person_name=person.name,
                type=RelationshipType.SPOUSE,
                start_date=start_date,
                end_date=None,
            ),
        ]

        with atomic(db):
            db.add_all(rows)

        return self._refreshed(db, rows)

    def _refreshed(self, db: Session, rows: list[Relationship]) -> list[Relationship]:
        for row in rows:
            db.refresh(row)
        return rows

    def divorce(self, db: Session, person_id: str, end_date: date) -> Optional[list[Relationship]]:
        active = self.find_active_marriage(db, person_id)
        if not active:
            return None

        def set_end_date(session: Session, row: Relationship) -> None:
            row.end_date = end_date

        return self._refreshed(db, self._write_pair(db, active, set_end_date))

    def cancel_marriage(self, db: Session, person_id: str) -> Optional[list[Relationship]]:
        marriage = self.find_any_marriage(db, person_id)
        if not marriage:
            return None

        def delete_row(session: Session, row: Relationship) -> None:
            session.delete(row)

        self._write_pair(db, marriage, delete_row)
        return []

    def cancel_divorce(self, db: Session, person_id: str) -> Optional[list[Relationship]]:
        ended = self.find_ended_marriage(db, person_id)
        if not ended:
            return None

        def clear_end_date(session: Session, row: Relationship) -> None:
            row.end_date = None

        return self._refreshed(db, self._write_pair(db, ended, clear_end_date))

    # ------------------------------------------------
    # Listings
    # ------------------------------------------------
    def _list_pairs(self, db: Session, ended: bool, gender: Optional[Gender]) -> list[Relationship]:
        spouse = aliased(Person)

        query = (
            self._spouse_rows(db)
            .join(Person, Relationship.person_id == Person.id)
            .join(spouse, Relationship.related_person_id == spouse.id)
            .options(
                joinedload(Relationship.person),
                joinedload(Relationship.related_person),
            )
        )

        if ended:
            query = query.filter(Relationship.end_date.isnot(None))
        else:
            query = query.filter(Relationship.end_date.is_(None))

        if gender:
            query = query.filter(or_(Person.gender == gender, spouse.gender == gender))

        return query.order_by(Relationship.start_date, Relationship.id).all()

    def list_married(self, db: Session, gender: Optional[Gender] = None) -> list[Relationship]:
        return self._list_pairs(db, ended=False, gender=gender)

    def list_divorced(self, db: Session, gender: Optional[Gender] = None) -> list[Relationship]:
        return self._list_pairs(db, ended=True, gender=gender)

    def list_single(self, db: Session, gender: Optional[Gender] = None) -> list[Person]:
        as_person = select(Relationship.person_id).where(
            Relationship.type == RelationshipType.SPOUSE
        )
        as_related = select(Relationship.related_person_id).where(
            Relationship.type == RelationshipType.SPOUSE
        )

        query = db.query(Person).filter(
            Person.id.not_in(as_person),
            Person.id.not_in(as_related),
        )
        if gender:
            query = query.filter(Person.gender == gender)

        return query.order_by(Person.created_at.desc()).all()
