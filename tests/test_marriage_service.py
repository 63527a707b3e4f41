"""Tests for the marriage state machine and the marriage store."""

from datetime import date
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from family_registry.core.errors import ErrorKind, ServiceError
from family_registry.core.marriage_service import MaritalStatus
from family_registry.core.marriage_store import BrokenPairError, MarriageStore
from family_registry.models.person import Gender
from family_registry.models.relationship import Relationship, RelationshipType

from tests.support import DatabaseTestCase


class MarriageTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.marriages = self.services.marriages
        self.bob = self.add_person("Bob", Gender.MAN)
        self.alice = self.add_person("Alice", Gender.WOMAN)

    def assertKind(self, ctx, kind):
        self.assertEqual(ctx.exception.kind, kind)


class TestMarry(MarriageTestCase):
    def test_marry_creates_mirrored_active_pair(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2010, 5, 20))

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 2)
        alice_row, bob_row = rows
        self.assertEqual(bob_row.person_id, alice_row.related_person_id)
        self.assertEqual(bob_row.related_person_id, alice_row.person_id)
        self.assertEqual(bob_row.person_name, "Bob")
        self.assertEqual(bob_row.related_person_name, "Alice")
        for row in rows:
            self.assertEqual(row.type, RelationshipType.SPOUSE)
            self.assertEqual(row.start_date, date(2010, 5, 20))
            self.assertIsNone(row.end_date)

    def test_marry_defaults_start_date(self):
        rows = self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.assertIsNotNone(rows[0].start_date)

    def test_same_gender_is_conflict(self):
        tom = self.add_person("Tom", Gender.MAN)
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.marry(self.db, self.bob.id, tom.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)
        self.assertEqual(self.spouse_rows(), [])

    def test_self_marriage_is_validation_error(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.marry(self.db, self.bob.id, self.bob.id)
        self.assertKind(ctx, ErrorKind.VALIDATION)

    def test_missing_person_is_not_found(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.marry(
                self.db, self.bob.id, "00000000-0000-0000-0000-000000000000"
            )
        self.assertKind(ctx, ErrorKind.NOT_FOUND)

    def test_already_married_is_conflict_and_pair_untouched(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2010, 5, 20))
        carol = self.add_person("Carol", Gender.WOMAN)

        with self.assertRaises(ServiceError) as ctx:
            self.marriages.marry(self.db, self.bob.id, carol.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)
        self.assertIn("Bob", ctx.exception.message)

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(row.end_date is None for row in rows))
        self.assertEqual({row.person_name for row in rows}, {"Bob", "Alice"})

    def test_race_on_active_marriage_is_conflict(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        carol = self.add_person("Carol", Gender.WOMAN)

        # Pretend the precondition check ran before the other marriage landed
        with patch.object(MarriageStore, "find_active_marriage", return_value=None):
            with self.assertRaises(ServiceError) as ctx:
                self.marriages.marry(self.db, self.bob.id, carol.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)
        self.assertEqual(len(self.spouse_rows()), 2)

    def test_divorced_person_can_remarry(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.marriages.divorce(self.db, self.bob.id)
        carol = self.add_person("Carol", Gender.WOMAN)

        self.marriages.marry(self.db, self.bob.id, carol.id)
        self.assertEqual(self.marriages.status_of(self.db, self.bob.id), MaritalStatus.MARRIED)
        self.assertEqual(len(self.spouse_rows()), 4)


class TestDivorceAndCancel(MarriageTestCase):
    def test_divorce_sets_end_date_on_both_rows(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2010, 5, 20))
        rows = self.marriages.divorce(self.db, self.alice.id, date(2015, 1, 1))

        self.assertEqual(rows[0].person_id, self.alice.id)
        self.assertEqual([r.end_date for r in self.spouse_rows()], [date(2015, 1, 1)] * 2)

    def test_divorce_without_marriage_is_conflict(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.divorce(self.db, self.bob.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)

    def test_divorce_missing_person_is_not_found(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.divorce(self.db, "missing")
        self.assertKind(ctx, ErrorKind.NOT_FOUND)

    def test_divorce_then_cancel_divorce_restores_pair(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2010, 5, 20))
        before = [
            (r.person_id, r.related_person_id, r.type, r.start_date)
            for r in self.spouse_rows()
        ]

        self.marriages.divorce(self.db, self.bob.id, date(2015, 1, 1))
        self.assertEqual(
            self.marriages.status_of(self.db, self.bob.id), MaritalStatus.DIVORCED
        )
        self.marriages.cancel_divorce(self.db, self.alice.id)

        after = self.spouse_rows()
        self.assertEqual(
            [(r.person_id, r.related_person_id, r.type, r.start_date) for r in after],
            before,
        )
        self.assertTrue(all(r.end_date is None for r in after))

    def test_cancel_divorce_when_married_is_conflict(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.cancel_divorce(self.db, self.bob.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)

    def test_cancel_divorce_after_remarriage_is_conflict(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.marriages.divorce(self.db, self.bob.id)
        carol = self.add_person("Carol", Gender.WOMAN)
        self.marriages.marry(self.db, self.bob.id, carol.id)

        with self.assertRaises(ServiceError) as ctx:
            self.marriages.cancel_divorce(self.db, self.alice.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)

    def test_cancel_marriage_deletes_pair(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.assertEqual(self.marriages.cancel_marriage(self.db, self.alice.id), [])

        self.assertEqual(self.spouse_rows(), [])
        store = MarriageStore()
        self.assertIsNone(store.find_any_marriage(self.db, self.bob.id))
        self.assertIsNone(store.find_any_marriage(self.db, self.alice.id))
        self.assertEqual(self.marriages.status_of(self.db, self.bob.id), MaritalStatus.SINGLE)

    def test_cancel_marriage_works_on_divorced_pair(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.marriages.divorce(self.db, self.bob.id)

        self.marriages.cancel_marriage(self.db, self.bob.id)
        self.assertEqual(self.spouse_rows(), [])

    def test_cancel_marriage_without_marriage_is_conflict(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.cancel_marriage(self.db, self.bob.id)
        self.assertKind(ctx, ErrorKind.CONFLICT)

    def test_missing_mirror_is_internal_error(self):
        self.marriages.marry(self.db, self.bob.id, self.alice.id)
        self.db.query(Relationship).filter(Relationship.person_id == self.alice.id).delete()
        self.db.commit()

        with self.assertRaises(ServiceError) as ctx:
            self.marriages.divorce(self.db, self.bob.id, date(2015, 1, 1))
        self.assertKind(ctx, ErrorKind.INTERNAL)

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0].end_date)


class TestRepeatedMarriages(MarriageTestCase):
    """Bob and Alice married, divorced, remarried and divorced again."""

    def setUp(self):
        super().setUp()
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2000, 1, 1))
        self.marriages.divorce(self.db, self.bob.id, date(2005, 1, 1))
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2010, 1, 1))
        self.marriages.divorce(self.db, self.alice.id, date(2015, 1, 1))

    def end_dates(self, start_date):
        return [r.end_date for r in self.spouse_rows() if r.start_date == start_date]

    def test_second_divorce_leaves_first_pair_alone(self):
        self.assertEqual(self.end_dates(date(2000, 1, 1)), [date(2005, 1, 1)] * 2)
        self.assertEqual(self.end_dates(date(2010, 1, 1)), [date(2015, 1, 1)] * 2)

    def test_cancel_divorce_restores_latest_pair_only(self):
        self.assertEqual(
            self.marriages.status_of(self.db, self.bob.id), MaritalStatus.DIVORCED
        )
        rows = self.marriages.cancel_divorce(self.db, self.bob.id)

        self.assertEqual([r.start_date for r in rows], [date(2010, 1, 1)] * 2)
        self.assertEqual(
            self.marriages.status_of(self.db, self.alice.id), MaritalStatus.MARRIED
        )

        active = [r for r in self.spouse_rows() if r.end_date is None]
        self.assertEqual(len(active), 2)
        self.assertTrue(all(r.start_date == date(2010, 1, 1) for r in active))
        self.assertEqual(self.end_dates(date(2000, 1, 1)), [date(2005, 1, 1)] * 2)

    def test_cancel_marriage_deletes_latest_pair_only(self):
        self.marriages.cancel_marriage(self.db, self.alice.id)

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(r.start_date == date(2000, 1, 1) for r in rows))
        self.assertEqual(
            self.marriages.status_of(self.db, self.bob.id), MaritalStatus.DIVORCED
        )


class TestListings(MarriageTestCase):
    def setUp(self):
        super().setUp()
        self.tom = self.add_person("Tom", Gender.MAN)
        self.eve = self.add_person("Eve", Gender.WOMAN)
        self.single = self.add_person("Sam", Gender.MAN)
        self.marriages.marry(self.db, self.bob.id, self.alice.id, date(2000, 1, 1))
        self.marriages.marry(self.db, self.eve.id, self.tom.id, date(2005, 1, 1))
        self.marriages.divorce(self.db, self.tom.id, date(2010, 1, 1))

    def test_married_couples_appear_once(self):
        listing = self.marriages.persons_by_status(self.db, "married", Gender.WOMAN)
        self.assertEqual(len(listing.items), 1)
        couple = listing.items[0]
        self.assertEqual(couple.husband.name, "Bob")
        self.assertEqual(couple.wife.name, "Alice")
        self.assertEqual(couple.start_date, date(2000, 1, 1))
        self.assertEqual(listing.message, "Found 1 married couples (WOMAN)")

    def test_divorced_couples_assign_by_gender(self):
        listing = self.marriages.persons_by_status(self.db, MaritalStatus.DIVORCED)
        self.assertEqual(len(listing.items), 1)
        couple = listing.items[0]
        self.assertEqual(couple.husband.name, "Tom")
        self.assertEqual(couple.wife.name, "Eve")
        self.assertEqual(couple.end_date, date(2010, 1, 1))

    def test_single_excludes_divorced(self):
        listing = self.marriages.persons_by_status(self.db, "single")
        self.assertEqual([p.name for p in listing.items], ["Sam"])
        self.assertEqual(listing.message, "Found 1 single persons")

    def test_single_with_gender_filter(self):
        listing = self.marriages.persons_by_status(self.db, "single", Gender.WOMAN)
        self.assertEqual(listing.items, [])

    def test_unknown_status_is_validation_error(self):
        with self.assertRaises(ServiceError) as ctx:
            self.marriages.persons_by_status(self.db, "widowed")
        self.assertKind(ctx, ErrorKind.VALIDATION)


class TestMarriageStore(MarriageTestCase):
    def test_active_index_rejects_second_active_row(self):
        store = MarriageStore()
        carol = self.add_person("Carol", Gender.WOMAN)
        store.create_marriage_pair(self.db, self.bob, self.alice, date(2000, 1, 1))

        with self.assertRaises(IntegrityError):
            store.create_marriage_pair(self.db, self.bob, carol, date(2001, 1, 1))
        self.assertEqual(len(self.spouse_rows()), 2)

    def test_mutations_return_none_without_pair(self):
        store = MarriageStore()
        self.assertIsNone(store.divorce(self.db, self.bob.id, date(2001, 1, 1)))
        self.assertIsNone(store.cancel_divorce(self.db, self.bob.id))
        self.assertIsNone(store.cancel_marriage(self.db, self.bob.id))

    def test_failed_pair_write_rolls_back_both_rows(self):
        store = MarriageStore()
        store.create_marriage_pair(self.db, self.bob, self.alice, date(2000, 1, 1))
        anchor = store.find_active_marriage(self.db, self.bob.id)
        written = []

        def end_then_fail(session, row):
            row.end_date = date(2015, 1, 1)
            written.append(row.id)
            if len(written) == 2:
                raise RuntimeError("disk full")

        with self.assertRaises(RuntimeError):
            store._write_pair(self.db, anchor, end_then_fail)

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(row.end_date is None for row in rows))

    def test_missing_mirror_raises_broken_pair(self):
        store = MarriageStore()
        store.create_marriage_pair(self.db, self.bob, self.alice, date(2000, 1, 1))
        self.db.query(Relationship).filter(Relationship.person_id == self.alice.id).delete()
        self.db.commit()

        with self.assertRaises(BrokenPairError):
            store.divorce(self.db, self.bob.id, date(2015, 1, 1))
        with self.assertRaises(BrokenPairError):
            store.cancel_marriage(self.db, self.bob.id)

        rows = self.spouse_rows()
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0].end_date)
