"""Shared fixtures: an in-memory database per test case."""

from datetime import date
import unittest

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from family_registry.config import settings
from family_registry.core.services import build_services
from family_registry.database import Base, build_engine, get_db
from family_registry.main import create_app
from family_registry.models.person import Gender, Person
from family_registry.models.relationship import Relationship
from family_registry.schemas.person_schema import PersonCreate

API = settings.API_PREFIX


class DatabaseTestCase(unittest.TestCase):
    """Fresh SQLite schema for every test."""

    def setUp(self):
        self.engine = build_engine("sqlite://", poolclass=StaticPool)
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.Session()
        self.services = build_services()

    def tearDown(self):
        self.db.close()
        Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()

    def add_person(
        self,
        name: str,
        gender: Gender,
        birth_date: date = date(1980, 1, 1),
        death_date: date | None = None,
    ) -> Person:
        return self.services.persons.create_person(
            self.db,
            PersonCreate(
                name=name,
                gender=gender,
                birth_date=birth_date,
                death_date=death_date,
            ),
        )

    def spouse_rows(self) -> list[Relationship]:
        session = self.Session()
        try:
            return session.query(Relationship).order_by(Relationship.person_name).all()
        finally:
            session.close()


class ApiTestCase(DatabaseTestCase):
    """Application wired to the per-test database."""

    def setUp(self):
        super().setUp()
        self.app = create_app()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        self.app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(self.app)

    def tearDown(self):
        self.app.dependency_overrides.clear()
        super().tearDown()

    def create_person(self, name: str, gender: str, **extra) -> dict:
        payload = {"name": name, "gender": gender, "birthDate": "1980-01-01"}
        payload.update(extra)
        rv = self.client.post(f"{API}/persons/one", json=payload)
        self.assertEqual(rv.status_code, 201, rv.text)
        return rv.json()["data"]
