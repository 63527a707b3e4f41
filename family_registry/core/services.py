from dataclasses import dataclass

from fastapi import Request

from family_registry.core.marriage_service import MarriageService
from family_registry.core.marriage_store import MarriageStore
from family_registry.core.person_service import PersonService
from family_registry.core.person_store import PersonStore


@dataclass
class Services:
    persons: PersonService
    marriages: MarriageService


def build_services() -> Services:
    """
    Wire stores into services once; create_app keeps the result
    on ``app.state.services``.
    """
    person_store = PersonStore()
    marriage_store = MarriageStore()

    return Services(
        persons=PersonService(person_store),
        marriages=MarriageService(person_store, marriage_store),
    )


# --------------------------------------------------
# FastAPI dependencies
# --------------------------------------------------
def get_person_service(request: Request) -> PersonService:
    return request.app.state.services.persons


def get_marriage_service(request: Request) -> MarriageService:
    return request.app.state.services.marriages
