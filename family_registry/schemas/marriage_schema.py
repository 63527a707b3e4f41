from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import Field

from family_registry.models.relationship import RelationshipType
from family_registry.schemas.common_schema import CamelModel
from family_registry.schemas.person_schema import PersonOut


# --------------------------------------------------
# REQUESTS
# --------------------------------------------------
class MarriageCreate(CamelModel):
    person_id1: UUID = Field(..., alias="personId1")
    person_id2: UUID = Field(..., alias="personId2")
    start_date: Optional[date] = None


class DivorceRequest(CamelModel):
    person_id: UUID
    end_date: Optional[date] = None


class CancelMarriageRequest(CamelModel):
    person_id: UUID


class CancelDivorceRequest(CamelModel):
    person_id: UUID


# --------------------------------------------------
# RELATIONSHIP ROW
# --------------------------------------------------
class MarriageOut(CamelModel):
    id: str
    person_id: str
    person_name: str
    related_person_id: str
    related_person_name: str
    type: RelationshipType
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# --------------------------------------------------
# COUPLES (one entry per mirrored pair)
# --------------------------------------------------
class MarriedCoupleOut(CamelModel):
    husband: PersonOut
    wife: PersonOut
    start_date: Optional[date] = None


class DivorcedCoupleOut(MarriedCoupleOut):
    end_date: Optional[date] = None


class MaritalStatusOut(CamelModel):
    person_id: str
    status: str
