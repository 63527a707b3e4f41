from datetime import date, datetime
from typing import Optional

from pydantic import Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from family_registry.models.person import Gender
from family_registry.schemas.common_schema import CamelModel


NAME_MAX_LENGTH = 100
BIO_MAX_LENGTH = 1000

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: Optional[str]) -> Optional[str]:
    # Validate only; the string is stored as the client sent it
    if value is not None:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("Input should be a valid URL")
    return value


# ---------------------------------------------------------
# CREATE
# ---------------------------------------------------------
class PersonCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    gender: Gender
    birth_date: date
    death_date: Optional[date] = None
    bio: Optional[str] = Field(None, max_length=BIO_MAX_LENGTH)
    profile_picture_url: Optional[str] = None

    @field_validator("profile_picture_url")
    @classmethod
    def check_profile_picture_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


# ---------------------------------------------------------
# UPDATE (partial: only fields present in the body change)
# ---------------------------------------------------------
class PersonUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    death_date: Optional[date] = None
    bio: Optional[str] = Field(None, max_length=BIO_MAX_LENGTH)
    profile_picture_url: Optional[str] = None

    @field_validator("profile_picture_url")
    @classmethod
    def check_profile_picture_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


# ---------------------------------------------------------
# OUTPUT
# ---------------------------------------------------------
class PersonOut(CamelModel):
    id: str
    name: str
    gender: Gender

    birth_date: date
    death_date: Optional[date] = None

    bio: Optional[str] = None
    profile_picture_url: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class PersonCountOut(CamelModel):
    count: int
