import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Date, DateTime, Enum, Text

from family_registry.database import Base


class Gender(str, enum.Enum):
    MAN = "MAN"
    WOMAN = "WOMAN"


class Person(Base):
    __tablename__ = "persons"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), nullable=False, index=True)
    gender = Column(Enum(Gender, name="gender"), nullable=False, index=True)

    birth_date = Column(Date, nullable=False)
    # NULL while the person is alive
    death_date = Column(Date, nullable=True)

    bio = Column(Text, nullable=True)
    profile_picture_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
