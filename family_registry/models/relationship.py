import enum
import uuid

from sqlalchemy import Column, String, Date, Enum, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import relationship

from family_registry.database import Base


class RelationshipType(str, enum.Enum):
    SPOUSE = "SPOUSE"


ACTIVE_SPOUSE_CLAUSE = "type = 'SPOUSE' AND end_date IS NULL"


class Relationship(Base):
    """
    One direction of a link between two persons.
    A marriage is always stored as two mirrored rows
    (person_id / related_person_id swapped).
    """

    __tablename__ = "relationships"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # ------------------------------------
    # The two persons (names are snapshots taken at creation)
    # ------------------------------------
    person_id = Column(
        String,
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    person_name = Column(String(100), nullable=False)

    related_person_id = Column(
        String,
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    related_person_name = Column(String(100), nullable=False)

    type = Column(
        Enum(RelationshipType, name="relationship_type"),
        nullable=False,
        default=RelationshipType.SPOUSE,
    )

    # ------------------------------------
    # Marriage period; end_date NULL = still married
    # ------------------------------------
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    person = relationship("Person", foreign_keys=[person_id])
    related_person = relationship("Person", foreign_keys=[related_person_id])

    __table_args__ = (
        CheckConstraint(
            "person_id != related_person_id",
            name="ck_relationships_not_self",
        ),
        # A person can hold only one active spouse row at a time
        Index(
            "uq_relationships_active_spouse",
            "person_id",
            unique=True,
            sqlite_where=text(ACTIVE_SPOUSE_CLAUSE),
            postgresql_where=text(ACTIVE_SPOUSE_CLAUSE),
        ),
    )
