"""OutreachLog SQLAlchemy model for contact attempts."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, utcnow

if TYPE_CHECKING:
    from .business import Business


class OutreachMethod(str, Enum):
    """Channel used to contact a business."""

    EMAIL = "email"
    PHONE = "phone"
    IN_PERSON = "in_person"


class OutreachLog(Base):
    """A single contact attempt toward a business.

    Attributes:
        id: Unique identifier (UUID).
        business_id: Business that was contacted.
        method: Contact channel.
        sent_at: When the attempt was made.
        response: Reply text, if any.
        responded_at: When the reply was recorded.
        notes: Free-form operator notes.
        created_at: Row creation timestamp.
    """

    __tablename__ = "outreach_log"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    business_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    method: Mapped[OutreachMethod] = mapped_column(
        SQLEnum(
            OutreachMethod,
            name="outreach_method",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False
    )
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    business: Mapped["Business"] = relationship("Business", back_populates="outreach")

    def __repr__(self) -> str:
        return f"<OutreachLog(id={self.id!r}, business_id={self.business_id!r}, method={self.method.value!r})>"

    def to_dict(self) -> dict:
        """Convert outreach record to dictionary representation."""
        return {
            "id": self.id,
            "business_id": self.business_id,
            "method": self.method.value,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "response": self.response,
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
