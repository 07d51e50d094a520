"""Business SQLAlchemy model for discovered local businesses."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, Enum as SQLEnum, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, utcnow

if TYPE_CHECKING:
    from .outreach import OutreachLog
    from .website import GeneratedWebsite


class BusinessStatus(str, Enum):
    """Lifecycle status of a business, in pipeline order."""

    DISCOVERED = "discovered"
    ENRICHED = "enriched"
    WEBSITE_GENERATED = "website_generated"
    DEPLOYED = "deployed"
    CONTACTED = "contacted"
    SOLD = "sold"


class BusinessSource(str, Enum):
    """Known origin systems for business records.

    The ``source`` column is a free-form string; these are the values the
    pipeline itself writes or expects from registry imports.
    """

    GOOGLE_PLACES = "google_places"
    MS_SOS = "ms_sos"
    TN_SOS = "tn_sos"
    MANUAL = "manual"


class Business(Base):
    """SQLAlchemy model representing one discovered real-world business.

    Attributes:
        id: Unique identifier (UUID).
        name: Business name.
        business_type: Human-readable type label (e.g. "Barber Shops").
        category: Discovery category value (e.g. "barber_shop").
        address: Street address.
        city: City.
        state: Two-letter state code.
        county: County name, when known.
        phone: Phone number.
        email: Contact email.
        website_url: Known website URL; always None for discovered prospects.
        has_website: 1 if the business has a website, else 0.
        source: Origin system that produced the record.
        source_id: The origin system's native identifier.
        google_place_id: Google Places identifier, when sourced from Places.
        status: Current lifecycle status.
        discovered_at: When the business was first discovered.
        enriched_at: When details were last refreshed.
        created_at: Row creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "businesses"
    __table_args__ = (
        Index(
            "uq_businesses_source_source_id",
            "source",
            "source_id",
            unique=True,
            sqlite_where=text("source_id IS NOT NULL"),
            postgresql_where=text("source_id IS NOT NULL"),
        ),
        Index(
            "uq_businesses_google_place_id",
            "google_place_id",
            unique=True,
            sqlite_where=text("google_place_id IS NOT NULL"),
            postgresql_where=text("google_place_id IS NOT NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    # Descriptive fields
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    county: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Web presence
    website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    has_website: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="1 if the business already has a website, else 0"
    )

    # Provenance
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Native identifier in the source system"
    )
    google_place_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Google Places place_id for deduplication"
    )

    status: Mapped[BusinessStatus] = mapped_column(
        SQLEnum(
            BusinessStatus,
            name="business_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=BusinessStatus.DISCOVERED,
        index=True
    )

    # Timestamps
    discovered_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    websites: Mapped[list["GeneratedWebsite"]] = relationship(
        "GeneratedWebsite",
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    outreach: Mapped[list["OutreachLog"]] = relationship(
        "OutreachLog",
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Business(id={self.id!r}, name={self.name!r}, status={self.status.value!r})>"

    def to_dict(self) -> dict:
        """Convert business to dictionary representation.

        Returns:
            Dictionary with all business fields.
        """
        return {
            "id": self.id,
            "name": self.name,
            "business_type": self.business_type,
            "category": self.category,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "county": self.county,
            "phone": self.phone,
            "email": self.email,
            "website_url": self.website_url,
            "has_website": self.has_website,
            "source": self.source,
            "source_id": self.source_id,
            "google_place_id": self.google_place_id,
            "status": self.status.value,
            "discovered_at": self.discovered_at.isoformat() if self.discovered_at else None,
            "enriched_at": self.enriched_at.isoformat() if self.enriched_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
