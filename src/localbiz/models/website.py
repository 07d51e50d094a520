"""GeneratedWebsite SQLAlchemy model for AI-generated candidate sites."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, utcnow

if TYPE_CHECKING:
    from .business import Business


class GeneratedWebsite(Base):
    """One generated website variation belonging to exactly one business.

    A website is pending deployment while ``preview_url`` and ``deployed_at``
    are both unset; deployment always sets them together.

    Attributes:
        id: Unique identifier (UUID).
        business_id: Owning business.
        template_name: Visual template used for generation.
        variation_number: 1-based position among the variations of one run.
        html_content: The complete single-file HTML document.
        preview_url: Public URL once deployed.
        deployed_at: Timestamp of the most recent deployment.
        created_at: Row creation timestamp.
    """

    __tablename__ = "generated_websites"

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

    template_name: Mapped[str] = mapped_column(String(100), nullable=False)
    variation_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)

    preview_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Live preview URL, NULL until deployed"
    )
    deployed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )

    business: Mapped["Business"] = relationship("Business", back_populates="websites")

    def __repr__(self) -> str:
        return (
            f"<GeneratedWebsite(id={self.id!r}, business_id={self.business_id!r}, "
            f"template={self.template_name!r}, v{self.variation_number})>"
        )

    @property
    def is_deployed(self) -> bool:
        """Check if the website has a recorded deployment."""
        return self.preview_url is not None and self.deployed_at is not None

    def to_dict(self, include_html: bool = False) -> dict:
        """Convert website to dictionary representation.

        Args:
            include_html: Include the full HTML document.

        Returns:
            Dictionary with website fields.
        """
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "template_name": self.template_name,
            "variation_number": self.variation_number,
            "html_length": len(self.html_content or ""),
            "preview_url": self.preview_url,
            "deployed_at": self.deployed_at.isoformat() if self.deployed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_html:
            data["html_content"] = self.html_content
        return data
