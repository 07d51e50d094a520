"""Persistent store for businesses, generated websites and outreach.

``BusinessStore`` is the only component that touches the database. The entry
point builds one around a ``Database`` and passes it to every orchestrator.
Each mutation runs in its own session that commits on success and rolls back
on error.

Writes that complete a pipeline stage move the owning business forward
through ``lifecycle.apply_event``:

    insert_website          -> website_generated
    mark_website_deployed   -> deployed
    log_outreach            -> contacted
    mark_business_enriched  -> enriched

Usage:
    >>> store = BusinessStore.from_url("sqlite:///./data/local-biz.db")
    >>> await store.initialize()
    >>> business = await store.insert_business({"name": "Classic Cuts", "source": "manual"})
    >>> await store.close()
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncGenerator, Iterable, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import DuplicateRecordError, NotFoundError, StorageError
from .lifecycle import StoreEvent, apply_event
from .models import (
    Business,
    BusinessStatus,
    Database,
    GeneratedWebsite,
    OutreachLog,
    OutreachMethod,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100
DEFAULT_PENDING_LIMIT = 10

BUSINESS_FIELDS = frozenset({
    "id", "name", "business_type", "category", "address", "city", "state",
    "county", "phone", "email", "website_url", "has_website", "source",
    "source_id", "google_place_id", "status", "discovered_at", "enriched_at",
})
ENRICHMENT_FIELDS = frozenset({
    "website_url", "has_website", "phone", "email", "address", "city", "state",
})
WEBSITE_FIELDS = frozenset({
    "id", "business_id", "template_name", "variation_number", "html_content",
})
OUTREACH_FIELDS = frozenset({
    "id", "business_id", "method", "sent_at", "response", "notes",
})


@dataclass
class BusinessQuery:
    """Filter for ``query_businesses``. Unset fields do not constrain."""

    status: Optional[BusinessStatus] = None
    source: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    category: Optional[str] = None
    has_website: Optional[bool] = None
    limit: int = DEFAULT_QUERY_LIMIT
    offset: int = 0


@dataclass
class StoreStats:
    """Aggregate counts across the store."""

    total_businesses: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_source: dict[str, int] = field(default_factory=dict)
    total_websites: int = 0
    total_outreach: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_businesses": self.total_businesses,
            "by_status": dict(self.by_status),
            "by_source": dict(self.by_source),
            "total_websites": self.total_websites,
            "total_outreach": self.total_outreach,
        }


@dataclass
class WebsiteListing:
    """A generated website joined with its business, without the HTML body."""

    website_id: str
    business_id: str
    business_name: str
    city: Optional[str]
    state: Optional[str]
    template_name: str
    variation_number: int
    size_chars: int
    created_at: Optional[datetime]
    preview_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "website_id": self.website_id,
            "business_id": self.business_id,
            "business_name": self.business_name,
            "city": self.city,
            "state": self.state,
            "template_name": self.template_name,
            "variation_number": self.variation_number,
            "size_chars": self.size_chars,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "preview_url": self.preview_url,
        }


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


def _check_fields(values: Mapping[str, Any], allowed: frozenset, kind: str) -> None:
    unknown = set(values) - allowed
    if unknown:
        raise ValueError(f"Unknown {kind} field(s): {', '.join(sorted(unknown))}")


def _normalize_business_values(values: dict[str, Any]) -> dict[str, Any]:
    if "has_website" in values and values["has_website"] is not None:
        values["has_website"] = 1 if values["has_website"] else 0
    if values.get("status") is not None:
        values["status"] = BusinessStatus(values["status"])
    return values


def _advance(business: Business, event: StoreEvent) -> None:
    new_status = apply_event(business.status, event)
    if new_status != business.status:
        logger.debug(
            "Business %s status %s -> %s",
            business.id,
            business.status.value,
            new_status.value,
        )
        business.status = new_status
    business.updated_at = utcnow()


class BusinessStore:
    """Async data access layer over the three pipeline tables.

    Attributes:
        database: The Database owning the engine and session factory.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "BusinessStore":
        """Build a store with its own Database for ``database_url``."""
        return cls(Database.from_url(database_url, echo=echo))

    async def initialize(self) -> None:
        """Create the schema if it does not exist."""
        try:
            await self.database.create_tables()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create schema: {e}") from e

    async def close(self) -> None:
        await self.database.close()

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.database.session() as session:
                yield session
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateRecordError(str(e.orig)) from e
            raise StorageError(str(e.orig)) from e
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    # =========================================================================
    # Businesses
    # =========================================================================

    async def insert_business(self, data: Mapping[str, Any]) -> Business:
        """Insert one business.

        Missing ``status`` defaults to discovered, ``has_website`` to 0 and
        ``discovered_at`` to now. Booleans for ``has_website`` are stored as
        0/1.

        Args:
            data: Column values. ``name`` and ``source`` are required.

        Returns:
            The inserted Business.

        Raises:
            ValueError: If a required field is missing or a field is unknown.
            DuplicateRecordError: If a provenance identifier already exists.
            StorageError: On any other database failure.
        """
        _check_fields(data, BUSINESS_FIELDS, "business")
        values = _normalize_business_values(
            {key: value for key, value in data.items() if value is not None}
        )
        if not values.get("name"):
            raise ValueError("Business name is required")
        if not values.get("source"):
            raise ValueError("Business source is required")

        values.setdefault("status", BusinessStatus.DISCOVERED)
        values.setdefault("has_website", 0)
        now = utcnow()
        values.setdefault("discovered_at", now)
        values["created_at"] = now
        values["updated_at"] = now

        business = Business(**values)
        async with self._session() as session:
            session.add(business)
            await session.flush()

        logger.debug("Inserted business %s (%s)", business.id, business.name)
        return business

    async def insert_businesses(self, batch: Iterable[Mapping[str, Any]]) -> int:
        """Insert many businesses, skipping duplicates.

        Each row commits on its own, so a duplicate later in the batch never
        undoes earlier rows.

        Returns:
            Number of rows actually inserted.
        """
        inserted = 0
        for data in batch:
            try:
                await self.insert_business(data)
                inserted += 1
            except DuplicateRecordError:
                logger.debug("Skipping duplicate business %s", data.get("name"))
        return inserted

    async def get_business_by_id(self, business_id: str) -> Optional[Business]:
        async with self._session() as session:
            return await session.get(Business, business_id)

    async def get_business_by_source_id(
        self, source: str, source_id: str
    ) -> Optional[Business]:
        """Look up a business by its provenance identifier."""
        stmt = select(Business).where(
            Business.source == source, Business.source_id == source_id
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_business_by_google_place_id(self, place_id: str) -> Optional[Business]:
        stmt = select(Business).where(Business.google_place_id == place_id)
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def find_business_by_name_and_location(
        self, name: str, city: Optional[str], state: Optional[str]
    ) -> Optional[Business]:
        """Find a business with the same name, city and state, ignoring case.

        A missing city or state only matches a missing (or empty) value.
        """
        stmt = (
            select(Business)
            .where(
                func.lower(func.trim(Business.name)) == (name or "").strip().lower(),
                func.lower(func.coalesce(Business.city, "")) == (city or "").strip().lower(),
                func.lower(func.coalesce(Business.state, "")) == (state or "").strip().lower(),
            )
            .limit(1)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def query_businesses(self, query: Optional[BusinessQuery] = None) -> list[Business]:
        """List businesses matching a filter, most recently discovered first."""
        query = query or BusinessQuery()
        stmt = select(Business)

        if query.status is not None:
            stmt = stmt.where(Business.status == BusinessStatus(query.status))
        if query.source is not None:
            stmt = stmt.where(Business.source == query.source)
        if query.state is not None:
            stmt = stmt.where(Business.state == query.state)
        if query.city is not None:
            stmt = stmt.where(Business.city == query.city)
        if query.category is not None:
            stmt = stmt.where(Business.category == query.category)
        if query.has_website is not None:
            stmt = stmt.where(Business.has_website == (1 if query.has_website else 0))

        stmt = (
            stmt.order_by(Business.discovered_at.desc())
            .limit(query.limit)
            .offset(query.offset)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_businesses_needing_websites(
        self, limit: int = DEFAULT_PENDING_LIMIT
    ) -> list[Business]:
        """Businesses without a website that have not been generated for yet."""
        stmt = (
            select(Business)
            .where(
                Business.has_website == 0,
                Business.status.in_(
                    [BusinessStatus.DISCOVERED, BusinessStatus.ENRICHED]
                ),
            )
            .order_by(Business.discovered_at.desc())
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update_business(self, business_id: str, **fields: Any) -> Optional[Business]:
        """Partially update a business.

        Fields passed as None are left untouched. ``updated_at`` is always
        bumped.

        Returns:
            The updated Business, or None if it does not exist.
        """
        _check_fields(fields, BUSINESS_FIELDS - {"id"}, "business")
        values = _normalize_business_values(
            {key: value for key, value in fields.items() if value is not None}
        )

        async with self._session() as session:
            business = await session.get(Business, business_id)
            if business is None:
                return None
            for key, value in values.items():
                setattr(business, key, value)
            business.updated_at = utcnow()
        return business

    async def update_business_status(
        self, business_id: str, status: BusinessStatus
    ) -> Optional[Business]:
        """Set a business's status directly.

        This is an operator override and may move a business backwards.
        """
        return await self.update_business(business_id, status=BusinessStatus(status))

    async def mark_business_enriched(
        self, business_id: str, data: Mapping[str, Any]
    ) -> Optional[Business]:
        """Record refreshed details and advance the business to enriched.

        Args:
            business_id: Business to update.
            data: Any of website_url, has_website, phone, email, address,
                city, state. None values are ignored.

        Returns:
            The updated Business, or None if it does not exist.
        """
        _check_fields(data, ENRICHMENT_FIELDS, "enrichment")
        values = _normalize_business_values(
            {key: value for key, value in data.items() if value is not None}
        )

        async with self._session() as session:
            business = await session.get(Business, business_id)
            if business is None:
                return None
            for key, value in values.items():
                setattr(business, key, value)
            business.enriched_at = utcnow()
            _advance(business, StoreEvent.BUSINESS_ENRICHED)
        return business

    async def delete_business(self, business_id: str) -> bool:
        """Delete a business and, by cascade, its websites and outreach."""
        async with self._session() as session:
            result = await session.execute(
                delete(Business).where(Business.id == business_id)
            )
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted business %s", business_id)
        return deleted

    async def count_businesses_by_status(self) -> dict[str, int]:
        """Business counts keyed by every status value, zero when absent."""
        counts = {status.value: 0 for status in BusinessStatus}
        stmt = select(Business.status, func.count()).group_by(Business.status)
        async with self._session() as session:
            result = await session.execute(stmt)
            for status, count in result.all():
                counts[BusinessStatus(status).value] = count
        return counts

    async def business_exists_by_source(self, source: str, source_id: str) -> bool:
        return await self.get_business_by_source_id(source, source_id) is not None

    async def business_exists_by_google_place_id(self, place_id: str) -> bool:
        return await self.get_business_by_google_place_id(place_id) is not None

    # =========================================================================
    # Generated websites
    # =========================================================================

    async def insert_website(self, data: Mapping[str, Any]) -> GeneratedWebsite:
        """Insert a generated website and advance its business.

        The insert and the status change commit together.

        Args:
            data: business_id, template_name and html_content are required;
                variation_number defaults to 1.

        Returns:
            The inserted GeneratedWebsite, pending deployment.

        Raises:
            ValueError: If a required field is missing or a field is unknown.
            NotFoundError: If the owning business does not exist.
            StorageError: On database failure.
        """
        _check_fields(data, WEBSITE_FIELDS, "website")
        values = {key: value for key, value in data.items() if value is not None}
        for required in ("business_id", "template_name", "html_content"):
            if not values.get(required):
                raise ValueError(f"Website {required} is required")
        values.setdefault("variation_number", 1)
        values["created_at"] = utcnow()

        async with self._session() as session:
            business = await session.get(Business, values["business_id"])
            if business is None:
                raise NotFoundError(f"Business not found: {values['business_id']}")
            website = GeneratedWebsite(**values)
            session.add(website)
            _advance(business, StoreEvent.WEBSITE_INSERTED)
            await session.flush()

        logger.debug(
            "Inserted website %s for business %s (%s v%d)",
            website.id,
            website.business_id,
            website.template_name,
            website.variation_number,
        )
        return website

    async def get_website_by_id(self, website_id: str) -> Optional[GeneratedWebsite]:
        async with self._session() as session:
            return await session.get(GeneratedWebsite, website_id)

    async def get_websites_by_business_id(self, business_id: str) -> list[GeneratedWebsite]:
        """All websites for a business, newest first."""
        stmt = (
            select(GeneratedWebsite)
            .where(GeneratedWebsite.business_id == business_id)
            .order_by(GeneratedWebsite.created_at.desc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_latest_website_for_business(
        self, business_id: str
    ) -> Optional[GeneratedWebsite]:
        websites = await self.get_websites_by_business_id(business_id)
        return websites[0] if websites else None

    async def get_latest_website(self) -> Optional[GeneratedWebsite]:
        """The most recently generated website across all businesses."""
        stmt = (
            select(GeneratedWebsite)
            .order_by(
                GeneratedWebsite.created_at.desc(), GeneratedWebsite.variation_number.desc()
            )
            .limit(1)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_websites(self, limit: int = DEFAULT_QUERY_LIMIT) -> list[WebsiteListing]:
        """Generated websites with their business name and HTML size, newest first."""
        stmt = (
            select(
                GeneratedWebsite.id,
                GeneratedWebsite.business_id,
                Business.name,
                Business.city,
                Business.state,
                GeneratedWebsite.template_name,
                GeneratedWebsite.variation_number,
                func.length(GeneratedWebsite.html_content),
                GeneratedWebsite.created_at,
                GeneratedWebsite.preview_url,
            )
            .join(Business, GeneratedWebsite.business_id == Business.id)
            .order_by(
                GeneratedWebsite.created_at.desc(), GeneratedWebsite.variation_number.desc()
            )
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [WebsiteListing(*row) for row in result.all()]

    async def get_websites_pending_deployment(
        self, limit: int = DEFAULT_PENDING_LIMIT
    ) -> list[GeneratedWebsite]:
        """Websites never deployed, oldest first."""
        stmt = (
            select(GeneratedWebsite)
            .where(GeneratedWebsite.deployed_at.is_(None))
            .order_by(GeneratedWebsite.created_at.asc())
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update_website(self, website_id: str, **fields: Any) -> Optional[GeneratedWebsite]:
        """Partially update template_name, variation_number or html_content.

        Deployment fields change only through ``mark_website_deployed``.
        """
        _check_fields(fields, WEBSITE_FIELDS - {"id", "business_id"}, "website")
        async with self._session() as session:
            website = await session.get(GeneratedWebsite, website_id)
            if website is None:
                return None
            for key, value in fields.items():
                if value is not None:
                    setattr(website, key, value)
        return website

    async def mark_website_deployed(
        self, website_id: str, preview_url: str
    ) -> Optional[GeneratedWebsite]:
        """Record a deployment and advance the owning business to deployed.

        ``preview_url`` and ``deployed_at`` are always set together;
        re-deploying overwrites both.

        Returns:
            The updated website, or None if it does not exist.
        """
        if not preview_url:
            raise ValueError("preview_url is required")

        async with self._session() as session:
            website = await session.get(GeneratedWebsite, website_id)
            if website is None:
                return None
            website.preview_url = preview_url
            website.deployed_at = utcnow()

            business = await session.get(Business, website.business_id)
            if business is not None:
                _advance(business, StoreEvent.WEBSITE_DEPLOYED)

        logger.info("Website %s deployed at %s", website_id, preview_url)
        return website

    async def delete_website(self, website_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(GeneratedWebsite).where(GeneratedWebsite.id == website_id)
            )
        return result.rowcount > 0

    # =========================================================================
    # Outreach
    # =========================================================================

    async def log_outreach(self, data: Mapping[str, Any]) -> OutreachLog:
        """Record a contact attempt and advance the business to contacted.

        Raises:
            ValueError: If business_id or method is missing or invalid.
            NotFoundError: If the business does not exist.
        """
        _check_fields(data, OUTREACH_FIELDS, "outreach")
        values = {key: value for key, value in data.items() if value is not None}
        if not values.get("business_id"):
            raise ValueError("Outreach business_id is required")
        if not values.get("method"):
            raise ValueError("Outreach method is required")
        values["method"] = OutreachMethod(values["method"])
        now = utcnow()
        values.setdefault("sent_at", now)
        values["created_at"] = now

        async with self._session() as session:
            business = await session.get(Business, values["business_id"])
            if business is None:
                raise NotFoundError(f"Business not found: {values['business_id']}")
            outreach = OutreachLog(**values)
            session.add(outreach)
            _advance(business, StoreEvent.OUTREACH_LOGGED)
            await session.flush()

        logger.info(
            "Logged %s outreach for business %s", outreach.method.value, outreach.business_id
        )
        return outreach

    async def get_outreach_by_id(self, outreach_id: str) -> Optional[OutreachLog]:
        async with self._session() as session:
            return await session.get(OutreachLog, outreach_id)

    async def get_outreach_by_business_id(self, business_id: str) -> list[OutreachLog]:
        """Contact attempts for a business, most recent first."""
        stmt = (
            select(OutreachLog)
            .where(OutreachLog.business_id == business_id)
            .order_by(OutreachLog.sent_at.desc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update_outreach_response(
        self, outreach_id: str, response: str
    ) -> Optional[OutreachLog]:
        """Store a reply and stamp ``responded_at``."""
        async with self._session() as session:
            outreach = await session.get(OutreachLog, outreach_id)
            if outreach is None:
                return None
            outreach.response = response
            outreach.responded_at = utcnow()
        return outreach

    # =========================================================================
    # Aggregates
    # =========================================================================

    async def get_stats(self) -> StoreStats:
        """Totals by status and source plus website and outreach counts."""
        stats = StoreStats(by_status=await self.count_businesses_by_status())

        async with self._session() as session:
            result = await session.execute(
                select(Business.source, func.count()).group_by(Business.source)
            )
            stats.by_source = {source: count for source, count in result.all()}
            stats.total_businesses = sum(stats.by_status.values())
            stats.total_websites = (
                await session.execute(select(func.count()).select_from(GeneratedWebsite))
            ).scalar_one()
            stats.total_outreach = (
                await session.execute(select(func.count()).select_from(OutreachLog))
            ).scalar_one()
        return stats
