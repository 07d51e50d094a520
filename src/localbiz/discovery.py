"""Discovery stage: find local businesses that have no website.

For every (area, category) pair the service searches the places adapter,
fetches details for each candidate, keeps the ones without a website and
saves those not already in the store.

Dedup runs in a fixed order: Google place id, then provenance
(source, source_id), then name + city + state ignoring case. A match on any
of them counts as "already exists".

Usage:
    >>> service = DiscoveryService(store, places)
    >>> summary = await service.run(DiscoveryConfig(max_results_per_search=10))
    >>> summary.newly_saved
    12
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Sequence

from .categories import (
    DEFAULT_AREAS,
    DEFAULT_CATEGORIES,
    BusinessCategory,
    SearchArea,
    category_label,
)
from .exceptions import DuplicateRecordError, StorageError
from .integrations.places import DEFAULT_MAX_RESULTS, PlaceResult, PlacesClient
from .logging_utils import ContextAdapter
from .models import BusinessSource, BusinessStatus
from .store import BusinessStore

logger = ContextAdapter(logging.getLogger(__name__), {"stage": "discovery"})

OPERATIONAL = "OPERATIONAL"

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class DiscoveryConfig:
    """Configuration for a discovery run.

    Attributes:
        areas: Cities to search.
        categories: Categories to search in every area.
        max_results_per_search: Cap on places per (area, category) search.
        only_operational: Skip places not reported as OPERATIONAL.
        min_rating: Skip places rated below this, when set.
    """

    areas: Sequence[SearchArea] = DEFAULT_AREAS
    categories: Sequence[BusinessCategory] = DEFAULT_CATEGORIES
    max_results_per_search: int = DEFAULT_MAX_RESULTS
    only_operational: bool = True
    min_rating: Optional[float] = None


@dataclass
class CategoryStats:
    """Counts for one category or one area."""

    found: int = 0
    without_website: int = 0
    saved: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"found": self.found, "without_website": self.without_website, "saved": self.saved}


@dataclass
class DiscoverySummary:
    """Outcome of a discovery run.

    Attributes:
        total_found: Places returned by all searches.
        without_website: Places that passed the filters.
        newly_saved: Businesses inserted into the store.
        already_exists: Qualifying places that matched an existing business.
        by_category: Counts keyed by category value.
        by_area: Counts keyed by "City, ST".
        errors: One message per failed (area, category) pair.
    """

    total_found: int = 0
    without_website: int = 0
    newly_saved: int = 0
    already_exists: int = 0
    by_category: dict[str, CategoryStats] = field(default_factory=dict)
    by_area: dict[str, CategoryStats] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def _record(self, area: SearchArea, category: BusinessCategory, attr: str, count: int) -> None:
        for bucket, key in ((self.by_category, category.value), (self.by_area, area.label)):
            stats = bucket.setdefault(key, CategoryStats())
            setattr(stats, attr, getattr(stats, attr) + count)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_found": self.total_found,
            "without_website": self.without_website,
            "newly_saved": self.newly_saved,
            "already_exists": self.already_exists,
            "by_category": {key: stats.to_dict() for key, stats in self.by_category.items()},
            "by_area": {key: stats.to_dict() for key, stats in self.by_area.items()},
            "errors": list(self.errors),
        }


def merge_details(candidate: PlaceResult, details: PlaceResult) -> PlaceResult:
    """Overlay a details lookup onto a search result.

    The search result's name and address win when present; website, phone,
    business status, rating and hours come from details. City and state
    prefer the parsed address components and fall back to the search area.
    """
    return replace(
        candidate,
        name=candidate.name or details.name,
        address=candidate.address or details.address,
        city=details.city or candidate.city,
        state=details.state or candidate.state,
        county=details.county or candidate.county,
        postal_code=details.postal_code or candidate.postal_code,
        website=details.website,
        phone=details.phone or candidate.phone,
        business_status=details.business_status or candidate.business_status,
        rating=details.rating if details.rating is not None else candidate.rating,
        review_count=(
            details.review_count if details.review_count is not None else candidate.review_count
        ),
        opening_hours=details.opening_hours or candidate.opening_hours,
    )


class DiscoveryService:
    """Runs discovery searches and saves new prospects to the store."""

    def __init__(
        self,
        store: BusinessStore,
        places: PlacesClient,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self.store = store
        self.places = places
        self.progress_callback = progress_callback

    def _qualifies(self, place: PlaceResult, config: DiscoveryConfig) -> bool:
        if place.has_website:
            return False
        if config.only_operational and place.business_status != OPERATIONAL:
            return False
        if config.min_rating is not None:
            if place.rating is None or place.rating < config.min_rating:
                return False
        return True

    async def _exists(self, place: PlaceResult) -> bool:
        if await self.store.business_exists_by_google_place_id(place.place_id):
            return True
        if await self.store.business_exists_by_source(
            BusinessSource.GOOGLE_PLACES.value, place.place_id
        ):
            return True
        match = await self.store.find_business_by_name_and_location(
            place.name, place.city, place.state
        )
        return match is not None

    async def save_place(self, place: PlaceResult, category: BusinessCategory) -> bool:
        """Insert a qualifying place unless it already exists.

        Returns:
            True if a new business was saved, False if it already existed.
        """
        if await self._exists(place):
            logger.debug("Already exists: %s", place.name)
            return False

        try:
            await self.store.insert_business({
                "name": place.name,
                "business_type": category_label(category),
                "category": category.value,
                "address": place.address,
                "city": place.city,
                "state": place.state,
                "county": place.county,
                "phone": place.phone,
                "website_url": None,
                "has_website": 0,
                "source": BusinessSource.GOOGLE_PLACES.value,
                "source_id": place.place_id,
                "google_place_id": place.place_id,
                "status": BusinessStatus.DISCOVERED,
            })
        except DuplicateRecordError:
            logger.debug("Duplicate on insert, treating as existing: %s", place.name)
            return False

        logger.info("Saved %s (%s, %s)", place.name, place.city, place.state)
        return True

    async def discover_pair(
        self,
        area: SearchArea,
        category: BusinessCategory,
        config: DiscoveryConfig,
        summary: DiscoverySummary,
    ) -> None:
        """Search, filter, dedup and save one (area, category) pair into ``summary``."""
        candidates = await self.places.search_businesses(
            area, category, max_results=config.max_results_per_search
        )
        summary.total_found += len(candidates)
        summary._record(area, category, "found", len(candidates))
        if not candidates:
            return

        details = await self.places.get_place_details_batch(
            [place.place_id for place in candidates],
            on_progress=lambda done, total: logger.debug("Details %d/%d", done, total),
        )

        qualifying = []
        for candidate in candidates:
            detail = details.get(candidate.place_id)
            if detail is None:
                logger.debug("No details for %s, skipping", candidate.place_id)
                continue
            merged = merge_details(candidate, detail)
            if self._qualifies(merged, config):
                qualifying.append(merged)

        summary.without_website += len(qualifying)
        summary._record(area, category, "without_website", len(qualifying))

        saved = 0
        for place in qualifying:
            if await self.save_place(place, category):
                saved += 1
            else:
                summary.already_exists += 1

        summary.newly_saved += saved
        summary._record(area, category, "saved", saved)
        logger.info(
            "%s / %s: %d found, %d without website, %d saved",
            area.label,
            category_label(category),
            len(candidates),
            len(qualifying),
            saved,
        )

    async def run(self, config: Optional[DiscoveryConfig] = None) -> DiscoverySummary:
        """Run discovery over every (area, category) pair.

        A failing pair is logged and recorded in ``errors``; the remaining
        pairs still run. Store failures propagate.
        """
        config = config or DiscoveryConfig()
        summary = DiscoverySummary()
        pairs = [(area, category) for area in config.areas for category in config.categories]

        logger.info(
            "Starting discovery: %d area(s) x %d categor(ies)%s",
            len(config.areas),
            len(config.categories),
            " [mock mode]" if self.places.is_in_mock_mode() else "",
        )

        for index, (area, category) in enumerate(pairs):
            category = BusinessCategory(category)
            if self.progress_callback:
                self.progress_callback(f"{area.label} / {category.value}", index, len(pairs))
            try:
                await self.discover_pair(area, category, config, summary)
            except StorageError:
                raise
            except Exception as e:
                message = f"{area.label} / {category.value}: {e}"
                logger.exception("Discovery failed for %s", message)
                summary.errors.append(message)

        if self.progress_callback:
            self.progress_callback("done", len(pairs), len(pairs))

        logger.info(
            "Discovery complete: %d found, %d without website, %d new, %d existing",
            summary.total_found,
            summary.without_website,
            summary.newly_saved,
            summary.already_exists,
        )
        return summary
