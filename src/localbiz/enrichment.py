"""Enrichment stage: refresh contact and website details for discovered businesses.

Businesses that came from Places carry a place id. Enrichment looks each one
up again and records the current website, phone and address through
``BusinessStore.mark_business_enriched``, which moves them to ``enriched``.
A business that turns out to have a website drops out of generation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .integrations.places import PlacesClient
from .logging_utils import ContextAdapter, LogContext
from .models import BusinessStatus
from .store import BusinessQuery, BusinessStore

logger = ContextAdapter(logging.getLogger(__name__), {"stage": "enrichment"})

DEFAULT_ENRICH_LIMIT = 50


@dataclass
class EnrichmentSummary:
    """Outcome of an enrichment run."""

    total: int = 0
    enriched: int = 0
    with_website: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "enriched": self.enriched,
            "with_website": self.with_website,
            "failed": self.failed,
            "errors": list(self.errors),
        }


class EnrichmentService:
    """Refreshes place details for businesses still in ``discovered``."""

    def __init__(self, store: BusinessStore, places: PlacesClient) -> None:
        self.store = store
        self.places = places

    async def run(self, limit: int = DEFAULT_ENRICH_LIMIT) -> EnrichmentSummary:
        """Enrich up to ``limit`` discovered businesses that have a place id.

        Lookup failures are counted per business and never stop the batch.
        """
        businesses = await self.store.query_businesses(
            BusinessQuery(status=BusinessStatus.DISCOVERED, limit=limit)
        )
        businesses = [b for b in businesses if b.google_place_id]
        summary = EnrichmentSummary(total=len(businesses))
        logger.info("Enriching %d business(es)", summary.total)

        for business in businesses:
            with LogContext(business_id=business.id):
                try:
                    details = await self.places.get_place_details(business.google_place_id)
                except Exception as e:
                    summary.failed += 1
                    summary.errors.append(f"{business.name}: {e}")
                    logger.error("Details lookup failed for %s: %s", business.name, e)
                    continue

                if details is None:
                    summary.failed += 1
                    summary.errors.append(f"{business.name}: no details returned")
                    logger.warning("No details returned for %s", business.name)
                    continue

                await self.store.mark_business_enriched(
                    business.id,
                    {
                        "website_url": details.website if details.has_website else None,
                        "has_website": details.has_website,
                        "phone": details.phone,
                        "address": details.address,
                        "city": details.city,
                        "state": details.state,
                    },
                )
                summary.enriched += 1
                if details.has_website:
                    summary.with_website += 1
                    logger.info("%s has a website now: %s", business.name, details.website)

        logger.info(
            "Enrichment complete: %d enriched, %d with website, %d failed",
            summary.enriched,
            summary.with_website,
            summary.failed,
        )
        return summary
