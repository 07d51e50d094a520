"""Generation stage: create candidate websites for businesses without one.

Each eligible business gets up to three variations, one per template in
``TEMPLATE_ORDER``. A failed variation is logged and skipped; a business is
reported failed only when no variation succeeded, in which case its status
is left alone.

Usage:
    >>> service = GenerationService(store, generator, GeneratorConfig(templates_per_business=2))
    >>> summary = await service.run(limit=5)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .integrations.generators import WebsiteGenerator
from .logging_utils import ContextAdapter, LogContext
from .models import Business
from .store import DEFAULT_PENDING_LIMIT, BusinessStore
from .templates import (
    DEFAULT_FEATURES,
    TEMPLATE_ORDER,
    BusinessInfo,
    GeneratorFeature,
    WebsiteTemplate,
)

logger = ContextAdapter(logging.getLogger(__name__), {"stage": "generation"})

MAX_TEMPLATES_PER_BUSINESS = len(TEMPLATE_ORDER)
DEFAULT_TEMPLATES_PER_BUSINESS = 2


@dataclass
class GeneratorConfig:
    """Configuration for a generation run.

    Attributes:
        templates_per_business: Variations per business, 1 to 3.
        features: Sections every website should include.
    """

    templates_per_business: int = DEFAULT_TEMPLATES_PER_BUSINESS
    features: Sequence[GeneratorFeature] = DEFAULT_FEATURES

    def __post_init__(self) -> None:
        if not 1 <= self.templates_per_business <= MAX_TEMPLATES_PER_BUSINESS:
            raise ValueError(
                f"templates_per_business must be between 1 and {MAX_TEMPLATES_PER_BUSINESS}"
            )

    @property
    def templates(self) -> tuple[WebsiteTemplate, ...]:
        return TEMPLATE_ORDER[: self.templates_per_business]


@dataclass
class GenerationResult:
    """Outcome for one business."""

    business_id: str
    business_name: str
    success: bool = False
    websites_generated: int = 0
    website_ids: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_id": self.business_id,
            "business_name": self.business_name,
            "success": self.success,
            "websites_generated": self.websites_generated,
            "website_ids": list(self.website_ids),
            "error": self.error,
        }


@dataclass
class GenerationSummary:
    """Outcome of a generation run."""

    total_businesses: int = 0
    successful_generations: int = 0
    failed_generations: int = 0
    total_websites_created: int = 0
    results: list[GenerationResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_businesses": self.total_businesses,
            "successful_generations": self.successful_generations,
            "failed_generations": self.failed_generations,
            "total_websites_created": self.total_websites_created,
            "results": [result.to_dict() for result in self.results],
        }


class GenerationService:
    """Generates and stores websites for businesses that need one."""

    def __init__(
        self,
        store: BusinessStore,
        generator: WebsiteGenerator,
        config: Optional[GeneratorConfig] = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.config = config or GeneratorConfig()

    async def generate_single(self, business: Business, template: WebsiteTemplate) -> str:
        """Generate one website without saving it."""
        info = BusinessInfo.from_business(business)
        return await self._generate(info, WebsiteTemplate(template))

    async def _generate(self, info: BusinessInfo, template: WebsiteTemplate) -> str:
        html = await self.generator.generate_website(info, template, self.config.features)
        if not html or not html.strip():
            raise ValueError("Generator returned an empty website")
        return html

    async def generate_for_business(self, business: Business) -> GenerationResult:
        """Generate every configured variation for one business.

        Each successful variation is stored immediately with
        ``variation_number`` equal to its 1-based position.
        """
        result = GenerationResult(business_id=business.id, business_name=business.name)
        info = BusinessInfo.from_business(business)
        errors = []

        for index, template in enumerate(self.config.templates):
            try:
                html = await self._generate(info, template)
                website = await self.store.insert_website({
                    "business_id": business.id,
                    "template_name": template.value,
                    "variation_number": index + 1,
                    "html_content": html,
                })
            except Exception as e:
                logger.error(
                    "Variation %d (%s) failed for %s: %s",
                    index + 1,
                    template.value,
                    business.name,
                    e,
                )
                errors.append(f"{template.value}: {e}")
                continue

            result.website_ids.append(website.id)
            result.websites_generated += 1
            logger.info(
                "Generated %s (v%d) for %s, %d chars",
                template.value,
                index + 1,
                business.name,
                len(html),
            )

        result.success = result.websites_generated > 0
        if not result.success:
            result.error = "; ".join(errors) or "No websites generated"
        return result

    async def run(self, limit: int = DEFAULT_PENDING_LIMIT) -> GenerationSummary:
        """Generate websites for up to ``limit`` businesses needing one."""
        businesses = await self.store.get_businesses_needing_websites(limit)
        summary = GenerationSummary(total_businesses=len(businesses))

        logger.info(
            "Generating %d variation(s) for %d business(es)%s",
            self.config.templates_per_business,
            len(businesses),
            " [mock mode]" if self.generator.is_in_mock_mode() else "",
        )

        for business in businesses:
            with LogContext(business_id=business.id):
                result = await self.generate_for_business(business)
            summary.results.append(result)
            summary.total_websites_created += result.websites_generated
            if result.success:
                summary.successful_generations += 1
            else:
                summary.failed_generations += 1

        logger.info(
            "Generation complete: %d succeeded, %d failed, %d website(s) created",
            summary.successful_generations,
            summary.failed_generations,
            summary.total_websites_created,
        )
        return summary
