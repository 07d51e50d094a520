"""Pipeline orchestrator for the discovery, generation and deployment stages.

The stages run in sequence against one store:

1. Discovery - find businesses without a website and save them
2. Generation - create website variations for businesses that need them
3. Deployment - publish pending websites and record their URLs

Every stage reads the store state the previous stage left behind, so each
can be skipped or re-run on its own. A stage that crashes is recorded in the
result and later stages still run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from .categories import DEFAULT_AREAS, DEFAULT_CATEGORIES, BusinessCategory, SearchArea
from .deployment import BatchDeploymentResult, DeploymentService
from .discovery import DiscoveryConfig, DiscoveryService, DiscoverySummary
from .generation import (
    DEFAULT_TEMPLATES_PER_BUSINESS,
    GenerationService,
    GenerationSummary,
    GeneratorConfig,
)
from .integrations.generators import WebsiteGenerator
from .integrations.places import DEFAULT_MAX_RESULTS, PlacesClient
from .integrations.vercel import HostingDeployer
from .logging_utils import LogContext
from .store import BusinessStore

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Stages in the website pipeline."""

    DISCOVERY = "discovery"
    GENERATION = "generation"
    DEPLOYMENT = "deployment"
    COMPLETED = "completed"


@dataclass
class PipelineConfig:
    """Configuration for pipeline execution.

    Attributes:
        limit: Maximum businesses (generation) and websites (deployment) per run.
        templates_per_business: Website variations per business, 1 to 3.
        areas: Cities to search during discovery.
        categories: Categories to search during discovery.
        max_results_per_search: Cap on places per (area, category) search.
        skip_discovery: Do not run discovery.
        skip_generation: Do not run generation.
        skip_deployment: Do not run deployment.
        dry_run: Report what each stage would do without calling any service.
    """

    limit: int = 10
    templates_per_business: int = DEFAULT_TEMPLATES_PER_BUSINESS
    areas: Sequence[SearchArea] = DEFAULT_AREAS
    categories: Sequence[BusinessCategory] = DEFAULT_CATEGORIES
    max_results_per_search: int = DEFAULT_MAX_RESULTS
    skip_discovery: bool = False
    skip_generation: bool = False
    skip_deployment: bool = False
    dry_run: bool = False


@dataclass
class PipelineResult:
    """Result of a pipeline run.

    Attributes:
        success: True when no stage recorded an error.
        discovery: Discovery summary, if the stage ran.
        generation: Generation summary, if the stage ran.
        deployment: Deployment batch result, if the stage ran.
        plan: What a dry run would have done, per stage.
        stats: Store totals after the run.
        errors: Stage-level errors.
        started_at: Execution start time.
        completed_at: Execution end time.
        duration_seconds: Total execution duration.
    """

    success: bool = True
    discovery: Optional[DiscoverySummary] = None
    generation: Optional[GenerationSummary] = None
    deployment: Optional[BatchDeploymentResult] = None
    plan: dict[str, Any] = field(default_factory=dict)
    stats: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "success": self.success,
            "discovery": self.discovery.to_dict() if self.discovery else None,
            "generation": self.generation.to_dict() if self.generation else None,
            "deployment": self.deployment.to_dict() if self.deployment else None,
            "plan": self.plan,
            "stats": self.stats,
            "errors": self.errors,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class PipelineOrchestrator:
    """Runs discovery, generation and deployment in order.

    Attributes:
        store: The business store shared by every stage.
        config: Pipeline configuration.
    """

    def __init__(
        self,
        store: BusinessStore,
        places: PlacesClient,
        generator: WebsiteGenerator,
        deployer: HostingDeployer,
        config: Optional[PipelineConfig] = None,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Business store.
            places: Places adapter used by discovery.
            generator: Website generator used by generation.
            deployer: Hosting adapter used by deployment.
            config: Pipeline configuration. Uses defaults if not provided.
            progress_callback: Optional callback(stage, current, total) for progress.
        """
        self.store = store
        self.places = places
        self.generator = generator
        self.deployer = deployer
        self.config = config or PipelineConfig()
        self._progress_callback = progress_callback

    def _report_progress(self, stage: str, current: int, total: int) -> None:
        """Report progress to the callback if set."""
        if self._progress_callback:
            try:
                self._progress_callback(stage, current, total)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)

    async def _plan(self, result: PipelineResult) -> None:
        if not self.config.skip_discovery:
            result.plan[PipelineStage.DISCOVERY.value] = {
                "areas": [
                    {"area": area.label, "radius_miles": area.radius_miles}
                    for area in self.config.areas
                ],
                "categories": [BusinessCategory(c).value for c in self.config.categories],
            }
            for area in self.config.areas:
                logger.info("[DRY RUN] Would search %s (%s mile radius)", area.label, area.radius_miles)
        if not self.config.skip_generation:
            businesses = await self.store.get_businesses_needing_websites(self.config.limit)
            result.plan[PipelineStage.GENERATION.value] = {"businesses": len(businesses)}
            logger.info("[DRY RUN] Would generate websites for %d business(es)", len(businesses))
        if not self.config.skip_deployment:
            websites = await self.store.get_websites_pending_deployment(self.config.limit)
            result.plan[PipelineStage.DEPLOYMENT.value] = {"websites": len(websites)}
            logger.info("[DRY RUN] Would deploy %d website(s)", len(websites))

    async def _run_discovery(self) -> DiscoverySummary:
        service = DiscoveryService(
            self.store,
            self.places,
            progress_callback=lambda label, current, total: self._report_progress(
                PipelineStage.DISCOVERY.value, current, total
            ),
        )
        return await service.run(
            DiscoveryConfig(
                areas=self.config.areas,
                categories=self.config.categories,
                max_results_per_search=self.config.max_results_per_search,
            )
        )

    async def _run_generation(self) -> GenerationSummary:
        service = GenerationService(
            self.store,
            self.generator,
            GeneratorConfig(templates_per_business=self.config.templates_per_business),
        )
        return await service.run(limit=self.config.limit)

    async def _run_deployment(self) -> BatchDeploymentResult:
        service = DeploymentService(self.store, self.deployer)
        return await service.deploy_pending(limit=self.config.limit)

    async def run(self) -> PipelineResult:
        """Execute the configured stages.

        Returns:
            PipelineResult with per-stage summaries and any stage errors.
        """
        started_at = datetime.now(timezone.utc)
        result = PipelineResult(started_at=started_at)

        stages = [
            (PipelineStage.DISCOVERY, self.config.skip_discovery, self._run_discovery),
            (PipelineStage.GENERATION, self.config.skip_generation, self._run_generation),
            (PipelineStage.DEPLOYMENT, self.config.skip_deployment, self._run_deployment),
        ]

        try:
            if self.config.dry_run:
                await self._plan(result)
            else:
                for index, (stage, skip, run_stage) in enumerate(stages):
                    if skip:
                        logger.info("Skipping %s stage", stage.value)
                        continue

                    self._report_progress(stage.value, index, len(stages))
                    with LogContext(stage=stage.value):
                        try:
                            setattr(result, stage.value, await run_stage())
                        except Exception as e:
                            logger.exception("%s stage failed: %s", stage.value, e)
                            result.errors.append(f"{stage.value}: {e}")

            result.stats = (await self.store.get_stats()).to_dict()
            self._report_progress(PipelineStage.COMPLETED.value, len(stages), len(stages))

        except Exception as e:
            logger.exception("Pipeline failed: %s", e)
            result.errors.append(str(e))

        finally:
            result.success = not result.errors
            result.completed_at = datetime.now(timezone.utc)
            result.duration_seconds = (result.completed_at - started_at).total_seconds()

        return result


async def run_pipeline(
    store: BusinessStore,
    places: PlacesClient,
    generator: WebsiteGenerator,
    deployer: HostingDeployer,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Run the pipeline once with the given adapters.

    Example:
        >>> result = await run_pipeline(store, places, generator, deployer)
        >>> print(result.deployment.successful)
    """
    orchestrator = PipelineOrchestrator(store, places, generator, deployer, config=config)
    return await orchestrator.run()
