"""Deployment stage: publish generated websites and record their URLs.

Pending websites are processed oldest first. Each one gets a hosting
project named after its business and variation, the HTML is uploaded, and
on success the live URL is stored with ``mark_website_deployed``. A failed
website is reported in the batch result and stays pending for the next run.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .integrations.vercel import DeploymentResult, DeploymentStatus, HostingDeployer
from .logging_utils import ContextAdapter, LogContext
from .models import Business, GeneratedWebsite
from .store import DEFAULT_PENDING_LIMIT, BusinessStore

logger = ContextAdapter(logging.getLogger(__name__), {"stage": "deployment"})

UNKNOWN_BUSINESS = "Unknown"


@dataclass
class DeploymentItem:
    """Deployment outcome for one website."""

    website_id: str
    business_name: str
    result: DeploymentResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "website_id": self.website_id,
            "business_name": self.business_name,
            **self.result.to_dict(),
        }


@dataclass
class BatchDeploymentResult:
    """Outcome of a deployment run."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    results: list[DeploymentItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [item.to_dict() for item in self.results],
        }


def _failed(error: str) -> DeploymentResult:
    return DeploymentResult(success=False, status=DeploymentStatus.ERROR, error=error)


class DeploymentService:
    """Deploys pending websites through a hosting adapter."""

    def __init__(self, store: BusinessStore, deployer: HostingDeployer) -> None:
        self.store = store
        self.deployer = deployer

    async def _deploy(self, website: GeneratedWebsite, business: Business) -> DeploymentResult:
        try:
            project = await self.deployer.create_project(business.name, website.variation_number)
            result = await self.deployer.deploy_website(
                project.project_id, website.html_content, label=project.name
            )
        except Exception as e:
            logger.error("Deployment failed for %s: %s", business.name, e)
            return _failed(str(e))

        if result.success and result.url:
            await self.store.mark_website_deployed(website.id, result.url)
            logger.info("Deployed %s v%d to %s", business.name, website.variation_number, result.url)
        else:
            logger.warning("Deployment of %s did not succeed: %s", business.name, result.error)
        return result

    async def deploy_pending(self, limit: int = DEFAULT_PENDING_LIMIT) -> BatchDeploymentResult:
        """Deploy up to ``limit`` pending websites, oldest first."""
        websites = await self.store.get_websites_pending_deployment(limit)
        batch = BatchDeploymentResult(total=len(websites))

        logger.info(
            "Deploying %d website(s)%s",
            len(websites),
            " [mock mode]" if self.deployer.is_in_mock_mode() else "",
        )

        for website in websites:
            with LogContext(website_id=website.id, business_id=website.business_id):
                business = await self.store.get_business_by_id(website.business_id)
                if business is None:
                    logger.error("Business %s not found for website %s", website.business_id, website.id)
                    item = DeploymentItem(website.id, UNKNOWN_BUSINESS, _failed("Business not found"))
                else:
                    item = DeploymentItem(website.id, business.name, await self._deploy(website, business))

            batch.results.append(item)
            if item.result.success:
                batch.successful += 1
            else:
                batch.failed += 1

        logger.info(
            "Deployment complete: %d succeeded, %d failed", batch.successful, batch.failed
        )
        return batch

    async def deploy_website_by_id(self, website_id: str) -> DeploymentResult:
        """Deploy (or re-deploy) a single website regardless of its pending state."""
        website = await self.store.get_website_by_id(website_id)
        if website is None:
            return _failed(f"Website not found: {website_id}")

        business = await self.store.get_business_by_id(website.business_id)
        if business is None:
            return _failed(f"Business not found for website: {website_id}")

        with LogContext(website_id=website.id, business_id=business.id):
            return await self._deploy(website, business)
