"""Integration tests for the generation and deployment stages.

Tests cover:
- Variation numbering and template order for generated websites
- Skipping failed variations, transient provider errors included
- Status cascades while a business is being generated and deployed
- Deployment of pending websites, failures that stay pending and
  single-website (re)deployment
"""

import pytest

from localbiz.deployment import DeploymentService
from localbiz.exceptions import PermanentServiceError, TransientServiceError
from localbiz.generation import GenerationService, GeneratorConfig
from localbiz.integrations.generators import SyntheticWebsiteGenerator
from localbiz.integrations.vercel import SyntheticVercelClient
from localbiz.models import BusinessStatus
from localbiz.templates import TEMPLATE_ORDER, WebsiteTemplate


class FlakyGenerator(SyntheticWebsiteGenerator):
    """Synthetic generator that fails on chosen templates.

    ``failures`` maps a template to a list of exceptions raised on
    successive calls for that template before it starts succeeding.
    """

    def __init__(self, failures):
        super().__init__()
        self.failures = {template: list(errors) for template, errors in failures.items()}
        self.calls = []

    async def generate_website(self, business, template, features=()):
        self.calls.append(template)
        pending = self.failures.get(template)
        if pending:
            raise pending.pop(0)
        return await super().generate_website(business, template, features)


class StatusSpyGenerator(SyntheticWebsiteGenerator):
    """Synthetic generator that records the stored status on every call."""

    def __init__(self, store):
        super().__init__()
        self.store = store
        self.statuses = []

    async def generate_website(self, business, template, features=()):
        stored = await self.store.get_business_by_id(business.id)
        self.statuses.append(stored.status)
        return await super().generate_website(business, template, features)


class DeletingGenerator(SyntheticWebsiteGenerator):
    """Synthetic generator that deletes one business while generating for it."""

    def __init__(self, store, victim):
        super().__init__()
        self.store = store
        self.victim = victim

    async def generate_website(self, business, template, features=()):
        if business.name == self.victim:
            await self.store.delete_business(business.id)
        return await super().generate_website(business, template, features)


class FailingDeployer(SyntheticVercelClient):
    """Synthetic deployer whose uploads always raise."""

    async def deploy_website(self, project_id, html, label=None):
        raise RuntimeError("upload rejected")


class CountingDeployer(SyntheticVercelClient):
    """Synthetic deployer that returns a new URL on every deployment."""

    def __init__(self):
        super().__init__()
        self.count = 0

    async def deploy_website(self, project_id, html, label=None):
        result = await super().deploy_website(project_id, html, label)
        self.count += 1
        result.url = result.url.replace("https://", f"https://r{self.count}-")
        return result


def _service(store, generator, templates=1):
    return GenerationService(store, generator, GeneratorConfig(templates_per_business=templates))


# ============================================================================
# Generation
# ============================================================================


class TestGeneration:
    """Tests for GenerationService against a real store."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_variations_follow_template_order(self, store, generator, business_data):
        """Test that three variations are stored in template order."""
        business = await store.insert_business(business_data())

        summary = await _service(store, generator, templates=3).run()

        assert summary.total_businesses == 1
        assert summary.successful_generations == 1
        assert summary.total_websites_created == 3
        websites = await store.get_websites_by_business_id(business.id)
        by_variation = {w.variation_number: w.template_name for w in websites}
        assert by_variation == {
            index + 1: template.value for index, template in enumerate(TEMPLATE_ORDER)
        }
        assert all(w.deployed_at is None and w.preview_url is None for w in websites)
        stored = await store.get_business_by_id(business.id)
        assert stored.status == BusinessStatus.WEBSITE_GENERATED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_variation_is_skipped(self, store, business_data):
        """Test that a permanent failure drops only its own variation."""
        business = await store.insert_business(business_data())
        generator = FlakyGenerator({
            WebsiteTemplate.BOLD_COLORFUL: [PermanentServiceError("content policy")],
        })

        summary = await _service(store, generator, templates=3).run()

        result = summary.results[0]
        assert result.success
        assert result.websites_generated == 2
        websites = await store.get_websites_by_business_id(business.id)
        assert sorted(w.variation_number for w in websites) == [1, 3]
        assert generator.calls.count(WebsiteTemplate.BOLD_COLORFUL) == 1

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_transient_error_is_not_retried(self, store, business_data):
        """Test that a rate-limited variation is called once and skipped."""
        await store.insert_business(business_data())
        generator = FlakyGenerator({
            WebsiteTemplate.MODERN_MINIMAL: [
                TransientServiceError("rate limited", status_code=429)
            ],
        })

        summary = await _service(store, generator, templates=2).run()

        assert summary.total_websites_created == 1
        assert generator.calls == [WebsiteTemplate.MODERN_MINIMAL, WebsiteTemplate.BOLD_COLORFUL]
        websites = await store.get_websites_by_business_id(summary.results[0].business_id)
        assert [w.variation_number for w in websites] == [2]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_all_variations_failing_leaves_status(self, store, business_data):
        """Test that a business with no generated website is reported failed."""
        business = await store.insert_business(business_data())
        generator = FlakyGenerator({
            WebsiteTemplate.MODERN_MINIMAL: [TransientServiceError("overloaded")],
        })

        summary = await _service(store, generator).run()

        assert summary.failed_generations == 1
        assert "modern_minimal" in summary.results[0].error
        stored = await store.get_business_by_id(business.id)
        assert stored.status == BusinessStatus.DISCOVERED
        assert await store.get_websites_by_business_id(business.id) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_store_failure_does_not_abort_run(self, store, business_data):
        """Test that a failed insert is reported and later businesses still run."""
        await store.insert_business(business_data(name="Gone Barbers"))
        survivor = await store.insert_business(business_data(name="Still Here Salon"))
        generator = DeletingGenerator(store, "Gone Barbers")

        summary = await _service(store, generator).run()

        assert summary.total_businesses == 2
        assert summary.successful_generations == 1
        assert summary.failed_generations == 1
        failed = next(r for r in summary.results if not r.success)
        assert failed.business_name == "Gone Barbers"
        assert "Business not found" in failed.error
        assert len(await store.get_websites_by_business_id(survivor.id)) == 1

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_status_advances_after_first_variation(self, store, business_data):
        """Test that the business leaves the pending set after one insert."""
        business = await store.insert_business(business_data())
        generator = StatusSpyGenerator(store)

        await _service(store, generator, templates=2).run()

        assert generator.statuses == [
            BusinessStatus.DISCOVERED,
            BusinessStatus.WEBSITE_GENERATED,
        ]
        assert await store.get_businesses_needing_websites() == []
        stored = await store.get_business_by_id(business.id)
        assert stored.status == BusinessStatus.WEBSITE_GENERATED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_only_pending_businesses_are_generated(self, store, generator, business_data):
        """Test that businesses with a website or a later status are skipped."""
        await store.insert_business(business_data(name="Needs One"))
        await store.insert_business(
            business_data(name="Has One", has_website=1, website_url="https://has-one.com")
        )
        later = await store.insert_business(business_data(name="Already Sold"))
        await store.update_business_status(later.id, BusinessStatus.SOLD)

        summary = await _service(store, generator).run()

        assert [r.business_name for r in summary.results] == ["Needs One"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_generate_single_does_not_store(self, store, generator, business_data):
        """Test that a one-off generation writes nothing."""
        business = await store.insert_business(business_data())

        html = await _service(store, generator).generate_single(
            business, WebsiteTemplate.PROFESSIONAL_CLEAN
        )

        assert "Classic Cuts" in html
        assert await store.get_websites_by_business_id(business.id) == []


# ============================================================================
# Deployment
# ============================================================================


class TestDeployment:
    """Tests for DeploymentService against a real store."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_deploy_pending(self, store, generator, deployer, business_data):
        """Test that every pending website is deployed and recorded."""
        business = await store.insert_business(business_data())
        await _service(store, generator, templates=2).run()

        batch = await DeploymentService(store, deployer).deploy_pending()

        assert batch.total == 2
        assert batch.successful == 2
        assert batch.failed == 0
        assert {item.result.url for item in batch.results} == {
            "https://classic-cuts-v1.mock-deploy.local",
            "https://classic-cuts-v2.mock-deploy.local",
        }
        assert await store.get_websites_pending_deployment() == []
        websites = await store.get_websites_by_business_id(business.id)
        assert all(w.preview_url and w.deployed_at for w in websites)
        stored = await store.get_business_by_id(business.id)
        assert stored.status == BusinessStatus.DEPLOYED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_deployment_stays_pending(self, store, generator, business_data):
        """Test that an adapter exception is reported and nothing is recorded."""
        business = await store.insert_business(business_data())
        await _service(store, generator).run()

        batch = await DeploymentService(store, FailingDeployer()).deploy_pending()

        assert batch.failed == 1
        assert batch.results[0].business_name == "Classic Cuts"
        assert "upload rejected" in batch.results[0].result.error
        pending = await store.get_websites_pending_deployment()
        assert len(pending) == 1
        assert pending[0].preview_url is None
        stored = await store.get_business_by_id(business.id)
        assert stored.status == BusinessStatus.WEBSITE_GENERATED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_business_is_reported(
        self, store, generator, deployer, business_data, monkeypatch
    ):
        """Test that a website whose business cannot be loaded is skipped."""
        orphaned = await store.insert_business(business_data(name="Orphaned"))
        await store.insert_business(business_data(name="Present"))
        await _service(store, generator).run()

        original = store.get_business_by_id

        async def get_business_by_id(business_id):
            if business_id == orphaned.id:
                return None
            return await original(business_id)

        monkeypatch.setattr(store, "get_business_by_id", get_business_by_id)

        batch = await DeploymentService(store, deployer).deploy_pending()

        assert batch.total == 2
        assert batch.successful == 1
        assert batch.failed == 1
        failed = next(item for item in batch.results if not item.result.success)
        assert failed.business_name == "Unknown"
        assert failed.result.error == "Business not found"
        pending = await store.get_websites_pending_deployment()
        assert [w.business_id for w in pending] == [orphaned.id]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_deploy_website_by_id_missing(self, store, deployer):
        """Test the result for an unknown website id."""
        result = await DeploymentService(store, deployer).deploy_website_by_id("nope")

        assert not result.success
        assert result.error == "Website not found: nope"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_redeploy_overwrites_url(self, store, generator, business_data):
        """Test that redeploying one website updates it in place."""
        business = await store.insert_business(business_data())
        generated = await _service(store, generator).run()
        website_id = generated.results[0].website_ids[0]
        service = DeploymentService(store, CountingDeployer())

        first = await service.deploy_website_by_id(website_id)
        first_deployed = (await store.get_website_by_id(website_id)).deployed_at
        second = await service.deploy_website_by_id(website_id)

        assert first.success and second.success
        assert first.url != second.url
        websites = await store.get_websites_by_business_id(business.id)
        assert len(websites) == 1
        assert websites[0].preview_url == second.url
        assert websites[0].deployed_at >= first_deployed
