"""Unit tests for prompt construction and offline rendering."""

from types import SimpleNamespace

import pytest

from localbiz.quality import check_website_quality
from localbiz.templates import (
    GENERAL_SERVICES,
    TEMPLATE_ORDER,
    BusinessInfo,
    GeneratorFeature,
    WebsiteTemplate,
    build_website_prompt,
    render_synthetic_site,
    services_for,
)


@pytest.fixture
def info():
    return BusinessInfo(
        id="b1",
        name="Rosie's Kitchen",
        business_type="Restaurants",
        category="restaurant",
        city="Holly Springs",
        state="MS",
        phone="(662) 555-0123",
        address="140 Market Street",
    )


class TestBusinessInfo:
    """Tests for BusinessInfo."""

    @pytest.mark.unit
    def test_from_business_falls_back(self):
        """Test category and location fallbacks for sparse rows."""
        row = SimpleNamespace(
            id="b2", name="Mystery Shop", category=None, business_type=None,
            city=None, state="MS", phone=None, email=None, address=None,
        )

        info = BusinessInfo.from_business(row)

        assert info.category == "Business"
        assert info.business_type == "Business"
        assert info.city == ""
        assert info.location == "MS"

    @pytest.mark.unit
    def test_location(self, info):
        assert info.location == "Holly Springs, MS"


class TestServices:
    """Tests for category service lists."""

    @pytest.mark.unit
    def test_known_category(self):
        assert services_for("barber_shop")[0] == ("Classic Haircut", 25)

    @pytest.mark.unit
    def test_unknown_category_uses_general(self):
        assert services_for("Business") == GENERAL_SERVICES


class TestBuildWebsitePrompt:
    """Tests for build_website_prompt."""

    @pytest.mark.unit
    def test_includes_business_facts(self, info):
        """Test that the real name, location and phone are in the prompt."""
        prompt = build_website_prompt(info, WebsiteTemplate.MODERN_MINIMAL)

        assert "Rosie's Kitchen" in prompt
        assert "Holly Springs, MS" in prompt
        assert "(662) 555-0123" in prompt
        assert "MODERN MINIMAL" in prompt
        assert "<!DOCTYPE html>" in prompt

    @pytest.mark.unit
    def test_features_control_sections(self, info):
        """Test that only requested sections are described."""
        prompt = build_website_prompt(
            info, WebsiteTemplate.BOLD_COLORFUL, [GeneratorFeature.GALLERY]
        )

        assert "### Gallery" in prompt
        assert "### Services" not in prompt
        assert "### Hero" in prompt
        assert "### Footer" in prompt

    @pytest.mark.unit
    def test_services_priced(self, info):
        """Test that category services carry starting prices."""
        prompt = build_website_prompt(info, WebsiteTemplate.PROFESSIONAL_CLEAN)

        assert "Catering (from $150)" in prompt


class TestRenderSyntheticSite:
    """Tests for render_synthetic_site."""

    @pytest.mark.unit
    @pytest.mark.parametrize("template", TEMPLATE_ORDER)
    def test_each_template_renders(self, info, template):
        """Test that every template yields a full document tagged with its name."""
        html = render_synthetic_site(info, template)

        assert html.startswith("<!DOCTYPE html>")
        assert html.rstrip().endswith("</html>")
        assert f"template-{template.value}" in html

    @pytest.mark.unit
    def test_escapes_business_name(self, info):
        """Test that the apostrophe is HTML-escaped in markup."""
        html = render_synthetic_site(info, WebsiteTemplate.MODERN_MINIMAL)

        assert "<h1>Rosie&#x27;s Kitchen</h1>" in html

    @pytest.mark.unit
    def test_templates_differ(self, info):
        """Test that variations are visually distinct."""
        first = render_synthetic_site(info, WebsiteTemplate.MODERN_MINIMAL)
        second = render_synthetic_site(info, WebsiteTemplate.BOLD_COLORFUL)

        assert first != second

    @pytest.mark.unit
    def test_has_no_metadata_warnings(self, info):
        """Test that the rendered page carries the metadata the checker looks for."""
        report = check_website_quality(render_synthetic_site(info, WebsiteTemplate.MODERN_MINIMAL))

        assert report.warnings == []
