"""Unit tests for categories, aliases and search areas."""

import pytest

from localbiz.categories import (
    CATEGORY_LABELS,
    DEFAULT_AREAS,
    PLACES_SEARCH_PARAMS,
    BusinessCategory,
    SearchArea,
    category_label,
    parse_area,
    resolve_category,
)


class TestCategoryTables:
    """Tests that every category is fully described."""

    @pytest.mark.unit
    def test_every_category_has_label_and_search_params(self):
        """Test labels and Places parameters exist for all categories."""
        for category in BusinessCategory:
            assert CATEGORY_LABELS[category]
            params = PLACES_SEARCH_PARAMS[category]
            assert "type" in params or "keyword" in params

    @pytest.mark.unit
    def test_category_label(self):
        """Test the stored business_type label."""
        assert category_label(BusinessCategory.BARBER_SHOP) == "Barber Shops"
        assert category_label("car_repair") == "Auto Repair"


class TestResolveCategory:
    """Tests for resolve_category."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("barber", BusinessCategory.BARBER_SHOP),
            ("Barber Shop", BusinessCategory.BARBER_SHOP),
            ("barber-shop", BusinessCategory.BARBER_SHOP),
            ("RESTAURANTS", BusinessCategory.RESTAURANT),
            ("mechanic", BusinessCategory.CAR_REPAIR),
            ("cleaning service", BusinessCategory.CLEANING),
            ("establishment", BusinessCategory.OTHER),
        ],
    )
    def test_resolves_values_and_aliases(self, name, expected):
        """Test values, aliases and free-text spellings."""
        assert resolve_category(name) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", "spaceship", None])
    def test_unknown_returns_none(self, name):
        """Test that unmatched names resolve to None."""
        assert resolve_category(name) is None


class TestParseArea:
    """Tests for parse_area and SearchArea."""

    @pytest.mark.unit
    def test_known_area_keeps_radius(self):
        """Test that a default area keeps its configured radius."""
        area = parse_area("tupelo, ms")

        assert area == SearchArea("Tupelo", "MS", 15)
        assert area in DEFAULT_AREAS

    @pytest.mark.unit
    def test_state_defaults_to_mississippi(self):
        """Test the default state and radius for an unknown city."""
        assert parse_area("Batesville") == SearchArea("Batesville", "MS", 10)

    @pytest.mark.unit
    def test_other_state(self):
        """Test that the state code is upper-cased."""
        area = parse_area(" Memphis , tn ")

        assert area.city == "Memphis"
        assert area.state == "TN"
        assert area.label == "Memphis, TN"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", " , MS", None])
    def test_missing_city_rejected(self, value):
        """Test that a blank city is an error."""
        with pytest.raises(ValueError):
            parse_area(value)
