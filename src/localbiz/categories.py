"""Business categories and search areas used by discovery.

A ``BusinessCategory`` value is what gets stored in ``businesses.category``.
Each category maps to Google Places nearby-search parameters (a place
``type``, a free-text ``keyword`` or both) and a display label that becomes
the stored ``business_type``.

Usage:
    >>> resolve_category("barber")
    <BusinessCategory.BARBER_SHOP: 'barber_shop'>
    >>> parse_area("Oxford, MS")
    SearchArea(city='Oxford', state='MS', radius_miles=10)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BusinessCategory(str, Enum):
    """Categories of local business that discovery can search for."""

    RESTAURANT = "restaurant"
    BARBER_SHOP = "barber_shop"
    CAR_REPAIR = "car_repair"
    BEAUTY_SALON = "beauty_salon"
    GYM = "gym"
    STORE = "store"
    PLUMBER = "plumber"
    ELECTRICIAN = "electrician"
    LANDSCAPER = "landscaper"
    CLEANING = "cleaning"
    OTHER = "establishment"


CATEGORY_LABELS: dict[BusinessCategory, str] = {
    BusinessCategory.RESTAURANT: "Restaurants",
    BusinessCategory.BARBER_SHOP: "Barber Shops",
    BusinessCategory.CAR_REPAIR: "Auto Repair",
    BusinessCategory.BEAUTY_SALON: "Salons",
    BusinessCategory.GYM: "Gyms",
    BusinessCategory.STORE: "Retail Stores",
    BusinessCategory.PLUMBER: "Plumbers",
    BusinessCategory.ELECTRICIAN: "Electricians",
    BusinessCategory.LANDSCAPER: "Landscaping",
    BusinessCategory.CLEANING: "Cleaning Services",
    BusinessCategory.OTHER: "Other Businesses",
}

# Nearby-search parameters; trades without a Places type search by keyword.
PLACES_SEARCH_PARAMS: dict[BusinessCategory, dict[str, str]] = {
    BusinessCategory.RESTAURANT: {"type": "restaurant"},
    BusinessCategory.BARBER_SHOP: {"type": "hair_care", "keyword": "barber"},
    BusinessCategory.CAR_REPAIR: {"type": "car_repair"},
    BusinessCategory.BEAUTY_SALON: {"type": "beauty_salon"},
    BusinessCategory.GYM: {"type": "gym"},
    BusinessCategory.STORE: {"type": "store"},
    BusinessCategory.PLUMBER: {"keyword": "plumber"},
    BusinessCategory.ELECTRICIAN: {"keyword": "electrician"},
    BusinessCategory.LANDSCAPER: {"keyword": "landscaping"},
    BusinessCategory.CLEANING: {"keyword": "cleaning service"},
    BusinessCategory.OTHER: {"type": "establishment"},
}

CATEGORY_ALIASES: dict[str, BusinessCategory] = {
    "restaurant": BusinessCategory.RESTAURANT,
    "restaurants": BusinessCategory.RESTAURANT,
    "food": BusinessCategory.RESTAURANT,
    "barber": BusinessCategory.BARBER_SHOP,
    "barbers": BusinessCategory.BARBER_SHOP,
    "barber_shop": BusinessCategory.BARBER_SHOP,
    "barbershop": BusinessCategory.BARBER_SHOP,
    "auto": BusinessCategory.CAR_REPAIR,
    "auto_repair": BusinessCategory.CAR_REPAIR,
    "car_repair": BusinessCategory.CAR_REPAIR,
    "mechanic": BusinessCategory.CAR_REPAIR,
    "salon": BusinessCategory.BEAUTY_SALON,
    "salons": BusinessCategory.BEAUTY_SALON,
    "beauty": BusinessCategory.BEAUTY_SALON,
    "beauty_salon": BusinessCategory.BEAUTY_SALON,
    "gym": BusinessCategory.GYM,
    "gyms": BusinessCategory.GYM,
    "fitness": BusinessCategory.GYM,
    "retail": BusinessCategory.STORE,
    "store": BusinessCategory.STORE,
    "shop": BusinessCategory.STORE,
    "plumber": BusinessCategory.PLUMBER,
    "plumbers": BusinessCategory.PLUMBER,
    "plumbing": BusinessCategory.PLUMBER,
    "electrician": BusinessCategory.ELECTRICIAN,
    "electricians": BusinessCategory.ELECTRICIAN,
    "electric": BusinessCategory.ELECTRICIAN,
    "landscaping": BusinessCategory.LANDSCAPER,
    "landscaper": BusinessCategory.LANDSCAPER,
    "lawn": BusinessCategory.LANDSCAPER,
    "cleaning": BusinessCategory.CLEANING,
    "cleaning_service": BusinessCategory.CLEANING,
    "cleaner": BusinessCategory.CLEANING,
}


def category_label(category: BusinessCategory) -> str:
    """Display label for a category, e.g. "Barber Shops"."""
    return CATEGORY_LABELS[BusinessCategory(category)]


def resolve_category(name: str) -> Optional[BusinessCategory]:
    """Resolve a user-supplied category name or alias.

    Input is lowercased and spaces or hyphens become underscores, so
    "Barber Shop", "barber-shop" and "barber_shop" all resolve.

    Args:
        name: Category value, alias or free text.

    Returns:
        The matching category, or None if nothing matches.
    """
    key = re.sub(r"[\s-]+", "_", (name or "").strip().lower())
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    try:
        return BusinessCategory(key)
    except ValueError:
        return None


@dataclass(frozen=True)
class SearchArea:
    """A city to search around.

    Attributes:
        city: City name.
        state: Two-letter state code.
        radius_miles: Search radius around the city center.
    """

    city: str
    state: str
    radius_miles: float = 10

    @property
    def label(self) -> str:
        """Area label used as the summary key, e.g. "Oxford, MS"."""
        return f"{self.city}, {self.state}"


DEFAULT_AREAS: tuple[SearchArea, ...] = (
    SearchArea("Holly Springs", "MS", 10),
    SearchArea("Oxford", "MS", 10),
    SearchArea("Tupelo", "MS", 15),
    SearchArea("Southaven", "MS", 10),
)

DEFAULT_CATEGORIES: tuple[BusinessCategory, ...] = (
    BusinessCategory.BARBER_SHOP,
    BusinessCategory.RESTAURANT,
    BusinessCategory.CAR_REPAIR,
    BusinessCategory.BEAUTY_SALON,
)

DEFAULT_STATE = "MS"
DEFAULT_RADIUS_MILES = 10


def parse_area(value: str) -> SearchArea:
    """Parse a "City, ST" string into a SearchArea.

    The state defaults to MS. A city that is one of the default areas keeps
    its known radius; anything else gets 10 miles.

    Raises:
        ValueError: If no city name is given.
    """
    city, _, state = (value or "").partition(",")
    city = city.strip()
    state = state.strip().upper() or DEFAULT_STATE
    if not city:
        raise ValueError(f"Invalid area: {value!r}")

    for known in DEFAULT_AREAS:
        if known.city.lower() == city.lower() and known.state == state:
            return known
    return SearchArea(city, state, DEFAULT_RADIUS_MILES)
