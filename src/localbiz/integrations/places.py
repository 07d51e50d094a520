"""Google Places client for discovering local businesses.

Two implementations share the ``PlacesClient`` protocol:

- ``GooglePlacesClient`` calls the Places nearby-search, details and geocode
  endpoints through the ``googlemaps`` library.
- ``SyntheticPlacesClient`` returns deterministic fake places, used whenever
  no API key is configured.

Example:
    >>> client = create_places_client(api_key=None)
    >>> client.is_in_mock_mode()
    True
    >>> places = await client.search_businesses(
    ...     SearchArea("Oxford", "MS", 10), BusinessCategory.BARBER_SHOP, max_results=5
    ... )
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import googlemaps
from googlemaps.exceptions import ApiError, HTTPError, Timeout, TransportError

from ..categories import PLACES_SEARCH_PARAMS, BusinessCategory, SearchArea
from ..utils.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

# Constants
MILES_TO_METERS = 1609.34
DEFAULT_MAX_RESULTS = 20
PAGINATION_DELAY_SECONDS = 2.0  # Page tokens only become valid after a short delay
DETAIL_DELAY_SECONDS = 0.1
DEFAULT_REQUESTS_PER_SECOND = 5.0

DETAIL_FIELDS = [
    "place_id",
    "name",
    "formatted_address",
    "address_component",
    "geometry",
    "website",
    "formatted_phone_number",
    "type",
    "business_status",
    "rating",
    "user_ratings_total",
    "opening_hours",
]

GOOGLEMAPS_ERRORS = (ApiError, HTTPError, Timeout, TransportError)

ProgressCallback = Callable[[int, int], None]


@dataclass
class PlaceResult:
    """A place returned by search or details.

    Attributes:
        place_id: Google Places identifier.
        name: Business name.
        address: Street or formatted address.
        city: City, parsed from address components or taken from the search area.
        state: Two-letter state code.
        county: County name, when known.
        postal_code: ZIP code, when known.
        phone: Formatted phone number.
        website: Website URL; None for businesses without one.
        rating: Average star rating.
        review_count: Number of ratings.
        types: Places types.
        location: Latitude/longitude.
        business_status: OPERATIONAL, CLOSED_TEMPORARILY or CLOSED_PERMANENTLY.
        opening_hours: Weekday hour strings.
    """

    place_id: str
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    county: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    types: list[str] = field(default_factory=list)
    location: Optional[tuple[float, float]] = None
    business_status: Optional[str] = None
    opening_hours: list[str] = field(default_factory=list)

    @property
    def has_website(self) -> bool:
        return bool(self.website and self.website.strip())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "place_id": self.place_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "county": self.county,
            "postal_code": self.postal_code,
            "phone": self.phone,
            "website": self.website,
            "rating": self.rating,
            "review_count": self.review_count,
            "types": list(self.types),
            "location": self.location,
            "business_status": self.business_status,
            "opening_hours": list(self.opening_hours),
        }


@runtime_checkable
class PlacesClient(Protocol):
    """Places lookup capability used by discovery and enrichment."""

    def is_in_mock_mode(self) -> bool:
        ...

    async def search_businesses(
        self,
        area: SearchArea,
        category: BusinessCategory,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[PlaceResult]:
        ...

    async def get_place_details(self, place_id: str) -> Optional[PlaceResult]:
        ...

    async def get_place_details_batch(
        self,
        place_ids: list[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> dict[str, PlaceResult]:
        ...


def radius_meters(radius_miles: float) -> int:
    """Convert a search radius in miles to whole metres."""
    return round(radius_miles * MILES_TO_METERS)


class _DetailsBatchMixin:
    """Sequential details lookups with a fixed spacing between calls."""

    detail_delay_seconds: float = DETAIL_DELAY_SECONDS

    async def get_place_details_batch(
        self,
        place_ids: list[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> dict[str, PlaceResult]:
        """Fetch details for many places one at a time.

        Args:
            place_ids: Places to look up.
            on_progress: Called with (done, total) after each lookup.

        Returns:
            Details keyed by place id; places whose lookup failed are absent.
        """
        details: dict[str, PlaceResult] = {}
        total = len(place_ids)

        for index, place_id in enumerate(place_ids):
            result = await self.get_place_details(place_id)
            if result is not None:
                details[place_id] = result
            if on_progress:
                on_progress(index + 1, total)
            if index < total - 1 and self.detail_delay_seconds > 0:
                await asyncio.sleep(self.detail_delay_seconds)

        return details


def parse_address_components(
    components: list[dict[str, Any]],
) -> dict[str, Optional[str]]:
    """Pull street, city, state, county and postal code out of address components."""
    parsed: dict[str, Optional[str]] = {
        "street": None,
        "city": None,
        "state": None,
        "county": None,
        "postal_code": None,
    }
    street_number = None
    route = None

    for component in components or []:
        types = component.get("types", [])
        if "street_number" in types:
            street_number = component.get("long_name")
        elif "route" in types:
            route = component.get("long_name")
        elif "locality" in types:
            parsed["city"] = component.get("long_name")
        elif "administrative_area_level_1" in types:
            parsed["state"] = component.get("short_name")
        elif "administrative_area_level_2" in types:
            parsed["county"] = component.get("long_name")
        elif "postal_code" in types:
            parsed["postal_code"] = component.get("long_name")

    if street_number and route:
        parsed["street"] = f"{street_number} {route}"
    elif route:
        parsed["street"] = route
    return parsed


def _location_of(place_data: dict[str, Any]) -> Optional[tuple[float, float]]:
    location = place_data.get("geometry", {}).get("location", {})
    lat, lng = location.get("lat"), location.get("lng")
    if lat is None or lng is None:
        return None
    return (lat, lng)


class GooglePlacesClient(_DetailsBatchMixin):
    """Live Places client over ``googlemaps.Client``.

    Every API call first takes a token from the instance's rate limiter and
    runs the blocking ``googlemaps`` call in the default executor.

    Attributes:
        api_key: Google Places API key.
        rate_limiter: Token bucket shared by all calls of this instance.
    """

    def __init__(
        self,
        api_key: str,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
        client: Optional[googlemaps.Client] = None,
        detail_delay_seconds: float = DETAIL_DELAY_SECONDS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Google Places API key.
            requests_per_second: Token bucket refill rate and capacity.
            client: Pre-built googlemaps client, mainly for tests.
            detail_delay_seconds: Spacing between batched details calls.

        Raises:
            ValueError: If no API key is provided.
        """
        if not api_key:
            raise ValueError("Google Places API key required")

        self.api_key = api_key
        self.rate_limiter = TokenBucket(
            capacity=max(1.0, requests_per_second), refill_rate=requests_per_second
        )
        self.detail_delay_seconds = detail_delay_seconds
        self._client = client or googlemaps.Client(key=api_key)
        logger.info("GooglePlacesClient initialized (%.1f req/s)", requests_per_second)

    def is_in_mock_mode(self) -> bool:
        return False

    async def _call(self, func: Callable[[], Any]) -> Any:
        await self.rate_limiter.acquire()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def geocode(self, area: SearchArea) -> Optional[tuple[float, float]]:
        """Resolve an area's city and state to coordinates, or None."""
        query = f"{area.city}, {area.state}"
        try:
            results = await self._call(lambda: self._client.geocode(query))
        except GOOGLEMAPS_ERRORS as e:
            logger.error("Failed to geocode %s: %s", query, e)
            return None

        if not results:
            logger.warning("No geocoding results for %s", query)
            return None

        location = results[0]["geometry"]["location"]
        logger.debug("Geocoded %s to (%f, %f)", query, location["lat"], location["lng"])
        return (location["lat"], location["lng"])

    def _parse_search_result(
        self, place_data: dict[str, Any], area: SearchArea
    ) -> PlaceResult:
        return PlaceResult(
            place_id=place_data.get("place_id", ""),
            name=place_data.get("name", ""),
            address=place_data.get("vicinity", place_data.get("formatted_address")),
            city=area.city,
            state=area.state,
            rating=place_data.get("rating"),
            review_count=place_data.get("user_ratings_total"),
            types=place_data.get("types", []),
            location=_location_of(place_data),
            business_status=place_data.get("business_status"),
        )

    async def search_businesses(
        self,
        area: SearchArea,
        category: BusinessCategory,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[PlaceResult]:
        """Nearby-search one category around one area.

        Follows page tokens, waiting between pages, until ``max_results`` are
        gathered or no further page exists. A failing later page ends the
        loop and keeps what was gathered; a failing first page returns [].

        Args:
            area: City to search around.
            category: Category whose type/keyword parameters to use.
            max_results: Maximum number of places to return.

        Returns:
            Up to ``max_results`` places.
        """
        location = await self.geocode(area)
        if location is None:
            return []

        params = dict(PLACES_SEARCH_PARAMS[BusinessCategory(category)])
        radius = radius_meters(area.radius_miles)

        logger.info(
            "Searching %s within %s miles of %s",
            category.value,
            area.radius_miles,
            area.label,
        )

        places: list[PlaceResult] = []
        next_page_token: Optional[str] = None
        page_num = 0

        while len(places) < max_results:
            try:
                if page_num == 0:
                    response = await self._call(
                        lambda: self._client.places_nearby(
                            location=location, radius=radius, **params
                        )
                    )
                else:
                    await asyncio.sleep(PAGINATION_DELAY_SECONDS)
                    response = await self._call(
                        lambda token=next_page_token: self._client.places_nearby(
                            page_token=token
                        )
                    )
            except GOOGLEMAPS_ERRORS as e:
                if page_num == 0:
                    logger.error("Places search failed for %s: %s", area.label, e)
                    return []
                logger.warning("Stopping pagination at page %d: %s", page_num + 1, e)
                break

            for place_data in response.get("results", []):
                places.append(self._parse_search_result(place_data, area))

            page_num += 1
            next_page_token = response.get("next_page_token")
            if not next_page_token:
                break

        logger.info("Found %d places across %d page(s)", len(places[:max_results]), page_num)
        return places[:max_results]

    async def get_place_details(self, place_id: str) -> Optional[PlaceResult]:
        """Fetch full details for a place.

        Returns:
            The place, or None if the lookup did not return OK.
        """
        try:
            response = await self._call(
                lambda: self._client.place(place_id, fields=DETAIL_FIELDS)
            )
        except GOOGLEMAPS_ERRORS as e:
            logger.warning("Failed to fetch details for place %s: %s", place_id, e)
            return None

        data = response.get("result")
        if not data:
            return None

        address = parse_address_components(data.get("address_components", []))
        return PlaceResult(
            place_id=data.get("place_id", place_id),
            name=data.get("name", ""),
            address=address["street"] or data.get("formatted_address"),
            city=address["city"],
            state=address["state"],
            county=address["county"],
            postal_code=address["postal_code"],
            phone=data.get("formatted_phone_number"),
            website=data.get("website"),
            rating=data.get("rating"),
            review_count=data.get("user_ratings_total"),
            types=data.get("types", []),
            location=_location_of(data),
            business_status=data.get("business_status"),
            opening_hours=data.get("opening_hours", {}).get("weekday_text", []),
        )


# =============================================================================
# Synthetic client
# =============================================================================

MOCK_GEOCODES: dict[str, tuple[float, float]] = {
    "holly springs, ms": (34.7673, -89.4487),
    "oxford, ms": (34.3665, -89.5192),
    "tupelo, ms": (34.2576, -88.7034),
    "southaven, ms": (34.9889, -90.0126),
    "memphis, tn": (35.1495, -90.0490),
}
DEFAULT_MOCK_LOCATION = (34.0, -89.0)

MOCK_STREETS = (
    "Main", "Oak", "Maple", "Cedar", "Pine", "Elm", "Market", "Church", "Spring", "Highway",
)

MOCK_NAMES: dict[BusinessCategory, tuple[str, ...]] = {
    BusinessCategory.RESTAURANT: (
        "Joe's Diner", "The Local Grill", "Mama's Kitchen", "Downtown Cafe",
        "The Hungry Bear", "Sunset Bistro", "Corner Pub & Grill", "Fresh Eats",
        "Southern Comfort Kitchen", "Main Street Pizza",
    ),
    BusinessCategory.BARBER_SHOP: (
        "Classic Cuts", "The Gentleman's Barber", "Fresh Fades", "Main Street Barber",
        "Sharp Looks Barbershop", "The Cutting Edge", "Old School Barber",
        "Precision Cuts", "The Barber Lounge", "Hometown Barbershop",
    ),
    BusinessCategory.CAR_REPAIR: (
        "Mike's Auto Shop", "Reliable Auto Repair", "Quick Fix Garage", "A1 Auto Service",
        "Family Auto Care", "Pro Mechanics", "Honest Auto Repair", "Fast Lane Auto",
        "Quality Car Care", "Main Street Motors",
    ),
    BusinessCategory.BEAUTY_SALON: (
        "Style Studio", "Beautiful You Salon", "The Hair Loft", "Shear Excellence",
        "Glamour Hair Salon", "Chic Cuts", "The Beauty Bar", "Hair Haven",
        "Elegant Touch Salon", "New Look Hair Studio",
    ),
    BusinessCategory.GYM: (
        "Iron Works Gym", "Fitness First", "Peak Performance Gym", "The Training Zone",
        "Muscle Factory", "Fit Life Gym", "Power House Fitness", "Champion Gym",
        "Active Life Fitness", "Strong Body Gym",
    ),
    BusinessCategory.STORE: (
        "Main Street Boutique", "The Corner Store", "Family Mart", "Local Goods",
        "Value Shop", "Town Square Retail", "The General Store", "Discount Depot",
        "Community Market", "Everyday Essentials",
    ),
    BusinessCategory.PLUMBER: (
        "Reliable Plumbing", "Quick Drain Solutions", "Pro Plumbers", "AquaFix Plumbing",
        "24/7 Plumbing Service", "Master Plumbers Co", "Clear Drain Pros",
        "Family Plumbing", "Hometown Plumbers", "Expert Pipe Services",
    ),
    BusinessCategory.ELECTRICIAN: (
        "Bright Spark Electric", "Pro Electric Services", "Power Up Electrical",
        "Safe Wiring Co", "Lightning Electric", "Hometown Electricians",
        "Quality Electric", "Reliable Power Solutions", "Expert Electrical",
        "Circuit Masters",
    ),
    BusinessCategory.LANDSCAPER: (
        "Green Thumb Landscaping", "Perfect Lawns", "Nature's Touch", "Pro Lawn Care",
        "Beautiful Yards", "Outdoor Solutions", "Garden Masters", "Elite Landscaping",
        "Fresh Cut Lawns", "Scenic Landscaping",
    ),
    BusinessCategory.CLEANING: (
        "Sparkle Clean", "Pristine Cleaning", "Fresh Start Cleaners", "Maid Perfect",
        "Crystal Clear Cleaning", "Pro Clean Services", "Spotless Home",
        "Shine Bright Cleaners", "Deep Clean Pros", "Tidy Home Services",
    ),
    BusinessCategory.OTHER: (
        "Local Business 1", "Community Services", "Town Enterprise",
        "Main Street Business", "Family Owned Shop",
    ),
}


def mock_place_id(area: SearchArea, category: BusinessCategory, index: int) -> str:
    """Deterministic place id for a synthetic search result."""
    city = area.city.lower().replace(" ", "")
    return f"mock_{city}_{BusinessCategory(category).value}_{index}"


def _mock_index(place_id: str) -> Optional[int]:
    _, _, suffix = place_id.rpartition("_")
    try:
        return int(suffix)
    except ValueError:
        return None


class SyntheticPlacesClient(_DetailsBatchMixin):
    """Deterministic offline stand-in for the Places API.

    Search result ``i`` for a category uses the ``i``-th canned name. Details
    for a place ending in ``_i`` report a website when ``i % 5 < 3``, so two
    of every five synthetic places qualify as prospects.
    """

    def __init__(self, detail_delay_seconds: float = DETAIL_DELAY_SECONDS) -> None:
        self.detail_delay_seconds = detail_delay_seconds
        logger.info("Places client running in mock mode")

    def is_in_mock_mode(self) -> bool:
        return True

    async def geocode(self, area: SearchArea) -> tuple[float, float]:
        return MOCK_GEOCODES.get(area.label.lower(), DEFAULT_MOCK_LOCATION)

    async def search_businesses(
        self,
        area: SearchArea,
        category: BusinessCategory,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[PlaceResult]:
        category = BusinessCategory(category)
        lat, lng = await self.geocode(area)
        names = MOCK_NAMES[category]
        count = min(max_results, len(names))

        places = []
        for i in range(count):
            street = MOCK_STREETS[i % len(MOCK_STREETS)]
            places.append(
                PlaceResult(
                    place_id=mock_place_id(area, category, i),
                    name=names[i],
                    address=f"{100 + i * 12} {street} Street",
                    city=area.city,
                    state=area.state,
                    rating=round(3.0 + (i % 5) * 0.4, 1),
                    review_count=5 + 3 * i,
                    types=[category.value],
                    location=(lat + i * 0.001, lng - i * 0.001),
                    business_status="OPERATIONAL",
                )
            )

        logger.info(
            "Mock search returned %d %s places for %s", len(places), category.value, area.label
        )
        return places

    async def get_place_details(self, place_id: str) -> Optional[PlaceResult]:
        index = _mock_index(place_id)
        if index is None:
            return None

        return PlaceResult(
            place_id=place_id,
            name=f"Mock Business {index}",
            address=f"{100 + index} Main Street",
            phone=f"(555) {100 + index}-{str(1000 + index)[-4:]}",
            website=f"https://mock-business-{index}.example.com" if index % 5 < 3 else None,
            rating=3.5 + (index % 3) * 0.5,
            review_count=10 + 5 * index,
            business_status="OPERATIONAL",
            opening_hours=[
                "Monday: 9:00 AM - 5:00 PM",
                "Tuesday: 9:00 AM - 5:00 PM",
                "Wednesday: 9:00 AM - 5:00 PM",
                "Thursday: 9:00 AM - 5:00 PM",
                "Friday: 9:00 AM - 5:00 PM",
                "Saturday: 10:00 AM - 2:00 PM",
                "Sunday: Closed",
            ],
        )


def create_places_client(
    api_key: Optional[str] = None,
    requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
    detail_delay_seconds: float = DETAIL_DELAY_SECONDS,
) -> PlacesClient:
    """Build the live client when a key is given, else the synthetic one."""
    if api_key:
        return GooglePlacesClient(
            api_key,
            requests_per_second=requests_per_second,
            detail_delay_seconds=detail_delay_seconds,
        )
    return SyntheticPlacesClient(detail_delay_seconds=detail_delay_seconds)
