"""Website templates, prompt construction and offline rendering.

A generation run produces one website per template variation. Templates are
always used in ``TEMPLATE_ORDER``, truncated to the number of variations
requested.
"""

import html
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence


class WebsiteTemplate(str, Enum):
    """Visual styles a generated website can take."""

    MODERN_MINIMAL = "modern_minimal"
    BOLD_COLORFUL = "bold_colorful"
    PROFESSIONAL_CLEAN = "professional_clean"


TEMPLATE_ORDER: tuple[WebsiteTemplate, ...] = (
    WebsiteTemplate.MODERN_MINIMAL,
    WebsiteTemplate.BOLD_COLORFUL,
    WebsiteTemplate.PROFESSIONAL_CLEAN,
)

TEMPLATE_LABELS: dict[WebsiteTemplate, str] = {
    WebsiteTemplate.MODERN_MINIMAL: "Modern Minimal",
    WebsiteTemplate.BOLD_COLORFUL: "Bold & Colorful",
    WebsiteTemplate.PROFESSIONAL_CLEAN: "Professional Clean",
}

TEMPLATE_DESCRIPTIONS: dict[WebsiteTemplate, str] = {
    WebsiteTemplate.MODERN_MINIMAL: (
        "- Clean, minimalist aesthetic with generous whitespace\n"
        "- Neutral palette of whites and grays with one accent color\n"
        "- Simple sans-serif typography\n"
        "- Subtle shadows, rounded corners and elegant hover effects"
    ),
    WebsiteTemplate.BOLD_COLORFUL: (
        "- Vibrant primary color with a complementary accent\n"
        "- Dynamic gradients and color blocks\n"
        "- Large headings with a strong visual hierarchy\n"
        "- Animated call-to-action buttons"
    ),
    WebsiteTemplate.PROFESSIONAL_CLEAN: (
        "- Traditional business look that builds trust\n"
        "- Navy, charcoal or forest green with gold accents\n"
        "- Classic typography on a clean grid\n"
        "- Testimonials and credibility sections emphasized"
    ),
}

# (background, text, accent) used by the offline renderer
TEMPLATE_PALETTES: dict[WebsiteTemplate, tuple[str, str, str]] = {
    WebsiteTemplate.MODERN_MINIMAL: ("#ffffff", "#1f2937", "#2563eb"),
    WebsiteTemplate.BOLD_COLORFUL: ("#fff7ed", "#1e1b4b", "#db2777"),
    WebsiteTemplate.PROFESSIONAL_CLEAN: ("#f8fafc", "#0f172a", "#b45309"),
}


class GeneratorFeature(str, Enum):
    """Optional sections a generated website can include."""

    CONTACT_FORM = "contact_form"
    GOOGLE_MAPS = "google_maps"
    SOCIAL_LINKS = "social_links"
    TESTIMONIALS = "testimonials"
    GALLERY = "gallery"
    HOURS_OF_OPERATION = "hours_of_operation"
    ABOUT_SECTION = "about_section"
    SERVICES_LIST = "services_list"
    CALL_TO_ACTION = "call_to_action"


DEFAULT_FEATURES: tuple[GeneratorFeature, ...] = (
    GeneratorFeature.CONTACT_FORM,
    GeneratorFeature.ABOUT_SECTION,
    GeneratorFeature.SERVICES_LIST,
    GeneratorFeature.CALL_TO_ACTION,
    GeneratorFeature.HOURS_OF_OPERATION,
)

DEFAULT_HOURS = (
    ("Monday - Friday", "9:00 AM - 7:00 PM"),
    ("Saturday", "8:00 AM - 5:00 PM"),
    ("Sunday", "Closed"),
)

# (service, starting price) per discovery category
SERVICES_BY_CATEGORY: dict[str, tuple[tuple[str, int], ...]] = {
    "restaurant": (("Lunch Specials", 12), ("Family Dinner Platters", 38), ("Catering", 150)),
    "barber_shop": (("Classic Haircut", 25), ("Skin Fade", 30), ("Hot Towel Shave", 35)),
    "car_repair": (("Oil Change", 45), ("Brake Service", 180), ("Engine Diagnostics", 95)),
    "beauty_salon": (("Cut & Style", 55), ("Color Treatment", 95), ("Blowout", 40)),
    "gym": (("Monthly Membership", 39), ("Personal Training", 60), ("Group Classes", 15)),
    "store": (("Gift Cards", 25), ("Local Favorites", 10), ("Seasonal Collections", 20)),
    "plumber": (("Drain Cleaning", 125), ("Water Heater Repair", 250), ("Leak Detection", 150)),
    "electrician": (("Panel Upgrade", 900), ("Outlet Installation", 120), ("Lighting Repair", 150)),
    "landscaper": (("Lawn Mowing", 45), ("Seasonal Cleanup", 180), ("Landscape Design", 400)),
    "cleaning": (("Standard Cleaning", 120), ("Deep Cleaning", 220), ("Move-Out Cleaning", 260)),
}
GENERAL_SERVICES = (("Consultation", 50), ("Standard Service", 100), ("Premium Service", 200))


@dataclass
class BusinessInfo:
    """The business facts a generator needs.

    Attributes:
        id: Business identifier.
        name: Business name.
        business_type: Display label such as "Barber Shops".
        category: Category value such as "barber_shop".
        city: City.
        state: State code.
        phone: Phone number, if known.
        email: Email address, if known.
        address: Street address, if known.
    """

    id: str
    name: str
    business_type: str
    category: str
    city: str
    state: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_business(cls, business: Any) -> "BusinessInfo":
        """Build from a stored Business row.

        Category falls back to the business type, then "Business".
        """
        category = business.category or business.business_type or "Business"
        return cls(
            id=business.id,
            name=business.name,
            business_type=business.business_type or category,
            category=category,
            city=business.city or "",
            state=business.state or "",
            phone=business.phone,
            email=business.email,
            address=business.address,
        )

    @property
    def location(self) -> str:
        return ", ".join(part for part in (self.city, self.state) if part)


def services_for(category: str) -> tuple[tuple[str, int], ...]:
    return SERVICES_BY_CATEGORY.get(category, GENERAL_SERVICES)


def _business_context(business: BusinessInfo) -> str:
    lines = [
        f"- Business Name: {business.name}",
        f"- Type: {business.business_type or business.category}",
        f"- Location: {business.location}",
    ]
    if business.address:
        lines.append(f"- Address: {business.address}")
    if business.phone:
        lines.append(f"- Phone: {business.phone}")
    if business.email:
        lines.append(f"- Email: {business.email}")
    return "\n".join(lines)


def _feature_instructions(
    features: Sequence[GeneratorFeature], business: BusinessInfo
) -> str:
    sections = [
        "### Hero\n"
        "- Full viewport height with the business name as the main heading\n"
        "- Short tagline and a primary call-to-action button"
    ]

    if GeneratorFeature.ABOUT_SECTION in features:
        sections.append(
            "### About\n"
            "- Two columns: story text and an image placeholder\n"
            f"- Emphasize local roots in {business.location}"
        )
    if GeneratorFeature.SERVICES_LIST in features:
        service_lines = "\n".join(
            f"- {name} (from ${price})" for name, price in services_for(business.category)
        )
        sections.append(
            "### Services\n"
            "- Card grid with a name, price badge and one-line description per service\n"
            f"{service_lines}"
        )
    if GeneratorFeature.HOURS_OF_OPERATION in features:
        hours = ", ".join(f"{days} {time}" for days, time in DEFAULT_HOURS)
        sections.append(f"### Hours of Operation\n- Grid of days and hours: {hours}")
    if GeneratorFeature.TESTIMONIALS in features:
        sections.append(
            "### Testimonials\n- Three short customer quotes with star ratings and first names"
        )
    if GeneratorFeature.GALLERY in features:
        sections.append("### Gallery\n- Responsive grid of six image placeholders")
    if GeneratorFeature.GOOGLE_MAPS in features:
        sections.append(
            f"### Map\n- Embedded Google Maps iframe centered on {business.location}"
        )
    if GeneratorFeature.CONTACT_FORM in features:
        sections.append(
            "### Contact\n"
            f"- Phone: {business.phone or '(555) 123-4567'} as a tel: link\n"
            f"- Email: {business.email or 'info@example.com'} as a mailto: link\n"
            f"- Address: {business.address or business.location}\n"
            "- Form with name, phone, email and message fields (action=\"#\")"
        )
    if GeneratorFeature.CALL_TO_ACTION in features:
        sections.append(
            "### Call to Action\n- Bold full-width band before the footer with one button"
        )
    if GeneratorFeature.SOCIAL_LINKS in features:
        sections.append("### Social\n- Facebook and Instagram links in the footer")

    sections.append(
        "### Footer\n- Business info, quick links, contact details and copyright"
    )
    return "\n\n".join(sections)


def build_website_prompt(
    business: BusinessInfo,
    template: WebsiteTemplate,
    features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
) -> str:
    """Build the generation prompt for one business and template.

    Args:
        business: Facts to embed in the page.
        template: Visual style directive.
        features: Sections to include.

    Returns:
        Prompt text asking for a single complete HTML document.
    """
    template = WebsiteTemplate(template)
    return f"""You are a senior web designer building a website for a local business. Generate a complete, production-ready single-file HTML website.

## BUSINESS INFORMATION
{_business_context(business)}

## DESIGN STYLE: {TEMPLATE_LABELS[template].upper()}
{TEMPLATE_DESCRIPTIONS[template]}

## REQUIRED SECTIONS
{_feature_instructions(features, business)}

## TECHNICAL REQUIREMENTS
- Use the Tailwind CSS CDN and Google Fonts; no other external scripts
- Semantic HTML5 (header, nav, main, section, footer), mobile-first and responsive
- Add scroll-behavior: smooth on the <html> element
- Include Open Graph og:title and og:description meta tags
- Include LocalBusiness structured data as application/ld+json
- Use the real business name, city and phone everywhere; never leave placeholders
- Do not use lorem ipsum text or emoji characters

## OUTPUT FORMAT
Return ONLY the complete HTML code. No explanation, no markdown fences. Start with <!DOCTYPE html> and end with </html>.
"""


def _structured_data(business: BusinessInfo) -> str:
    data: dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "LocalBusiness",
        "name": business.name,
        "address": {
            "@type": "PostalAddress",
            "streetAddress": business.address or "",
            "addressLocality": business.city,
            "addressRegion": business.state,
        },
    }
    if business.phone:
        data["telephone"] = business.phone
    return json.dumps(data, indent=2)


def render_synthetic_site(
    business: BusinessInfo,
    template: WebsiteTemplate,
    features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
) -> str:
    """Render a deterministic website without calling an AI provider.

    The same business, template and features always produce the same HTML.
    """
    template = WebsiteTemplate(template)
    background, text, accent = TEMPLATE_PALETTES[template]
    name = html.escape(business.name)
    location = html.escape(business.location)
    business_type = html.escape(business.business_type or business.category)
    phone = html.escape(business.phone or "")
    description = f"{business.name} is a locally owned {business.business_type or business.category} in {business.location}."

    sections = [
        f"""  <section id="hero" class="hero">
    <h1>{name}</h1>
    <p>{business_type} serving {location}</p>
    <a class="button" href="#contact">Get in Touch</a>
  </section>"""
    ]

    if GeneratorFeature.ABOUT_SECTION in features:
        sections.append(
            f"""  <section id="about">
    <h2>About {name}</h2>
    <p>{html.escape(description)} We are proud to serve our neighbors across {location}.</p>
  </section>"""
        )
    if GeneratorFeature.SERVICES_LIST in features:
        items = "\n".join(
            f"      <li><strong>{html.escape(service)}</strong> <span>from ${price}</span></li>"
            for service, price in services_for(business.category)
        )
        sections.append(
            f"""  <section id="services">
    <h2>Services</h2>
    <ul>
{items}
    </ul>
  </section>"""
        )
    if GeneratorFeature.HOURS_OF_OPERATION in features:
        rows = "\n".join(
            f"      <tr><td>{days}</td><td>{time}</td></tr>" for days, time in DEFAULT_HOURS
        )
        sections.append(
            f"""  <section id="hours">
    <h2>Hours</h2>
    <table>
{rows}
    </table>
  </section>"""
        )
    if GeneratorFeature.CONTACT_FORM in features:
        address = html.escape(business.address or business.location)
        phone_line = f'<a href="tel:{phone}">{phone}</a>' if phone else ""
        sections.append(
            f"""  <section id="contact">
    <h2>Contact</h2>
    <p>{address}</p>
    <p>{phone_line}</p>
    <form action="#" method="post">
      <input name="name" placeholder="Name">
      <input name="phone" placeholder="Phone">
      <input name="email" placeholder="Email">
      <textarea name="message" placeholder="Message"></textarea>
      <button type="submit">Send</button>
    </form>
  </section>"""
        )
    if GeneratorFeature.CALL_TO_ACTION in features:
        sections.append(
            f"""  <section id="cta" class="cta">
    <h2>Visit {name} today</h2>
    <a class="button" href="#contact">Book Now</a>
  </section>"""
        )

    body = "\n".join(sections)
    return f"""<!DOCTYPE html>
<html lang="en" style="scroll-behavior: smooth;">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{name} | {business_type} in {location}</title>
  <meta name="description" content="{html.escape(description)}">
  <meta property="og:title" content="{name}">
  <meta property="og:description" content="{html.escape(description)}">
  <script type="application/ld+json">
{_structured_data(business)}
  </script>
  <style>
    body {{ margin: 0; font-family: system-ui, sans-serif; background: {background}; color: {text}; }}
    section {{ padding: 4rem 1.5rem; max-width: 960px; margin: 0 auto; }}
    .hero {{ text-align: center; }}
    .button {{ display: inline-block; padding: 0.75rem 1.5rem; background: {accent}; color: #fff; border-radius: 6px; text-decoration: none; }}
    .cta {{ text-align: center; }}
  </style>
</head>
<body class="template-{template.value}">
<main>
{body}
</main>
<footer>
  <p>&copy; {name}, {location}</p>
</footer>
</body>
</html>
"""
