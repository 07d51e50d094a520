"""Quality check for generated website HTML.

Hard issues usually mean the generation was cut short or the model fell back
on filler; warnings flag missing polish. The report is logged after each live
generation and never blocks a website from being saved.
"""

import re
from dataclasses import dataclass, field
from typing import Any

MIN_HTML_LENGTH = 18000

_LOREM = re.compile(r"lorem\s+ipsum", re.IGNORECASE)
_EMOJI = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF\uFE00-\uFE0F]")
_GENERIC_WELCOME = re.compile(r"welcome\s+to\s+our\s+\w+", re.IGNORECASE)
_CLOSING_HTML = re.compile(r"</html>", re.IGNORECASE)
_PLACEHOLDERS = re.compile(r"\[BUSINESS NAME\]|\[CITY\]|\[PHONE\]|\[ADDRESS\]", re.IGNORECASE)
_PRICE = re.compile(r"\$\d+")


@dataclass
class QualityReport:
    """Outcome of ``check_website_quality``.

    Attributes:
        passed: True when there are no hard issues.
        issues: Hard failures.
        warnings: Soft findings.
    """

    passed: bool
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
        }


def check_website_quality(html: str) -> QualityReport:
    """Scan generated HTML for placeholder text, truncation and missing metadata.

    Args:
        html: The generated document.

    Returns:
        QualityReport; ``passed`` is False if any hard issue was found.
    """
    issues: list[str] = []
    warnings: list[str] = []

    if _LOREM.search(html):
        issues.append('Contains "Lorem ipsum" placeholder text')
    if _EMOJI.search(html):
        issues.append("Contains emoji characters")
    if _GENERIC_WELCOME.search(html):
        issues.append('Contains a generic "Welcome to our ..." heading')
    if not _CLOSING_HTML.search(html):
        issues.append("HTML is incomplete: missing </html> closing tag")
    if len(html) < MIN_HTML_LENGTH:
        issues.append(
            f"Website too short ({len(html)} chars), expected at least {MIN_HTML_LENGTH}"
        )
    if _PLACEHOLDERS.search(html):
        issues.append("Contains unfilled placeholders like [BUSINESS NAME]")

    if "application/ld+json" not in html:
        warnings.append("Missing JSON-LD structured data")
    if "og:title" not in html:
        warnings.append("Missing og:title meta tag")
    if "og:description" not in html:
        warnings.append("Missing og:description meta tag")
    if not _PRICE.search(html):
        warnings.append("No prices found")
    if "scroll-behavior" not in html:
        warnings.append("Missing scroll-behavior: smooth")

    return QualityReport(passed=not issues, issues=issues, warnings=warnings)
